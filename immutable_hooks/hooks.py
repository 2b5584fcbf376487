"""Before/after hooks around collection operations.

A hook is a factory ``factory(methods, options)`` registered by name. The
factory registers handlers through ``methods`` and returns an ``attach``
callable; the collection calls ``attach(collection)`` once and keeps the
returned ``detach`` callable until it is closed.

Handlers run in ascending priority (more negative first), ties in
registration order::

    before(collection, args) -> context
    after(collection, result, args, context) -> result

``args`` is the mutable argument list of the call; ``context`` is whatever
the same hook's ``before`` handler returned for this call.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import UnknownHookError

BEFORE = "before"
AFTER = "after"

DEFAULT_PRIORITY = 0

Detach = Callable[[], None]
Attach = Callable[[Any], Optional[Detach]]
HookFactory = Callable[["HookMethods", Any], Optional[Attach]]


@dataclass(order=True)
class HookRegistration:
    priority: float
    sequence: int
    method: str = field(compare=False)
    phase: str = field(compare=False)
    handler: Callable[..., Any] = field(compare=False)
    owner: "HookMethods" = field(compare=False, repr=False)


class HookMethods:
    """Collects the handlers one hook instance registers."""

    _sequence = itertools.count()

    def __init__(self) -> None:
        self.registrations: list[HookRegistration] = []

    def _add(self, method: str, phase: str, priority: Optional[float], handler: Callable[..., Any]) -> None:
        self.registrations.append(
            HookRegistration(
                priority=DEFAULT_PRIORITY if priority is None else priority,
                sequence=next(self._sequence),
                method=method,
                phase=phase,
                handler=handler,
                owner=self,
            )
        )

    def before(self, method: str, priority: Optional[float], handler: Callable[..., Any]) -> None:
        self._add(method, BEFORE, priority, handler)

    def after(self, method: str, priority: Optional[float], handler: Callable[..., Any]) -> None:
        self._add(method, AFTER, priority, handler)


class HookPipeline:
    """Ordered handlers keyed by (method, phase)."""

    def __init__(self) -> None:
        self._handlers: dict[tuple[str, str], list[HookRegistration]] = {}

    def add(self, methods: HookMethods) -> None:
        for registration in methods.registrations:
            handlers = self._handlers.setdefault((registration.method, registration.phase), [])
            handlers.append(registration)
            handlers.sort()

    def handlers(self, method: str, phase: str) -> list[HookRegistration]:
        return list(self._handlers.get((method, phase), ()))

    def run(self, target: Any, method: str, operation: Callable[..., Any], args: list) -> Any:
        contexts: dict[int, Any] = {}
        for registration in self.handlers(method, BEFORE):
            contexts[id(registration.owner)] = registration.handler(target, args)

        result = operation(*args)

        for registration in self.handlers(method, AFTER):
            context = contexts.get(id(registration.owner))
            result = registration.handler(target, result, args, context)
        return result


class Hooks:
    """Registry of hook factories by name."""

    def __init__(self) -> None:
        self._factories: dict[str, HookFactory] = {}

    def register(self, name: str, factory: HookFactory) -> None:
        self._factories[name] = factory

    def get(self, name: str) -> HookFactory:
        factory = self._factories.get(name)
        if factory is None:
            raise UnknownHookError(f"Hook '{name}' is not registered")
        return factory

    def names(self) -> list[str]:
        return sorted(self._factories)

    def create(self, name: str, options: Any) -> tuple[HookMethods, Optional[Attach]]:
        """Instantiate a registered hook; returns its handlers and attach callable."""
        methods = HookMethods()
        attach = self.get(name)(methods, options)
        return methods, attach
