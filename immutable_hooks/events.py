"""Synchronous event emitter used by collections."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from .errors import UnknownEventError

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """Keeps listeners per known event name and calls them in order.

    ``events`` is the registry of known names; a name must be present before
    a listener can be added for it.
    """

    def __init__(self, event_names: Iterable[str] = ()) -> None:
        self.events: dict[str, list[Listener]] = {name: [] for name in event_names}

    def add_listener(self, event_name: str, listener: Listener) -> Listener:
        if event_name not in self.events:
            raise UnknownEventError(f"Unknown event '{event_name}'")
        self.events[event_name].append(listener)
        return listener

    on = add_listener

    def remove_listener(self, event_name: str, listener: Listener) -> None:
        listeners = self.events.get(event_name)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def emit(self, event_name: str, *args: Any) -> None:
        listeners = self.events.get(event_name)
        if not listeners:
            return
        logger.debug("Emitting '%s' to %d listener(s)", event_name, len(listeners))
        for listener in list(listeners):
            listener(*args)
