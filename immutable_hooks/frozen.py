"""Freezable containers and deep freezing of document graphs.

Documents stored in a collection are ``Record`` instances: ordinary dicts
until ``freeze()`` is called, read-only afterwards. ``deep_freeze`` walks a
document graph and freezes every container reachable from it, converting
plain dicts and lists into their freezable counterparts along the way.
"""

from __future__ import annotations

import copy
from decimal import Decimal
from enum import Enum
from typing import Any

from .errors import FrozenRecordError

_SCALARS = (str, bytes, int, float, complex, bool, type(None), Enum, Decimal)


class Record(dict):
    """A dict that can be frozen in place."""

    _frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "Record":
        self._frozen = True
        return self

    def _check(self) -> None:
        if self._frozen:
            raise FrozenRecordError("Cannot modify a frozen record")

    def __setitem__(self, key, value) -> None:
        self._check()
        super().__setitem__(key, value)

    def __delitem__(self, key) -> None:
        self._check()
        super().__delitem__(key)

    def __ior__(self, other):
        self._check()
        return super().__ior__(other)

    def clear(self) -> None:
        self._check()
        super().clear()

    def pop(self, *args):
        self._check()
        return super().pop(*args)

    def popitem(self):
        self._check()
        return super().popitem()

    def setdefault(self, key, default=None):
        self._check()
        return super().setdefault(key, default)

    def update(self, *args, **kwargs) -> None:
        self._check()
        super().update(*args, **kwargs)

    def __copy__(self) -> "Record":
        return type(self)(self)

    def __deepcopy__(self, memo) -> "Record":
        result = type(self)()
        memo[id(self)] = result
        for key, value in self.items():
            dict.__setitem__(result, key, copy.deepcopy(value, memo))
        return result


class RecordList(list):
    """A list that can be frozen in place."""

    _frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "RecordList":
        self._frozen = True
        return self

    def _check(self) -> None:
        if self._frozen:
            raise FrozenRecordError("Cannot modify a frozen record list")

    def __setitem__(self, index, value) -> None:
        self._check()
        super().__setitem__(index, value)

    def __delitem__(self, index) -> None:
        self._check()
        super().__delitem__(index)

    def __iadd__(self, other):
        self._check()
        return super().__iadd__(other)

    def __imul__(self, count):
        self._check()
        return super().__imul__(count)

    def append(self, value) -> None:
        self._check()
        super().append(value)

    def extend(self, values) -> None:
        self._check()
        super().extend(values)

    def insert(self, index, value) -> None:
        self._check()
        super().insert(index, value)

    def pop(self, *args):
        self._check()
        return super().pop(*args)

    def remove(self, value) -> None:
        self._check()
        super().remove(value)

    def clear(self) -> None:
        self._check()
        super().clear()

    def sort(self, *args, **kwargs) -> None:
        self._check()
        super().sort(*args, **kwargs)

    def reverse(self) -> None:
        self._check()
        super().reverse()

    def __copy__(self) -> "RecordList":
        return type(self)(self)

    def __deepcopy__(self, memo) -> "RecordList":
        result = type(self)()
        memo[id(self)] = result
        for value in self:
            list.append(result, copy.deepcopy(value, memo))
        return result


def is_frozen(value: Any) -> bool:
    """Return True if ``value`` cannot be mutated.

    Scalars count as frozen. Tuples and frozensets are frozen when all of
    their members are. Plain dicts, lists and sets never are.
    """
    if isinstance(value, (Record, RecordList)):
        return value.frozen
    if isinstance(value, _SCALARS):
        return True
    if isinstance(value, (tuple, frozenset)):
        return all(is_frozen(item) for item in value)
    return False


def deep_freeze(value: Any, _memo: dict[int, Any] | None = None) -> Any:
    """Freeze ``value`` and every container reachable from it.

    Records and record lists are frozen in place and returned. Plain dicts
    and lists are converted first, so callers must use the return value.
    Children that are already frozen are not visited again.
    """
    if _memo is None:
        _memo = {}
    key = id(value)
    if key in _memo:
        return _memo[key]

    if isinstance(value, dict):
        record = value if isinstance(value, Record) else Record(value)
        _memo[key] = record
        for name, child in list(record.items()):
            frozen_child = _freeze_child(child, _memo)
            if frozen_child is not child:
                dict.__setitem__(record, name, frozen_child)
        return record.freeze()

    if isinstance(value, list):
        items = value if isinstance(value, RecordList) else RecordList(value)
        _memo[key] = items
        for index, child in enumerate(list(items)):
            frozen_child = _freeze_child(child, _memo)
            if frozen_child is not child:
                list.__setitem__(items, index, frozen_child)
        return items.freeze()

    if isinstance(value, tuple):
        _memo[key] = value
        children = [_freeze_child(child, _memo) for child in value]
        if all(new is old for new, old in zip(children, value)):
            return value
        result = tuple(children) if type(value) is tuple else type(value)(*children)
        _memo[key] = result
        return result

    if isinstance(value, set):
        result = frozenset(value)
        _memo[key] = result
        return result

    return value


def _freeze_child(child: Any, memo: dict[int, Any]) -> Any:
    if is_frozen(child):
        return child
    return deep_freeze(child, memo)


def thaw(value: Any) -> Any:
    """Return a shallow mutable copy of a mapping or sequence.

    Nested containers are shared with ``value`` and keep their frozen state.
    """
    if isinstance(value, (list, tuple)):
        return RecordList(value)
    return Record(value)


def to_plain(value: Any) -> Any:
    """Copy a document graph into plain dicts and lists (for serialization)."""
    if isinstance(value, dict):
        return {key: to_plain(child) for key, child in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(child) for child in value]
    return value
