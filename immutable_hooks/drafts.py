"""Copy-on-write drafts over (possibly frozen) documents, with edit patches.

A draft wraps a base mapping or list. Reads of nested containers return
child drafts, so deep edits work the way they read::

    draft = create_draft(doc)
    draft["name"]["first"] = "F1"
    updated = finish_draft(draft)

The base is never touched. The first write to a draft copies its container
and marks every ancestor as modified; finishing produces a new unfrozen
``Record`` that shares all untouched children with the base.

When patches are enabled on the engine, ``finish_draft`` reports the edit as
forward and reverse patch lists of ``{"op", "path", "value"}`` dicts.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, MutableMapping, MutableSequence
from typing import Any, Optional

from .errors import DraftError
from .frozen import Record, RecordList, deep_freeze, thaw

PatchesCallback = Callable[[list[dict], list[dict]], None]

_NOTHING = object()


def _is_draftable(value: Any) -> bool:
    return isinstance(value, (dict, list))


def is_draft(value: Any) -> bool:
    return isinstance(value, (Draft, DraftList))


class _DraftState:
    """Bookkeeping shared by mapping and list drafts."""

    def _init_state(self, base: Any, parent: Optional["_DraftState"]) -> None:
        self._base = base
        self._copy: Any = None
        self._parent = parent
        self._modified = False
        self._revoked = False
        self._result: Any = _NOTHING

    @property
    def modified(self) -> bool:
        return self._modified

    def _assert_live(self) -> None:
        if self._revoked:
            raise DraftError("Cannot use a draft after it has been finished")

    def _current(self) -> Any:
        return self._base if self._copy is None else self._copy

    def _mark_changed(self) -> None:
        if self._modified:
            return
        self._modified = True
        self._prepare_copy()
        if self._parent is not None:
            self._parent._mark_changed()

    def _prepare_copy(self) -> None:
        raise NotImplementedError

    def _owns(self, key: Any, value: Any) -> bool:
        """True if ``value`` is the child draft created for ``key`` of this draft's base."""
        raise NotImplementedError

    def _wrap_child(self, key: Any, value: Any, base_value: Any) -> Any:
        # Only untouched base values become child drafts; new values are returned as is.
        if not _is_draftable(value) or value is not base_value:
            return value
        self._prepare_copy()
        child = _make_draft(value, self)
        self._copy[key] = child
        return child

    def _finalize(self, auto_freeze: bool = False) -> Any:
        if self._result is not _NOTHING:
            return self._result
        if not self._modified:
            self._result = self._base
        elif isinstance(self._copy, dict):
            result = Record()
            for key, value in list(self._copy.items()):
                untouched = key in self._base and self._base[key] is value
                result[key] = value if untouched else self._settle(key, value, auto_freeze)
            self._result = result
        else:
            result = RecordList()
            for index, value in enumerate(list(self._copy)):
                untouched = index < len(self._base) and self._base[index] is value
                result.append(value if untouched else self._settle(index, value, auto_freeze))
            self._result = result
        return self._result

    def _settle(self, key: Any, value: Any, auto_freeze: bool) -> Any:
        final = _finalize_value(value, auto_freeze)
        if auto_freeze and not is_draft(value):
            # Patches read the copy, so they must see the frozen value too
            final = deep_freeze(final)
            self._copy[key] = final
        return final


class Draft(_DraftState, MutableMapping):
    """Draft over a mapping."""

    def __init__(self, base: dict, parent: Optional[_DraftState] = None) -> None:
        self._init_state(base, parent)
        # key -> True when assigned, False when deleted
        self._assigned: dict[Any, bool] = {}

    def _prepare_copy(self) -> None:
        if self._copy is None:
            self._copy = dict(self._base)

    def _owns(self, key: Any, value: Any) -> bool:
        return (
            is_draft(value)
            and value._parent is self
            and key in self._base
            and value._base is self._base[key]
        )

    def __getitem__(self, key: Any) -> Any:
        self._assert_live()
        value = self._current()[key]
        return self._wrap_child(key, value, self._base.get(key, _NOTHING))

    def __setitem__(self, key: Any, value: Any) -> None:
        self._assert_live()
        current = self._current()
        if key in current:
            existing = current[key]
            if existing is value:
                return
            if is_draft(existing) and not existing.modified and existing._base is value:
                return
        self._mark_changed()
        self._copy[key] = value
        self._assigned[key] = True

    def __delitem__(self, key: Any) -> None:
        self._assert_live()
        if key not in self._current():
            raise KeyError(key)
        self._mark_changed()
        del self._copy[key]
        self._assigned[key] = False

    def __contains__(self, key: object) -> bool:
        self._assert_live()
        return key in self._current()

    def __iter__(self) -> Iterator[Any]:
        self._assert_live()
        return iter(list(self._current()))

    def __len__(self) -> int:
        self._assert_live()
        return len(self._current())

    def __repr__(self) -> str:
        state = "revoked" if self._revoked else dict(self._current())
        return f"Draft({state!r})"


class DraftList(_DraftState, MutableSequence):
    """Draft over a list."""

    def __init__(self, base: list, parent: Optional[_DraftState] = None) -> None:
        self._init_state(base, parent)

    def _prepare_copy(self) -> None:
        if self._copy is None:
            self._copy = list(self._base)

    def _owns(self, key: Any, value: Any) -> bool:
        return (
            is_draft(value)
            and value._parent is self
            and 0 <= key < len(self._base)
            and value._base is self._base[key]
        )

    def _index(self, index: int) -> int:
        size = len(self._current())
        position = index + size if index < 0 else index
        if not 0 <= position < size:
            raise IndexError("draft list index out of range")
        return position

    def __getitem__(self, index):
        self._assert_live()
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        position = self._index(index)
        value = self._current()[position]
        base_value = self._base[position] if position < len(self._base) else _NOTHING
        return self._wrap_child(position, value, base_value)

    def __setitem__(self, index, value) -> None:
        self._assert_live()
        if isinstance(index, slice):
            self._mark_changed()
            self._copy[index] = value
            return
        position = self._index(index)
        existing = self._current()[position]
        if existing is value:
            return
        if is_draft(existing) and not existing.modified and existing._base is value:
            return
        self._mark_changed()
        self._copy[position] = value

    def __delitem__(self, index) -> None:
        self._assert_live()
        if not isinstance(index, slice):
            index = self._index(index)
        self._mark_changed()
        del self._copy[index]

    def __len__(self) -> int:
        self._assert_live()
        return len(self._current())

    def insert(self, index: int, value: Any) -> None:
        self._assert_live()
        self._mark_changed()
        self._copy.insert(index, value)

    def __repr__(self) -> str:
        state = "revoked" if self._revoked else list(self._current())
        return f"DraftList({state!r})"


def _make_draft(base: Any, parent: Optional[_DraftState] = None) -> Any:
    if isinstance(base, dict):
        return Draft(base, parent)
    return DraftList(base, parent)


def _finalize_value(value: Any, auto_freeze: bool = False) -> Any:
    if is_draft(value):
        return value._finalize(auto_freeze)
    # Newly assigned containers may hold drafts taken from elsewhere in the tree.
    if isinstance(value, dict) and not getattr(value, "frozen", False):
        for key, child in list(value.items()):
            final = _finalize_value(child)
            if final is not child:
                value[key] = final
    elif isinstance(value, list) and not getattr(value, "frozen", False):
        for index, child in enumerate(list(value)):
            final = _finalize_value(child)
            if final is not child:
                value[index] = final
    return value


def _generate_patches(draft: Any, path: list, patches: list[dict], inverse: list[dict]) -> None:
    if not draft.modified:
        return
    if isinstance(draft, Draft):
        _mapping_patches(draft, path, patches, inverse)
    else:
        _list_patches(draft, path, patches, inverse)


def _mapping_patches(draft: Draft, path: list, patches: list[dict], inverse: list[dict]) -> None:
    base, copy = draft._base, draft._copy
    for key, value in copy.items():
        if draft._owns(key, value):
            _generate_patches(value, path + [key], patches, inverse)
            continue
        if not draft._assigned.get(key):
            continue
        final = _finalize_value(value)
        if key not in base:
            patches.append({"op": "add", "path": path + [key], "value": final})
            inverse.append({"op": "remove", "path": path + [key]})
        elif base[key] is not final:
            patches.append({"op": "replace", "path": path + [key], "value": final})
            inverse.append({"op": "replace", "path": path + [key], "value": base[key]})
    for key in base:
        if key not in copy:
            patches.append({"op": "remove", "path": path + [key]})
            inverse.append({"op": "add", "path": path + [key], "value": base[key]})


def _list_patches(draft: DraftList, path: list, patches: list[dict], inverse: list[dict]) -> None:
    base, copy = draft._base, draft._copy
    common = min(len(base), len(copy))
    for index in range(common):
        value = copy[index]
        if draft._owns(index, value):
            _generate_patches(value, path + [index], patches, inverse)
            continue
        final = _finalize_value(value)
        if final is not base[index]:
            patches.append({"op": "replace", "path": path + [index], "value": final})
            inverse.append({"op": "replace", "path": path + [index], "value": base[index]})
    for index in range(common, len(copy)):
        patches.append({"op": "add", "path": path + [index], "value": _finalize_value(copy[index])})
    for index in reversed(range(common, len(copy))):
        inverse.append({"op": "remove", "path": path + [index]})
    for index in reversed(range(common, len(base))):
        patches.append({"op": "remove", "path": path + [index]})
    for index in range(common, len(base)):
        inverse.append({"op": "add", "path": path + [index], "value": base[index]})


def _revoke(value: Any, seen: set[int]) -> None:
    if id(value) in seen:
        return
    seen.add(id(value))
    value._revoked = True
    children = value._copy.values() if isinstance(value._copy, dict) else value._copy or ()
    for child in children:
        if is_draft(child):
            _revoke(child, seen)


class DraftEngine:
    """Creates and finishes drafts; owns the patches toggle."""

    def __init__(self) -> None:
        self._patches_enabled = False

    @property
    def patches_enabled(self) -> bool:
        return self._patches_enabled

    def enable_patches(self) -> None:
        self._patches_enabled = True

    def is_draft(self, value: Any) -> bool:
        return is_draft(value)

    def create_draft(self, base: Any) -> Any:
        if not _is_draftable(base):
            raise DraftError(
                f"create_draft expects a mapping or a list, got {type(base).__name__}"
            )
        return _make_draft(base)

    def finish_draft(
        self,
        draft: Any,
        callback: Optional[PatchesCallback] = None,
        auto_freeze: bool = False,
    ) -> Any:
        """Finish a root draft.

        With ``auto_freeze`` every newly assigned value is deep-frozen, and the
        patches carry the same frozen objects the result holds. The result
        container itself stays unfrozen.
        """
        if not is_draft(draft) or draft._parent is not None:
            raise DraftError("finish_draft expects a draft returned by create_draft")
        draft._assert_live()
        if callback is not None and not self._patches_enabled:
            raise DraftError("Patches are not enabled; call enable_patches() first")

        result = draft._finalize(auto_freeze)
        if callback is not None:
            patches: list[dict] = []
            inverse: list[dict] = []
            _generate_patches(draft, [], patches, inverse)
            callback(patches, inverse)
        _revoke(draft, set())
        return result

    def produce(self, base: Any, recipe: Callable[[Any], Any], callback: Optional[PatchesCallback] = None) -> Any:
        """Run ``recipe`` against a draft of ``base`` and return the finished value."""
        draft = self.create_draft(base)
        recipe(draft)
        return self.finish_draft(draft, callback)


def _patch_fields(patch: Any) -> tuple[str, list, Any]:
    if isinstance(patch, dict):
        return patch["op"], list(patch["path"]), patch.get("value")
    op = getattr(patch.op, "value", patch.op)
    return op, list(patch.path), patch.value


def apply_patches(base: Any, patches: list) -> Any:
    """Return a copy of ``base`` with ``patches`` applied; ``base`` is left untouched.

    Accepts patch dicts as produced by ``finish_draft`` or ``Patch`` models.
    """
    result = thaw(base)
    thawed = {id(result)}
    for patch in patches:
        op, path, value = _patch_fields(patch)
        if not path:
            if op != "replace":
                raise DraftError(f"Cannot {op} the root of a document")
            result = value
            continue

        parent = result
        for key in path[:-1]:
            child = parent[key]
            if id(child) not in thawed:
                child = thaw(child)
                thawed.add(id(child))
                parent[key] = child
            parent = child

        last = path[-1]
        if op == "add":
            if isinstance(parent, list):
                parent.insert(last, value)
            else:
                parent[last] = value
        elif op == "replace":
            parent[last] = value
        elif op == "remove":
            del parent[last]
        else:
            raise DraftError(f"Unsupported patch operation: {op}")
    return result


# Process-wide default engine
engine = DraftEngine()

create_draft = engine.create_draft
finish_draft = engine.finish_draft
enable_patches = engine.enable_patches
produce = engine.produce
