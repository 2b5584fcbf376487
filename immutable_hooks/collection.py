"""In-memory document collection with instrumentable insert/update/remove."""

from __future__ import annotations

import bisect
import functools
import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from .errors import (
    DocumentExistsError,
    DocumentNotFoundError,
    DuplicateKeyError,
    InvalidDocumentError,
)
from .events import EventEmitter
from .frozen import Record
from .hooks import Detach, Hooks, HookPipeline

logger = logging.getLogger(__name__)

ID_FIELD = "$loki"
META_FIELD = "meta"

EVENT_NAMES = ("insert", "update", "delete", "pre-insert", "pre-update", "close", "error", "warning")

_MISSING = object()


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_identity(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _compare(value: Any, operator: str, operand: Any) -> bool:
    try:
        if operator == "$eq":
            return value == operand
        if operator == "$ne":
            return value != operand
        if operator == "$lt":
            return value < operand
        if operator == "$lte":
            return value <= operand
        if operator == "$gt":
            return value > operand
        if operator == "$gte":
            return value >= operand
        if operator == "$in":
            return value in operand
        if operator == "$between":
            low, high = operand
            return low <= value <= high
    except TypeError:
        # None or mixed types never match an ordering operator
        return False
    raise ValueError(f"Unsupported query operator: {operator}")


def matches(doc: Mapping, query: Optional[Mapping]) -> bool:
    """Return True if ``doc`` satisfies every field condition in ``query``."""
    for field, condition in (query or {}).items():
        value = doc.get(field)
        if isinstance(condition, Mapping) and condition and all(k.startswith("$") for k in condition):
            if not all(_compare(value, op, operand) for op, operand in condition.items()):
                return False
        elif value != condition:
            return False
    return True


class Collection(EventEmitter):
    """Documents keyed by an auto-assigned integer identity.

    Public ``insert``/``update``/``remove`` run through the collection's hook
    pipeline; ``find_and_remove`` removes by position and only fires the
    internal ``delete`` event.
    """

    def __init__(
        self,
        name: str,
        *,
        unique: Iterable[str] = (),
        disable_meta: bool = False,
        hooks: Optional[Hooks] = None,
        hooks_config: Iterable[tuple[str, Any]] = (),
        documents: Iterable[Mapping] = (),
        max_id: int = 0,
    ) -> None:
        super().__init__(EVENT_NAMES)
        self.name = name
        self.unique = list(unique)
        self.disable_meta = disable_meta
        self.hooks_config = [(hook_name, options) for hook_name, options in hooks_config]
        self.data: list[Record] = []
        self.id_index: list[int] = []
        self.max_id = max_id
        self._unique_index: dict[str, dict[Any, int]] = {field: {} for field in self.unique}
        self._pipeline = HookPipeline()
        self._detachers: list[Detach] = []

        for doc in documents:
            self._restore(doc)
        if self.hooks_config:
            self._attach_hooks(hooks or Hooks())

    def _restore(self, doc: Mapping) -> None:
        record = Record(doc)
        identity = record[ID_FIELD]
        self._check_unique(record, identity)
        self.data.append(record)
        self.id_index.append(identity)
        self._index_unique(record, identity)
        self.max_id = max(self.max_id, identity)

    def _attach_hooks(self, hooks: Hooks) -> None:
        for hook_name, options in self.hooks_config:
            methods, attach = hooks.create(hook_name, options)
            self._pipeline.add(methods)
            detach = attach(self) if attach else None
            if detach:
                self._detachers.append(detach)
            logger.debug("Attached hook '%s' to collection '%s'", hook_name, self.name)

    # --- hooked operations -------------------------------------------------

    def insert(self, doc: Any) -> Any:
        return self._pipeline.run(self, "insert", self._insert, [doc])

    def update(self, doc: Any) -> Any:
        return self._pipeline.run(self, "update", self._update, [doc])

    def remove(self, doc: Any) -> Any:
        return self._pipeline.run(self, "remove", self._remove, [doc])

    def _insert(self, doc: Any) -> Any:
        if isinstance(doc, list):
            inserted = [self._insert_one(item) for item in doc]
            self.emit("insert", inserted)
            return inserted
        inserted = self._insert_one(doc)
        self.emit("insert", inserted)
        return inserted

    def _insert_one(self, doc: Any) -> Record:
        if not isinstance(doc, Mapping):
            raise InvalidDocumentError("Document needs to be an object")
        if ID_FIELD in doc:
            raise DocumentExistsError("Document is already in collection, please use update()")
        self.emit("pre-insert", doc)

        record = doc if isinstance(doc, Record) else Record(doc)
        identity = self.max_id + 1
        self._check_unique(record, identity)
        record[ID_FIELD] = identity
        if not self.disable_meta:
            record[META_FIELD] = Record(revision=0, created=_now_ms(), version=0)

        self.max_id = identity
        self.data.append(record)
        self.id_index.append(identity)
        self._index_unique(record, identity)
        logger.debug("Inserted document %d into '%s'", identity, self.name)
        return record

    def _update(self, doc: Any) -> Any:
        if isinstance(doc, list):
            for item in doc:
                self.update(item)
            return None
        if not isinstance(doc, Mapping):
            raise InvalidDocumentError("Document needs to be an object")
        if ID_FIELD not in doc:
            raise DocumentNotFoundError(
                "Trying to update unsynced document. Please save the document first by using insert()"
            )
        found = self.get(doc[ID_FIELD], return_position=True)
        if not found:
            raise DocumentNotFoundError("Trying to update a document not in collection.")
        previous, position = found
        self.emit("pre-update", doc)

        record = doc if isinstance(doc, Record) else Record(doc)
        identity = record[ID_FIELD]
        self._check_unique(record, identity)
        meta = record.get(META_FIELD)
        if not self.disable_meta and isinstance(meta, Mapping):
            meta["revision"] = meta.get("revision", 0) + 1
            meta["updated"] = _now_ms()

        self._unindex_unique(previous)
        self.data[position] = record
        self._index_unique(record, identity)
        self.emit("update", record, previous)
        logger.debug("Updated document %d in '%s'", identity, self.name)
        return record

    def _remove(self, doc: Any) -> Any:
        if isinstance(doc, list):
            for item in doc:
                self.remove(item)
            return None
        if _is_identity(doc):
            resolved = self.get(doc)
            if resolved is None:
                raise DocumentNotFoundError(f"Document {doc} is not stored in the collection")
            doc = resolved
        if not isinstance(doc, Mapping):
            raise InvalidDocumentError("Parameter is not an object")
        if ID_FIELD not in doc:
            raise DocumentNotFoundError("Object is not a document stored in the collection")
        found = self.get(doc[ID_FIELD], return_position=True)
        if not found:
            raise DocumentNotFoundError("Object is not a document stored in the collection")

        stored, position = found
        self._unindex_unique(stored)
        del self.data[position]
        del self.id_index[position]
        self.emit("delete", stored)
        # The storage slot is released; strip the identity like a never-stored document
        stored.pop(ID_FIELD, None)
        stored.pop(META_FIELD, None)
        return stored

    # --- queries ------------------------------------------------------------

    def get(self, identity: Any, return_position: bool = False) -> Any:
        if not _is_identity(identity):
            return None
        position = bisect.bisect_left(self.id_index, identity)
        if position == len(self.id_index) or self.id_index[position] != identity:
            return None
        doc = self.data[position]
        return (doc, position) if return_position else doc

    def by(self, field: str, value: Any = _MISSING) -> Any:
        if value is _MISSING:
            return functools.partial(self.by, field)
        if field not in self._unique_index:
            raise KeyError(f"No unique index on '{field}'")
        identity = self._unique_index[field].get(value)
        return None if identity is None else self.get(identity)

    def find(self, query: Optional[Mapping] = None) -> list[Record]:
        return [doc for doc in self.data if matches(doc, query)]

    def find_one(self, query: Optional[Mapping] = None) -> Optional[Record]:
        for doc in self.data:
            if matches(doc, query):
                return doc
        return None

    def count(self, query: Optional[Mapping] = None) -> int:
        return len(self.find(query))

    def find_and_remove(self, query: Optional[Mapping] = None) -> int:
        """Remove every matching document without running the remove hooks."""
        positions = [i for i, doc in enumerate(self.data) if matches(doc, query)]
        removed = [self.data[i] for i in positions]
        for position in reversed(positions):
            self._unindex_unique(self.data[position])
            del self.data[position]
            del self.id_index[position]
        for doc in removed:
            self.emit("delete", doc)
        logger.debug("Removed %d document(s) from '%s' by query", len(removed), self.name)
        return len(removed)

    # --- unique constraints ---------------------------------------------------

    def _check_unique(self, doc: Mapping, identity: int) -> None:
        for field, index in self._unique_index.items():
            value = doc.get(field)
            if value is None:
                continue
            owner = index.get(value)
            if owner is not None and owner != identity:
                raise DuplicateKeyError(field, value)

    def _index_unique(self, doc: Mapping, identity: int) -> None:
        for field, index in self._unique_index.items():
            value = doc.get(field)
            if value is not None:
                index[value] = identity

    def _unindex_unique(self, doc: Mapping) -> None:
        for field, index in self._unique_index.items():
            value = doc.get(field)
            if value is not None and index.get(value) == doc.get(ID_FIELD):
                del index[value]

    # --- lifecycle --------------------------------------------------------------

    def close(self) -> None:
        while self._detachers:
            self._detachers.pop()()
        self.emit("close")
        logger.debug("Closed collection '%s'", self.name)
