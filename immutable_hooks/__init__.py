"""Immutable documents for in-memory collections.

A collection hook that deep-freezes every document returned by
insert/update/remove, accepts copy-on-write drafts for edits, and can emit
insert/update/delete events carrying forward and reverse patches.
"""

from .collection import Collection
from .database import Database
from .drafts import (
    Draft,
    DraftEngine,
    DraftList,
    apply_patches,
    create_draft,
    enable_patches,
    finish_draft,
    is_draft,
    produce,
)
from .errors import (
    CollectionError,
    DocumentExistsError,
    DocumentNotFoundError,
    DraftError,
    DuplicateKeyError,
    FrozenRecordError,
    InvalidDocumentError,
    UnknownEventError,
    UnknownHookError,
)
from .frozen import Record, RecordList, deep_freeze, is_frozen, thaw
from .hooks import HookMethods, HookPipeline, Hooks
from .immutable import immutable, immutable_with_events, register_immutable
from .models import NAMED_EVENTS, EventChannel, ImmutableOptions, Patch, PatchOp, PatchRecord

__all__ = [
    "Collection",
    "CollectionError",
    "Database",
    "DocumentExistsError",
    "DocumentNotFoundError",
    "Draft",
    "DraftEngine",
    "DraftError",
    "DraftList",
    "DuplicateKeyError",
    "EventChannel",
    "FrozenRecordError",
    "HookMethods",
    "HookPipeline",
    "Hooks",
    "ImmutableOptions",
    "InvalidDocumentError",
    "NAMED_EVENTS",
    "Patch",
    "PatchOp",
    "PatchRecord",
    "Record",
    "RecordList",
    "UnknownEventError",
    "UnknownHookError",
    "apply_patches",
    "create_draft",
    "deep_freeze",
    "enable_patches",
    "finish_draft",
    "immutable",
    "immutable_with_events",
    "is_draft",
    "is_frozen",
    "produce",
    "register_immutable",
    "thaw",
]
