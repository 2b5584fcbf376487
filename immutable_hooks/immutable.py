"""Immutable documents for a collection, with optional change events and patches.

The hook keeps every document handed back by ``insert``/``update``/``remove``
deep-frozen (unless ``production`` is set) while still letting callers edit
documents through drafts:

* before insert/update, drafts and plain documents are finished into plain
  mutable records the collection can store; with ``patches`` on, the forward
  and reverse patches of each document become the call's context;
* after insert/update, the stored result is deep-frozen and the insert/update
  event is emitted with the document(s) and the patch context;
* before remove, the storage slot is swapped for a mutable shallow copy so the
  collection can do its own bookkeeping; after remove, the result is frozen;
* every internal ``delete`` notification is re-emitted on the delete event
  with a frozen copy of the removed document.

An event whose name is empty is never emitted.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, Union

from .drafts import engine as default_engine
from .frozen import deep_freeze, is_frozen, thaw
from .hooks import Detach, HookMethods, Hooks
from .models import NAMED_EVENTS, ImmutableOptions, PatchRecord

logger = logging.getLogger(__name__)

Options = Union[ImmutableOptions, dict, None]
PatchContext = Union[Optional[PatchRecord], list[Optional[PatchRecord]]]


def immutable(methods: HookMethods, options: Options = None, defaults: Optional[dict] = None):
    """Hook factory; registers the handlers and returns the attach callable."""
    opts = ImmutableOptions.from_config(options, defaults)
    engine = opts.engine or default_engine
    insert_channel = opts.insert_channel
    update_channel = opts.update_channel
    delete_channel = opts.delete_channel

    def freeze(doc: Any) -> Any:
        if opts.production:
            return doc
        return deep_freeze(doc)

    def unfreeze_doc(doc: Any, context: list[Optional[PatchRecord]]) -> Any:
        if not engine.is_draft(doc):
            draft = engine.create_draft({})
            draft.update(doc)
            doc = draft
        if opts.patches:
            doc = engine.finish_draft(
                doc,
                lambda patches, reverse: context.append(
                    PatchRecord(patches=patches, reverse_patches=reverse)
                ),
                auto_freeze=not opts.production,
            )
        else:
            doc = engine.finish_draft(doc, auto_freeze=not opts.production)
            context.append(None)
        if is_frozen(doc):
            doc = thaw(doc)
        meta = doc.get("meta") if isinstance(doc, Mapping) else None
        if meta is not None and is_frozen(meta):
            doc["meta"] = thaw(meta)
        return doc

    def unfreeze_insert(collection, args: list) -> PatchContext:
        context: list[Optional[PatchRecord]] = []
        doc = args[0]
        if isinstance(doc, list):
            args[0] = [unfreeze_doc(item, context) for item in doc]
            return context
        args[0] = unfreeze_doc(doc, context)
        return context[0] if context else None

    def unfreeze_update(collection, args: list) -> Optional[PatchRecord]:
        doc = args[0]
        # Batches are normalized per document when the collection updates each one
        if isinstance(doc, list):
            return None
        context: list[Optional[PatchRecord]] = []
        args[0] = unfreeze_doc(doc, context)
        return context[0] if context else None

    def deep_freeze_insert(collection, doc: Any, args: list, context: PatchContext) -> Any:
        if isinstance(doc, list):
            doc = [freeze(item) for item in doc]
        else:
            doc = freeze(doc)
        insert_channel.emit(collection, doc, context)
        return doc

    def deep_freeze_update(collection, doc: Any, args: list, context: PatchContext) -> Any:
        if doc:
            doc = freeze(doc)
            update_channel.emit(collection, doc, context)
        return doc

    def deep_freeze_remove(collection, doc: Any, args: list, context: Any) -> Any:
        if doc:
            doc = freeze(doc)
        return doc

    def unfreeze_remove_doc(collection, doc: Any) -> None:
        identity = doc.get("$loki") if isinstance(doc, Mapping) else doc
        found = collection.get(identity, return_position=True)
        if found:
            stored, position = found
            collection.data[position] = thaw(stored)

    def unfreeze_remove(collection, args: list) -> None:
        doc = args[0]
        if isinstance(doc, list):
            for item in doc:
                unfreeze_remove_doc(collection, item)
        else:
            unfreeze_remove_doc(collection, doc)

    methods.before("insert", opts.priority, unfreeze_insert)
    methods.after("insert", opts.priority, deep_freeze_insert)
    methods.before("update", opts.priority, unfreeze_update)
    methods.after("update", opts.priority, deep_freeze_update)
    methods.before("remove", opts.priority, unfreeze_remove)
    methods.after("remove", opts.priority, deep_freeze_remove)

    def attach(collection) -> Detach:
        if opts.patches:
            engine.enable_patches()
        for channel in (insert_channel, update_channel, delete_channel):
            if channel.enabled and channel.name not in collection.events:
                collection.events[channel.name] = []

        def deleted(doc: Any) -> None:
            delete_channel.emit(collection, freeze(thaw(doc)))

        collection.add_listener("delete", deleted)
        if not opts.production:
            for position, doc in enumerate(collection.data):
                collection.data[position] = deep_freeze(doc)
        logger.debug(
            "Immutable hook attached to '%s' (patches=%s, production=%s)",
            collection.name, opts.patches, opts.production,
        )

        def detach() -> None:
            collection.remove_listener("delete", deleted)
            logger.debug("Immutable hook detached from '%s'", collection.name)

        return detach

    return attach


def immutable_with_events(methods: HookMethods, options: Options = None):
    """Variant of ``immutable`` that emits "inserted", "updated" and "deleted" by default."""
    return immutable(methods, options, defaults=NAMED_EVENTS)


def register_immutable(hooks: Hooks) -> Hooks:
    hooks.register("immutable", immutable)
    hooks.register("immutable-events", immutable_with_events)
    return hooks
