"""A named set of collections with save/load to a storage backend."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Optional, Union

from .collection import Collection
from .hooks import Hooks
from .storage import CollectionSnapshot, JSONLStorage, MemoryStorage

logger = logging.getLogger(__name__)

Storage = Union[JSONLStorage, MemoryStorage]


class Database:
    def __init__(self, filename: str, storage: Optional[Storage] = None, hooks: Optional[Hooks] = None) -> None:
        self.filename = filename
        self.storage = storage if storage is not None else JSONLStorage(filename)
        self.hooks = hooks or Hooks()
        self._collections: dict[str, Collection] = {}

    def add_collection(
        self,
        name: str,
        *,
        unique: Iterable[str] = (),
        disable_meta: bool = False,
        hooks_config: Iterable[tuple[str, Any]] = (),
    ) -> Collection:
        existing = self._collections.get(name)
        if existing is not None:
            return existing
        collection = Collection(
            name,
            unique=unique,
            disable_meta=disable_meta,
            hooks=self.hooks,
            hooks_config=hooks_config,
        )
        self._collections[name] = collection
        return collection

    def get_collection(self, name: str) -> Optional[Collection]:
        return self._collections.get(name)

    def list_collections(self) -> list[str]:
        return list(self._collections)

    def remove_collection(self, name: str) -> None:
        collection = self._collections.pop(name, None)
        if collection is not None:
            collection.close()

    def save(self) -> None:
        snapshots = [CollectionSnapshot.of(c) for c in self._collections.values()]
        self.storage.save(snapshots)
        logger.info("Saved %d collection(s) to %s", len(snapshots), self.filename)

    def load(self) -> bool:
        """Replace the in-memory collections with the saved ones.

        Returns False when the storage holds nothing yet. Hooks are attached
        after the documents are restored.
        """
        snapshots = self.storage.load()
        if snapshots is None:
            return False
        for name in list(self._collections):
            self.remove_collection(name)
        for snapshot in snapshots:
            self._collections[snapshot.name] = Collection(
                snapshot.name,
                unique=snapshot.unique,
                disable_meta=snapshot.disable_meta,
                hooks=self.hooks,
                hooks_config=snapshot.hooks,
                documents=snapshot.documents,
                max_id=snapshot.max_id,
            )
        logger.info("Loaded %d collection(s) from %s", len(snapshots), self.filename)
        return True

    def close(self) -> None:
        for name in list(self._collections):
            self.remove_collection(name)
