"""Document store backing the MCP server: one immutable collection plus its change feed."""

from pathlib import Path
from typing import Optional

from .collection import Collection
from .config import load_hook_config
from .database import Database
from .drafts import create_draft
from .errors import DocumentNotFoundError
from .feed import ChangeFeed
from .frozen import to_plain
from .hooks import Hooks
from .immutable import register_immutable
from .models import NAMED_EVENTS, ImmutableOptions

STORE_DEFAULTS = {**NAMED_EVENTS, "patches": True}


class DocumentStore:
    def __init__(
        self,
        storage_path: str = ".immutable/documents.jsonl",
        collection_name: str = "documents",
        unique: tuple[str, ...] = (),
        options: Optional[dict] = None,
        config_path: Optional[Path] = None,
    ) -> None:
        self.db = Database(storage_path, hooks=register_immutable(Hooks()))
        self.db.load()
        collection = self.db.get_collection(collection_name)
        if collection is None:
            settings = ImmutableOptions.from_config(options, _store_defaults(config_path)).model_dump()
            collection = self.db.add_collection(
                collection_name,
                unique=unique,
                hooks_config=[("immutable", settings)],
            )
        self.collection: Collection = collection
        self.options = _hook_options(collection)
        self.feed = ChangeFeed(collection, self.options)

    def save(self) -> None:
        self.db.save()

    def insert_documents(self, documents: list[dict]) -> list[dict]:
        inserted = self.collection.insert(list(documents))
        self.save()
        return [to_plain(doc) for doc in inserted]

    def update_document(
        self,
        identity: int,
        set_fields: Optional[dict] = None,
        unset_fields: Optional[list[str]] = None,
    ) -> dict:
        """Apply field edits through a draft so the update carries patches."""
        doc = self.collection.get(identity)
        if doc is None:
            raise DocumentNotFoundError(f"Document {identity} not found.")
        draft = create_draft(doc)
        for field, value in (set_fields or {}).items():
            draft[field] = value
        for field in unset_fields or []:
            if field in draft:
                del draft[field]
        updated = self.collection.update(draft)
        self.save()
        return to_plain(updated)

    def remove_document(self, identity: int) -> dict:
        removed = self.collection.remove(identity)
        self.save()
        return to_plain(removed)

    def get_document(self, identity: int) -> Optional[dict]:
        doc = self.collection.get(identity)
        return None if doc is None else to_plain(doc)

    def find_documents(self, query: Optional[dict] = None) -> list[dict]:
        return [to_plain(doc) for doc in self.collection.find(query)]

    def changes(self, since: int = 0) -> list[dict]:
        return [entry.model_dump() for entry in self.feed.entries(since)]


def _hook_options(collection: Collection) -> ImmutableOptions:
    for name, settings in collection.hooks_config:
        if name == "immutable":
            return ImmutableOptions.from_config(settings)
        if name == "immutable-events":
            return ImmutableOptions.from_config(settings, NAMED_EVENTS)
    return ImmutableOptions()


def _store_defaults(config_path: Optional[Path]) -> dict:
    """Project config over the store defaults; empty event names keep the store's."""
    config = load_hook_config(config_path)
    defaults = dict(STORE_DEFAULTS)
    defaults["priority"] = config["priority"]
    defaults["production"] = config["production"]
    for key in NAMED_EVENTS:
        if config.get(key):
            defaults[key] = config[key]
    return defaults
