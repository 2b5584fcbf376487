"""Change feed recorded from a collection's insert/update/delete events."""

from __future__ import annotations

import functools
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from .collection import Collection
from .frozen import to_plain
from .models import ImmutableOptions, PatchRecord

logger = logging.getLogger(__name__)


class ChangeEntry(BaseModel):
    sequence: int
    event: str
    documents: list[dict] = Field(default_factory=list)
    patches: list[Optional[dict]] = Field(default_factory=list)
    recorded_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class ChangeFeed:
    """Subscribes to the enabled event channels and keeps an ordered log."""

    def __init__(self, collection: Collection, options: ImmutableOptions) -> None:
        self.collection = collection
        self._entries: list[ChangeEntry] = []
        self._subscriptions: list[tuple[str, Any]] = []
        for kind, channel in (
            ("insert", options.insert_channel),
            ("update", options.update_channel),
            ("delete", options.delete_channel),
        ):
            if not channel.enabled:
                continue
            listener = functools.partial(self._record, kind)
            collection.add_listener(channel.name, listener)
            self._subscriptions.append((channel.name, listener))

    def _record(self, kind: str, docs: Any, context: Any = None) -> None:
        documents = docs if isinstance(docs, list) else [docs]
        records = context if isinstance(context, list) else [context] * len(documents)
        entry = ChangeEntry(
            sequence=len(self._entries) + 1,
            event=kind,
            documents=[to_plain(doc) for doc in documents],
            patches=[_patch_dict(record) for record in records],
        )
        self._entries.append(entry)
        logger.debug("Recorded %s #%d (%d document(s))", kind, entry.sequence, len(documents))

    def entries(self, since: int = 0) -> list[ChangeEntry]:
        """Entries with a sequence number greater than ``since``."""
        return [entry for entry in self._entries if entry.sequence > since]

    def close(self) -> None:
        for event_name, listener in self._subscriptions:
            self.collection.remove_listener(event_name, listener)
        self._subscriptions.clear()


def _patch_dict(record: Optional[PatchRecord]) -> Optional[dict]:
    return to_plain(record.to_dict()) if record is not None else None
