"""JSONL persistence for collections and their documents."""

import json
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from .collection import Collection
from .frozen import to_plain


class CollectionSnapshot(BaseModel):
    """A collection's options and documents as written to storage."""

    name: str
    unique: list[str] = Field(default_factory=list)
    disable_meta: bool = Field(default=False, alias="disableMeta")
    hooks: list[tuple[str, dict]] = Field(default_factory=list)
    max_id: int = Field(default=0, alias="maxId")
    documents: list[dict] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @classmethod
    def of(cls, collection: Collection) -> "CollectionSnapshot":
        return cls(
            name=collection.name,
            unique=collection.unique,
            disable_meta=collection.disable_meta,
            hooks=[(name, _plain_options(options)) for name, options in collection.hooks_config],
            max_id=collection.max_id,
            documents=[to_plain(doc) for doc in collection.data],
        )


def _plain_options(options) -> dict:
    if options is None:
        return {}
    if isinstance(options, BaseModel):
        return options.model_dump(by_alias=True)
    return dict(options)


def _to_lines(snapshots: Iterable[CollectionSnapshot]) -> list[str]:
    lines = []
    for snapshot in snapshots:
        header = snapshot.model_dump(by_alias=True, exclude={"documents"})
        lines.append(json.dumps({"type": "collection", **header}))
        for doc in snapshot.documents:
            lines.append(json.dumps({"type": "document", "collection": snapshot.name, "doc": doc}))
    return lines


def _from_lines(lines: Iterable[str]) -> list[CollectionSnapshot]:
    snapshots: dict[str, CollectionSnapshot] = {}
    for line in lines:
        if not line.strip():
            continue
        record = json.loads(line)
        record_type = record.pop("type", None)
        if record_type == "collection":
            snapshot = CollectionSnapshot.model_validate(record)
            snapshots[snapshot.name] = snapshot
        elif record_type == "document":
            snapshot = snapshots.get(record["collection"])
            if snapshot is not None:
                snapshot.documents.append(record["doc"])
    return list(snapshots.values())


class JSONLStorage:
    """Handles loading and saving collections to a JSONL file."""

    def __init__(self, filepath: str = ".immutable/database.jsonl"):
        self.filepath = Path(filepath)
        self.filepath.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> Optional[list[CollectionSnapshot]]:
        """Load collection snapshots; None when nothing was saved yet."""
        if not self.filepath.exists():
            return None
        with open(self.filepath, "r", encoding="utf-8") as f:
            return _from_lines(f)

    def save(self, snapshots: Iterable[CollectionSnapshot]) -> None:
        """Rewrite the JSONL file with the current state."""
        # Write to temporary file first
        temp_path = self.filepath.with_suffix(".jsonl.tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            for line in _to_lines(snapshots):
                f.write(line + "\n")

        # Replace original file with the new version
        temp_path.replace(self.filepath)


class MemoryStorage:
    """Keeps the serialized JSONL lines in memory."""

    def __init__(self) -> None:
        self._lines: Optional[list[str]] = None

    def load(self) -> Optional[list[CollectionSnapshot]]:
        if self._lines is None:
            return None
        return _from_lines(self._lines)

    def save(self, snapshots: Iterable[CollectionSnapshot]) -> None:
        self._lines = _to_lines(snapshots)
