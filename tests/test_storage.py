"""Tests for JSONL persistence and database reload."""

import json

from immutable_hooks import Database
from immutable_hooks.frozen import is_frozen
from immutable_hooks.storage import JSONLStorage, MemoryStorage


def test_load_returns_false_when_nothing_saved(tmp_path, hooks):
    db = Database(str(tmp_path / "db.jsonl"), hooks=hooks)

    assert db.load() is False
    assert db.list_collections() == []


def test_jsonl_file_layout(tmp_path, hooks):
    """Test JSONL record layout."""
    path = tmp_path / "db.jsonl"
    db = Database(str(path), hooks=hooks)
    users = db.add_collection("users", unique=["username"], disable_meta=True)
    users.insert([{"username": "joe"}, {"username": "jack"}])

    db.save()

    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [r["type"] for r in records] == ["collection", "document", "document"]
    assert records[0]["name"] == "users"
    assert records[0]["unique"] == ["username"]
    assert records[0]["disableMeta"] is True
    assert records[0]["maxId"] == 2
    assert records[1] == {"type": "document", "collection": "users", "doc": {"username": "joe", "$loki": 1}}
    assert not path.with_suffix(".jsonl.tmp").exists()


def test_reload_restores_frozen_documents_and_hooks(tmp_path, hooks):
    """Test reloaded documents are frozen by the reattached hook."""
    path = str(tmp_path / "db.jsonl")
    db = Database(path, hooks=hooks)
    collection = db.add_collection(
        "items", hooks_config=[("immutable", {"insertEvent": "inserted", "patches": True})]
    )
    collection.insert({"id": "id1", "name": {"first": "F"}})
    db.save()
    db.close()

    reloaded = Database(path, hooks=hooks)
    assert reloaded.load() is True
    items = reloaded.get_collection("items")

    doc = items.get(1)
    assert doc["name"] == {"first": "F"}
    assert is_frozen(doc) and is_frozen(doc["name"])
    assert "inserted" in items.events
    assert items.insert({"id": "id2"})["$loki"] == 2
    reloaded.close()


def test_reload_keeps_production_documents_mutable(hooks):
    storage = MemoryStorage()
    db = Database("memory.db", storage=storage, hooks=hooks)
    db.add_collection("items", hooks_config=[("immutable", {"production": True})]).insert({"id": "id1"})
    db.save()

    reloaded = Database("memory.db", storage=storage, hooks=hooks)
    reloaded.load()

    assert not is_frozen(reloaded.get_collection("items").get(1))


def test_load_replaces_existing_collections(hooks):
    """Test load drops collections that were not saved."""
    storage = MemoryStorage()
    db = Database("memory.db", storage=storage, hooks=hooks)
    db.add_collection("saved")
    db.save()
    stale = db.add_collection("stale")

    db.load()

    assert db.list_collections() == ["saved"]
    assert stale.data == []


def test_storage_skips_blank_lines_and_orphan_documents(tmp_path):
    path = tmp_path / "db.jsonl"
    path.write_text(
        "\n".join([
            json.dumps({"type": "document", "collection": "missing", "doc": {"$loki": 1}}),
            "",
            json.dumps({"type": "collection", "name": "items", "hooks": [["immutable", {}]]}),
            json.dumps({"type": "document", "collection": "items", "doc": {"$loki": 3, "a": 1}}),
        ]),
        encoding="utf-8",
    )

    snapshots = JSONLStorage(str(path)).load()

    assert len(snapshots) == 1
    assert snapshots[0].hooks == [("immutable", {})]
    assert snapshots[0].documents == [{"$loki": 3, "a": 1}]
