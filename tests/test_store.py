"""Tests for the document store behind the MCP server."""

import tempfile
from pathlib import Path

import pytest

from immutable_hooks.errors import DocumentNotFoundError, DuplicateKeyError
from immutable_hooks.store import DocumentStore


def test_insert_update_remove_record_changes():
    """Test writes are recorded in the change feed."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = DocumentStore(storage_path=str(Path(tmpdir) / "test.jsonl"))

        inserted = store.insert_documents([{"title": "a"}, {"title": "b"}])
        assert [doc["$loki"] for doc in inserted] == [1, 2]

        updated = store.update_document(1, set_fields={"title": "a2"}, unset_fields=["missing"])
        assert updated["title"] == "a2"
        removed = store.remove_document(2)
        assert removed == {"title": "b"}

        changes = store.changes()
        assert [entry["event"] for entry in changes] == ["insert", "update", "delete"]
        assert changes[0]["patches"][1] == {
            "patches": [{"op": "add", "path": ["title"], "value": "b"}],
            "reversePatches": [{"op": "remove", "path": ["title"]}],
        }
        assert changes[1]["patches"] == [{
            "patches": [{"op": "replace", "path": ["title"], "value": "a2"}],
            "reversePatches": [{"op": "replace", "path": ["title"], "value": "a"}],
        }]
        assert changes[2]["patches"] == [None]
        assert [entry["sequence"] for entry in store.changes(since=2)] == [3]


def test_unset_fields_produce_remove_patches():
    """Test unsetting a field."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = DocumentStore(storage_path=str(Path(tmpdir) / "test.jsonl"))
        store.insert_documents([{"title": "a", "draft": True}])

        updated = store.update_document(1, unset_fields=["draft"])

        assert "draft" not in updated
        assert store.changes(since=1)[0]["patches"][0]["patches"] == [{"op": "remove", "path": ["draft"]}]


def test_missing_documents():
    """Test operations on unknown identities."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = DocumentStore(storage_path=str(Path(tmpdir) / "test.jsonl"))

        assert store.get_document(9) is None
        with pytest.raises(DocumentNotFoundError):
            store.update_document(9, set_fields={"a": 1})
        with pytest.raises(DocumentNotFoundError):
            store.remove_document(9)


def test_unique_fields():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = DocumentStore(storage_path=str(Path(tmpdir) / "test.jsonl"), unique=("slug",))
        store.insert_documents([{"slug": "one"}, {"slug": "two"}])

        with pytest.raises(DuplicateKeyError):
            store.update_document(2, set_fields={"slug": "one"})
        assert store.get_document(2)["slug"] == "two"


def test_documents_persist_across_instances():
    """Test documents survive a reload."""
    with tempfile.TemporaryDirectory() as tmpdir:
        storage_path = str(Path(tmpdir) / "test.jsonl")
        first = DocumentStore(storage_path=storage_path)
        first.insert_documents([{"title": "a", "n": 1}, {"title": "b", "n": 5}])

        second = DocumentStore(storage_path=storage_path)

        assert [doc["title"] for doc in second.find_documents({"n": {"$gt": 2}})] == ["b"]
        assert second.options.patches is True
        assert second.changes() == []
        assert second.insert_documents([{"title": "c"}])[0]["$loki"] == 3


def test_named_events_are_registered_on_the_collection():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = DocumentStore(storage_path=str(Path(tmpdir) / "test.jsonl"), options={"production": True})

        assert {"inserted", "updated", "deleted"} <= set(store.collection.events)
        assert store.options.production is True
        store.save()
        assert (Path(tmpdir) / "test.jsonl").exists()


def test_project_config_supplies_defaults(monkeypatch):
    """Test project config overrides store defaults."""
    monkeypatch.delenv("IMMUTABLE_PRODUCTION", raising=False)
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.json"
        config_path.write_text('{"immutable": {"production": true, "updateEvent": "changed"}}', encoding="utf-8")
        store = DocumentStore(storage_path=str(Path(tmpdir) / "test.jsonl"), config_path=config_path)

        store.insert_documents([{"title": "a"}])
        store.update_document(1, set_fields={"title": "b"})

        assert store.options.production is True
        assert store.options.update_event == "changed"
        assert store.options.insert_event == "inserted"
        assert [entry["event"] for entry in store.changes()] == ["insert", "update"]
