"""Tests for the config loader and option parsing."""

import json
from unittest.mock import Mock

from immutable_hooks.config import DEFAULT_SETTINGS, PRODUCTION_ENV, load_hook_config, load_immutable_options
from immutable_hooks.models import DEFAULT_PRIORITY, NAMED_EVENTS, EventChannel, ImmutableOptions


def _write(path, payload):
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
    return path


def test_missing_file_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv(PRODUCTION_ENV, raising=False)

    assert load_hook_config(tmp_path / "config.json") == DEFAULT_SETTINGS


def test_section_merges_with_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv(PRODUCTION_ENV, raising=False)
    path = _write(tmp_path / "config.json", {"immutable": {"patches": True, "removeEvent": "gone"}, "other": 1})

    config = load_hook_config(path)

    assert config["patches"] is True
    assert config["deleteEvent"] == "gone"
    assert "removeEvent" not in config
    assert config["priority"] == DEFAULT_PRIORITY


def test_invalid_json_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv(PRODUCTION_ENV, raising=False)
    path = _write(tmp_path / "config.json", "{not json")

    assert load_hook_config(path) == DEFAULT_SETTINGS


def test_environment_forces_production(tmp_path, monkeypatch):
    monkeypatch.setenv(PRODUCTION_ENV, "true")
    path = _write(tmp_path / "config.json", {"immutable": {"production": False}})

    options = load_immutable_options(path)

    assert options.production is True
    assert options.priority == DEFAULT_PRIORITY


def test_options_accept_aliases_and_field_names():
    assert ImmutableOptions.model_validate({"updateEvent": "u"}).update_event == "u"
    assert ImmutableOptions.model_validate({"update_event": "u"}).update_event == "u"
    assert ImmutableOptions.model_validate({"removeEvent": "r"}).delete_channel.name == "r"
    assert not ImmutableOptions().insert_channel.enabled


def test_explicit_options_override_defaults():
    options = ImmutableOptions.from_config({"update_event": "", "patches": True}, NAMED_EVENTS)

    assert options.insert_event == "inserted"
    assert options.update_event == ""
    assert options.delete_event == "deleted"
    assert options.patches is True
    assert ImmutableOptions.from_config(options) is options


def test_options_model_gets_defaults():
    options = ImmutableOptions.from_config(ImmutableOptions(update_event="changed"), NAMED_EVENTS)

    assert options.insert_event == "inserted"
    assert options.update_event == "changed"
    assert options.delete_event == "deleted"


def test_event_channels():
    emitter = Mock()

    EventChannel.disabled().emit(emitter, {"id": 1})
    EventChannel.named("inserted").emit(emitter, {"id": 1}, None)

    emitter.emit.assert_called_once_with("inserted", {"id": 1}, None)
    assert not EventChannel.disabled().enabled
    assert ImmutableOptions(insertEvent="inserted").insert_channel == EventChannel.named("inserted")
    assert ImmutableOptions().delete_channel == EventChannel.disabled()
