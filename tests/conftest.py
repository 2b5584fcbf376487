"""Shared fixtures for the immutable hook tests."""

import pytest

from immutable_hooks import Database, Hooks, register_immutable
from immutable_hooks.storage import MemoryStorage


@pytest.fixture
def hooks():
    return register_immutable(Hooks())


@pytest.fixture
def db(hooks):
    database = Database("memory.db", storage=MemoryStorage(), hooks=hooks)
    yield database
    database.close()
