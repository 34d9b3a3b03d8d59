"""Shared fixtures for livecache integration tests.

Provides an in-memory change source, a manager wired to it, and small
document helpers so tests can drive full snapshot cycles without any
remote store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest

from livecache.models.changes import ChangeRecord
from livecache.models.subscription import SubscriptionIdentity
from livecache.source.memory import InMemoryChangeSource
from livecache.sync.subscription import SubscriptionManager

# ---------------------------------------------------------------------------
# Document helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Todo:
    key: str
    title: str = ""
    done: bool = False


def todo_key(doc: Todo) -> str:
    return doc.key


TODOS_QUERY = {"collection": "todos", "where": [("done", "==", False)]}


def added(doc: Any, index: int = 0) -> ChangeRecord:
    return ChangeRecord.added(doc, index)


def modified(doc: Any, index: int = 0) -> ChangeRecord:
    return ChangeRecord.modified(doc, index)


def removed(doc: Any, index: int = 0) -> ChangeRecord:
    return ChangeRecord.removed(doc, index)


class Recorder:
    """Collects everything a manager publishes."""

    def __init__(self, manager: SubscriptionManager) -> None:
        self.results: list[tuple[Any, ...]] = []
        self.errors: list[BaseException] = []
        manager.on_results(self.results.append)
        manager.on_error(self.errors.append)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def source() -> InMemoryChangeSource:
    return InMemoryChangeSource()


@pytest.fixture
def manager(source: InMemoryChangeSource) -> SubscriptionManager:
    return SubscriptionManager(source, name="todos")


@pytest.fixture
def identity() -> SubscriptionIdentity:
    return SubscriptionIdentity(TODOS_QUERY, todo_key)


@pytest.fixture
def recorder(manager: SubscriptionManager) -> Recorder:
    return Recorder(manager)
