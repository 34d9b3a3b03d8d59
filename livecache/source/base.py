"""Contract between a live-query backend and a SubscriptionManager."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from livecache.models.changes import Snapshot

SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[BaseException], None]


class SourceHandle(ABC):
    """A cancellable attachment returned by ChangeSource.attach."""

    @abstractmethod
    def detach(self) -> None:
        """Stop further callback invocations.

        Must be idempotent. Implementations should not fire callbacks once
        this returns; managers still guard against late deliveries.
        """


class ChangeSource(ABC):
    """Abstract base class for every change source.

    A source runs a live query and reports each update as a Snapshot in a
    total order. Failures (permission denied, transport loss, invalid
    query) are reported once through *on_error*; the source does not retry.
    """

    @abstractmethod
    def attach(
        self,
        query: Any,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> SourceHandle:
        """Start delivering snapshots for *query*.

        Callbacks may fire synchronously from inside this call.
        """
