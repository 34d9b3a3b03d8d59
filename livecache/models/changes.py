"""Change record and snapshot data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ChangeType(StrEnum):
    """Kind of change carried by a ChangeRecord."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class ChangeRecord:
    """One add/modify/remove event from a live query.

    ``index`` is the document's position in the snapshot's ordered list at
    the time of the event. It is informational only: cache order is decided
    by first appearance, never by the remote ordering.
    """

    type: ChangeType
    doc: Any
    index: int = -1

    @classmethod
    def added(cls, doc: Any, index: int = -1) -> ChangeRecord:
        return cls(ChangeType.ADDED, doc, index)

    @classmethod
    def modified(cls, doc: Any, index: int = -1) -> ChangeRecord:
        return cls(ChangeType.MODIFIED, doc, index)

    @classmethod
    def removed(cls, doc: Any, index: int = -1) -> ChangeRecord:
        return cls(ChangeType.REMOVED, doc, index)


@dataclass(frozen=True)
class Snapshot:
    """One delivery from a change source.

    Produced by a ChangeSource, consumed by the SubscriptionManager.
    ``documents`` is the source's own view of the full result set and is
    never used to order the cache.
    """

    documents: tuple[Any, ...] = ()
    changes: tuple[ChangeRecord, ...] = field(default_factory=tuple)
