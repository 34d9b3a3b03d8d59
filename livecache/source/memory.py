"""In-process change source driven by explicit emit/fail calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from livecache.models.changes import ChangeRecord, Snapshot
from livecache.source.base import ChangeSource, ErrorCallback, SnapshotCallback, SourceHandle

_log = structlog.get_logger(component="source.memory")

_ALL = object()


@dataclass
class Attachment:
    """One attach() call and its callbacks."""

    attachment_id: int
    query: Any
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback
    active: bool = True


class _MemoryHandle(SourceHandle):
    def __init__(self, source: InMemoryChangeSource, attachment: Attachment) -> None:
        self._source = source
        self._attachment = attachment

    def detach(self) -> None:
        self._source._detach(self._attachment)


class InMemoryChangeSource(ChangeSource):
    """Delivers snapshots pushed by the caller to every matching attachment.

    ``emit``/``fail`` target all active attachments, or only those whose
    query equals *query* when one is given. Detached attachments never
    receive callbacks from this source; ``history`` keeps every attachment
    ever made so tests can simulate a late delivery by calling a detached
    attachment's callback directly.
    """

    def __init__(self, initial: Snapshot | None = None) -> None:
        self._initial = initial
        self._next_id = 0
        self.history: list[Attachment] = []

    @property
    def attachments(self) -> list[Attachment]:
        """Currently active attachments, in attach order."""
        return [a for a in self.history if a.active]

    def attach(
        self,
        query: Any,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> SourceHandle:
        self._next_id += 1
        attachment = Attachment(self._next_id, query, on_snapshot, on_error)
        self.history.append(attachment)
        _log.debug("source_attached", attachment_id=attachment.attachment_id, query=repr(query))
        if self._initial is not None:
            on_snapshot(self._initial)
        return _MemoryHandle(self, attachment)

    def emit(self, snapshot: Snapshot, query: Any = _ALL) -> int:
        """Deliver *snapshot*; returns the number of attachments reached."""
        targets = self._targets(query)
        for attachment in targets:
            # An earlier callback may have detached this one.
            if attachment.active:
                attachment.on_snapshot(snapshot)
        return len(targets)

    def emit_changes(self, *changes: ChangeRecord, query: Any = _ALL) -> int:
        """Deliver a snapshot built from *changes*.

        The snapshot's document list holds only the non-removed documents
        of this batch.
        """
        documents = tuple(c.doc for c in changes if c.type != "removed")
        return self.emit(Snapshot(documents=documents, changes=tuple(changes)), query=query)

    def fail(self, error: BaseException, query: Any = _ALL) -> int:
        """Report *error* to every matching attachment."""
        targets = self._targets(query)
        for attachment in targets:
            if attachment.active:
                attachment.on_error(error)
        return len(targets)

    def _targets(self, query: Any) -> list[Attachment]:
        if query is _ALL:
            return self.attachments
        return [a for a in self.attachments if a.query == query]

    def _detach(self, attachment: Attachment) -> None:
        if not attachment.active:
            return
        attachment.active = False
        _log.debug("source_detached", attachment_id=attachment.attachment_id)
