"""Replay a recorded JSON-lines snapshot log through a change source.

Each non-blank line is one delivery:

    {"documents": [...], "changes": [{"type": "added", "doc": {...}, "index": 0}]}

or a simulated source failure:

    {"error": "permission denied"}
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import structlog

from livecache.errors import SnapshotFormatError, SourceError
from livecache.models.changes import ChangeRecord, ChangeType, Snapshot
from livecache.source.memory import InMemoryChangeSource

_log = structlog.get_logger(component="source.replay")

ReplayEntry = Snapshot | SourceError


def decode_snapshot(obj: Any, line_no: int = 0) -> ReplayEntry:
    """Decode one parsed log line into a Snapshot or a SourceError."""
    if not isinstance(obj, dict):
        raise SnapshotFormatError(line_no, "expected a JSON object")
    if "error" in obj:
        return SourceError(str(obj["error"]))

    raw_changes = obj.get("changes", [])
    if not isinstance(raw_changes, list):
        raise SnapshotFormatError(line_no, "'changes' must be a list")

    changes: list[ChangeRecord] = []
    for raw in raw_changes:
        if not isinstance(raw, dict) or "doc" not in raw:
            raise SnapshotFormatError(line_no, "each change needs 'type' and 'doc'")
        try:
            change_type = ChangeType(str(raw.get("type", "")).lower())
        except ValueError:
            raise SnapshotFormatError(line_no, f"unknown change type {raw.get('type')!r}") from None
        index = raw.get("index", -1)
        if not isinstance(index, int):
            raise SnapshotFormatError(line_no, "'index' must be an integer")
        changes.append(ChangeRecord(change_type, raw["doc"], index))

    documents = obj.get("documents", [])
    if not isinstance(documents, list):
        raise SnapshotFormatError(line_no, "'documents' must be a list")
    return Snapshot(documents=tuple(documents), changes=tuple(changes))


def read_snapshot_log(path: str | Path) -> Iterator[ReplayEntry]:
    """Yield the entries of a snapshot log, skipping blank lines."""
    with Path(path).open(encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError as exc:
                raise SnapshotFormatError(line_no, exc.msg) from exc
            yield decode_snapshot(obj, line_no)


class ReplayChangeSource(InMemoryChangeSource):
    """In-memory source preloaded with recorded entries.

    Nothing is delivered on attach; ``play()`` pushes the recorded entries
    in order to whoever is attached at that moment.
    """

    def __init__(self, entries: list[ReplayEntry]) -> None:
        super().__init__()
        self.entries = entries

    @classmethod
    def from_file(cls, path: str | Path) -> ReplayChangeSource:
        entries = list(read_snapshot_log(path))
        _log.info("replay_log_loaded", path=str(path), entries=len(entries))
        return cls(entries)

    def play(self) -> int:
        """Deliver every entry; returns how many were delivered.

        Stops early once no attachment is left, e.g. after a subscriber
        tore down on an error entry.
        """
        delivered = 0
        for entry in self.entries:
            if not self.attachments:
                break
            if isinstance(entry, SourceError):
                self.fail(entry)
            else:
                self.emit(entry)
            delivered += 1
        return delivered
