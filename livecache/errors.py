"""Exception hierarchy for livecache."""

from __future__ import annotations

from typing import Any


class LiveCacheError(Exception):
    """Base class for every error raised by livecache."""


class SourceError(LiveCacheError):
    """A change source failed (transport, permission, invalid query).

    Source adapters may raise or report this, but any exception a source
    reports is forwarded to consumers unchanged; the manager never wraps it.
    """


class KeyExtractionError(LiveCacheError):
    """The key extractor raised for a document; the whole batch was rejected."""

    def __init__(self, record: Any, position: int, cause: Exception) -> None:
        super().__init__(f"Key extraction failed for change record #{position}: {cause}")
        self.record = record
        self.position = position
        self.cause = cause


class SnapshotFormatError(LiveCacheError):
    """A replay log line could not be decoded into a snapshot."""

    def __init__(self, line_no: int, reason: str) -> None:
        super().__init__(f"Invalid snapshot on line {line_no}: {reason}")
        self.line_no = line_no
        self.reason = reason
