"""Change source contract and the in-process implementations.

Submodules
----------
base    -- ChangeSource / SourceHandle ABCs every adapter implements.
memory  -- InMemoryChangeSource: push-driven source for tests and replay.
replay  -- ReplayChangeSource: feeds a JSON-lines snapshot log.
"""

from livecache.source.base import ChangeSource, ErrorCallback, SnapshotCallback, SourceHandle
from livecache.source.memory import Attachment, InMemoryChangeSource
from livecache.source.replay import ReplayChangeSource, decode_snapshot, read_snapshot_log

__all__ = [
    "Attachment",
    "ChangeSource",
    "ErrorCallback",
    "InMemoryChangeSource",
    "ReplayChangeSource",
    "SnapshotCallback",
    "SourceHandle",
    "decode_snapshot",
    "read_snapshot_log",
]
