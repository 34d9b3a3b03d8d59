"""Fold one snapshot's change records into a KeyedCache.

Records are applied in delivery order, so a later record for a key wins over
an earlier one in the same batch. The snapshot's own document order is never
consulted: final ordering comes entirely from KeyedCache's set/delete rules.

A failing key extractor rejects the whole batch. Keys for every record are
computed before the first mutation, so a rejected batch leaves the cache
exactly as it was. A key that cannot be hashed counts as a failed
extraction.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence

from livecache.cache.keyed_cache import KeyedCache
from livecache.errors import KeyExtractionError
from livecache.models.changes import ChangeRecord, ChangeType
from livecache.models.subscription import KeyExtractor


def reconcile(
    changes: Sequence[ChangeRecord],
    cache: KeyedCache,
    key_of: KeyExtractor,
) -> bool:
    """Apply *changes* to *cache* in place.

    Returns:
        True  -- at least one record was processed.
        False -- *changes* was empty; the cache was not touched.

    Raises:
        KeyExtractionError: *key_of* raised for one of the records.
    """
    if not changes:
        return False

    keyed: list[tuple[ChangeType, Hashable, ChangeRecord]] = []
    for position, record in enumerate(changes):
        try:
            key = key_of(record.doc)
            # Unhashable keys are rejected before any mutation.
            hash(key)
        except Exception as exc:
            raise KeyExtractionError(record, position, exc) from exc
        keyed.append((record.type, key, record))

    for change_type, key, record in keyed:
        if change_type == ChangeType.REMOVED:
            cache.delete(key)
        else:
            # MODIFIED for an absent key inserts, same as ADDED.
            cache.set(key, record.doc)
    return True
