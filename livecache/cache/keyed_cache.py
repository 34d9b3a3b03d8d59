"""Insertion-ordered keyed document cache.

Ordering contract:
    * Inserting a new key appends it to the iteration order.
    * Overwriting an existing key keeps its original position.
    * Deleting a key and inserting it again appends it at the end.

Iteration order therefore changes only when keys first appear or disappear,
never because an existing document was modified.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterator
from typing import Any

from livecache.models.subscription import KeyExtractor


class KeyedCache:
    """Mapping of key -> document with a stable, insertion-ordered view."""

    __slots__ = ("_store",)

    def __init__(self) -> None:
        # dict preserves insertion order and keeps position on overwrite.
        self._store: dict[Hashable, Any] = {}

    def get(self, key: Hashable) -> Any | None:
        """Return the document stored under *key*, or None."""
        return self._store.get(key)

    def set(self, key: Hashable, doc: Any) -> None:
        """Insert or overwrite *key*; an overwrite keeps the key's position."""
        self._store[key] = doc

    def delete(self, key: Hashable) -> None:
        """Remove *key*. Absent keys are ignored."""
        self._store.pop(key, None)

    def entries(self) -> Iterator[tuple[Hashable, Any]]:
        """Yield ``(key, document)`` pairs in insertion order.

        Each call starts a fresh pass over the current contents. The cache
        must not be mutated while a pass is in progress.
        """
        yield from self._store.items()

    def keys(self) -> Iterator[Hashable]:
        return iter(self._store)

    def values(self) -> Iterator[Any]:
        return iter(self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __repr__(self) -> str:
        return f"KeyedCache(size={len(self._store)})"


def check_consistency(cache: KeyedCache, key_of: KeyExtractor) -> list[Hashable]:
    """Return the keys whose stored document does not map back to that key.

    An empty list means every value satisfies ``key_of(value) == key``. A
    non-empty result points at a non-deterministic or non-unique key
    extractor. Intended for tests; the reconciler never calls it.
    """
    return [key for key, doc in cache.entries() if key_of(doc) != key]
