"""Core data structures for livecache."""

from livecache.models.changes import ChangeRecord, ChangeType, Snapshot
from livecache.models.config import LiveCacheConfig
from livecache.models.subscription import (
    IDENTITY_EQUALITIES,
    IdentityEquality,
    KeyExtractor,
    SubscriptionIdentity,
    SubscriptionState,
    field_key,
    reference_equality,
    shallow_equality,
)

__all__ = [
    "ChangeRecord",
    "ChangeType",
    "IDENTITY_EQUALITIES",
    "IdentityEquality",
    "KeyExtractor",
    "LiveCacheConfig",
    "Snapshot",
    "SubscriptionIdentity",
    "SubscriptionState",
    "field_key",
    "reference_equality",
    "shallow_equality",
]
