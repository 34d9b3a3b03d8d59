"""Reconciliation and subscription lifecycle.

Exposes:
    reconcile            -- Fold a batch of change records into a KeyedCache.
    Inbox                -- Sequential, non-overlapping delivery boundary.
    SubscriptionManager  -- Owns a cache, its source attachment and publications.
    SubscriptionRegistry -- Named managers for the HTTP surface.
"""

from livecache.sync.inbox import Delivery, Inbox
from livecache.sync.reconciler import reconcile
from livecache.sync.registry import SubscriptionNotFoundError, SubscriptionRegistry
from livecache.sync.subscription import EMPTY_RESULTS, ResultSequence, SubscriptionManager

__all__ = [
    "Delivery",
    "EMPTY_RESULTS",
    "Inbox",
    "ResultSequence",
    "SubscriptionManager",
    "SubscriptionNotFoundError",
    "SubscriptionRegistry",
    "reconcile",
]
