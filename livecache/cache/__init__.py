"""Cache layer for livecache.

Holds the authoritative set of documents for one subscription. The cache is
mutated only by the reconciler; consumers see it through the immutable
result sequences a SubscriptionManager publishes.

Submodules:
    keyed_cache -- Insertion-ordered keyed cache with update-in-place semantics.
"""

from livecache.cache.keyed_cache import KeyedCache, check_consistency

__all__ = ["KeyedCache", "check_consistency"]
