"""Subscription identity and lifecycle state."""

from __future__ import annotations

from collections.abc import Callable, Hashable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

KeyExtractor = Callable[[Any], Hashable]


class SubscriptionState(StrEnum):
    """Lifecycle state of a SubscriptionManager."""

    IDLE = "idle"
    SUBSCRIBED = "subscribed"


@dataclass(frozen=True, eq=False)
class SubscriptionIdentity:
    """The (query, key extractor) pair whose change triggers a resubscribe.

    Instances are not compared field by field; managers compare them
    through an IdentityEquality, reference-based by default.
    """

    query: Any
    key_of: KeyExtractor


IdentityEquality = Callable[[SubscriptionIdentity, SubscriptionIdentity], bool]


def reference_equality(a: SubscriptionIdentity, b: SubscriptionIdentity) -> bool:
    """Same query object and same extractor object."""
    return a is b or (a.query is b.query and a.key_of is b.key_of)


def shallow_equality(a: SubscriptionIdentity, b: SubscriptionIdentity) -> bool:
    """Equal queries (``==``) and the same extractor object."""
    return a is b or (a.key_of is b.key_of and a.query == b.query)


IDENTITY_EQUALITIES: dict[str, IdentityEquality] = {
    "reference": reference_equality,
    "shallow": shallow_equality,
}


def field_key(path: str) -> KeyExtractor:
    """Build a key extractor reading a dotted *path* from mapping documents.

    ``field_key("meta.id")`` returns ``doc["meta"]["id"]``. A missing field
    raises KeyError, which the reconciler reports as a KeyExtractionError.
    """
    parts = tuple(p for p in path.split(".") if p)
    if not parts:
        raise ValueError("Key path must not be empty")

    def _key_of(doc: Any) -> Hashable:
        value = doc
        for part in parts:
            value = value[part]
        return value  # type: ignore[no-any-return]

    _key_of.__qualname__ = f"field_key({path!r})"
    return _key_of
