"""Named collection of subscription managers served by the HTTP surface."""

from __future__ import annotations

from collections.abc import Iterator

import structlog

from livecache.sync.subscription import SubscriptionManager

_log = structlog.get_logger(component="sync.registry")


class SubscriptionNotFoundError(KeyError):
    """No manager is registered under the requested name."""


class SubscriptionRegistry:
    """Maps subscription names to their managers, in registration order."""

    def __init__(self) -> None:
        self._managers: dict[str, SubscriptionManager] = {}

    def register(self, name: str, manager: SubscriptionManager) -> SubscriptionManager:
        if not name:
            raise ValueError("Subscription name must not be empty")
        if name in self._managers:
            raise ValueError(f"Subscription {name!r} is already registered")
        manager.name = name
        self._managers[name] = manager
        _log.info("subscription_registered", subscription=name)
        return manager

    def get(self, name: str) -> SubscriptionManager:
        try:
            return self._managers[name]
        except KeyError:
            raise SubscriptionNotFoundError(name) from None

    def __iter__(self) -> Iterator[tuple[str, SubscriptionManager]]:
        return iter(list(self._managers.items()))

    def __len__(self) -> int:
        return len(self._managers)

    def stop_all(self) -> None:
        """Stop every registered manager."""
        for name, manager in self:
            manager.stop()
            _log.debug("subscription_stopped_by_registry", subscription=name)
