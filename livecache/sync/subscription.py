"""Subscription lifecycle around a KeyedCache.

State machine::

    IDLE --use(identity)--> SUBSCRIBED
    SUBSCRIBED --use(other identity)--> IDLE --> SUBSCRIBED  (fresh cache)
    SUBSCRIBED --stop()--> IDLE                               (cache discarded)
    SUBSCRIBED --source error--> IDLE                         (results kept)

Every attachment gets a new generation number. Deliveries carrying an older
generation are dropped, which guards against snapshots that arrive after a
detach.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog

from livecache.cache.keyed_cache import KeyedCache
from livecache.errors import KeyExtractionError, LiveCacheError
from livecache.models.changes import Snapshot
from livecache.models.subscription import (
    IdentityEquality,
    SubscriptionIdentity,
    SubscriptionState,
    reference_equality,
)
from livecache.observability.metrics import (
    active_subscriptions,
    change_records_total,
    publications_total,
    snapshots_total,
    source_errors_total,
)
from livecache.source.base import ChangeSource, SourceHandle
from livecache.sync.inbox import Delivery, Inbox
from livecache.sync.reconciler import reconcile

_log = structlog.get_logger(component="sync.subscription")

ResultSequence = tuple[Any, ...]
ResultsListener = Callable[[ResultSequence], None]
ErrorListener = Callable[[BaseException], None]

EMPTY_RESULTS: ResultSequence = ()


class SubscriptionManager:
    """Owns one KeyedCache and the change-source attachment that feeds it.

    Consumers call ``use()`` with the current SubscriptionIdentity as often
    as they like; only an identity that differs under *equality* causes a
    resubscribe. Published result sequences are tuples and are replaced
    only when a snapshot actually changed the cache.
    """

    def __init__(
        self,
        source: ChangeSource,
        equality: IdentityEquality = reference_equality,
        name: str = "",
    ) -> None:
        self.name = name
        self._source = source
        self._equality = equality
        self._inbox = Inbox(self._on_delivery)

        self._state = SubscriptionState.IDLE
        self._identity: SubscriptionIdentity | None = None
        self._cache: KeyedCache | None = None
        self._handle: SourceHandle | None = None
        self._generation = 0

        self._results: ResultSequence = EMPTY_RESULTS
        self._version = 0
        self._last_error: BaseException | None = None

        self._results_listeners: list[ResultsListener] = []
        self._error_listeners: list[ErrorListener] = []

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def identity(self) -> SubscriptionIdentity | None:
        return self._identity

    @property
    def results(self) -> ResultSequence:
        """The last published result sequence."""
        return self._results

    @property
    def version(self) -> int:
        """Number of publications so far; polling observers compare this."""
        return self._version

    @property
    def last_error(self) -> BaseException | None:
        return self._last_error

    @property
    def size(self) -> int:
        return len(self._results)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def on_results(self, listener: ResultsListener) -> Callable[[], None]:
        """Register *listener* for published result sequences.

        Returns a callable that unregisters it.
        """
        self._results_listeners.append(listener)
        return lambda: _discard(self._results_listeners, listener)

    def on_error(self, listener: ErrorListener) -> Callable[[], None]:
        """Register *listener* for source and reconciliation errors."""
        self._error_listeners.append(listener)
        return lambda: _discard(self._error_listeners, listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def use(self, identity: SubscriptionIdentity) -> None:
        """Make *identity* the active subscription.

        A no-op when *identity* equals the current one and the manager is
        subscribed, or when the current identity failed and has not been
        restarted.
        """
        current = self._identity
        if current is not None and self._equality(current, identity):
            if self._state is SubscriptionState.SUBSCRIBED or self._last_error is not None:
                return

        if self._state is SubscriptionState.SUBSCRIBED:
            _log.info("subscription_identity_changed", subscription=self.name)
            self._teardown()
        self._subscribe(identity)

    def stop(self) -> None:
        """Detach from the source and discard the cache. Idempotent."""
        if self._state is SubscriptionState.SUBSCRIBED:
            self._teardown()
            _log.info("subscription_stopped", subscription=self.name)
        self._identity = None
        self._last_error = None
        self._cache = None
        if self._results:
            self._publish(EMPTY_RESULTS)

    def restart(self) -> None:
        """Resubscribe the current identity from an empty cache.

        This is the hook external retry policies use after a source error.
        """
        identity = self._identity
        if identity is None:
            raise LiveCacheError("No subscription identity to restart")
        if self._state is SubscriptionState.SUBSCRIBED:
            self._teardown()
        _log.info("subscription_restarting", subscription=self.name)
        self._subscribe(identity)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _subscribe(self, identity: SubscriptionIdentity) -> None:
        self._generation += 1
        generation = self._generation
        self._identity = identity
        self._last_error = None
        self._cache = KeyedCache()
        self._state = SubscriptionState.SUBSCRIBED
        active_subscriptions.inc()
        if self._results:
            self._publish(EMPTY_RESULTS)

        _log.info("subscription_started", subscription=self.name, generation=generation)

        def on_snapshot(snapshot: Snapshot) -> None:
            self._inbox.post(Delivery(generation, snapshot=snapshot))

        def on_error(error: BaseException) -> None:
            self._inbox.post(Delivery(generation, error=error))

        try:
            handle = self._source.attach(identity.query, on_snapshot, on_error)
        except Exception as exc:
            if generation == self._generation:
                self._fail(exc)
            return

        if generation != self._generation:
            # Torn down by a delivery made from inside attach().
            handle.detach()
            return
        self._handle = handle

    def _teardown(self) -> None:
        """Detach the source and leave SUBSCRIBED; results are untouched."""
        self._generation += 1
        handle, self._handle = self._handle, None
        self._state = SubscriptionState.IDLE
        self._cache = None
        active_subscriptions.dec()
        if handle is not None:
            handle.detach()

    def _on_delivery(self, delivery: Delivery) -> None:
        if delivery.generation != self._generation or self._state is not SubscriptionState.SUBSCRIBED:
            snapshots_total.labels(outcome="dropped").inc()
            _log.debug(
                "late_delivery_dropped",
                subscription=self.name,
                generation=delivery.generation,
                current_generation=self._generation,
            )
            return
        if delivery.error is not None:
            self._fail(delivery.error)
        elif delivery.snapshot is not None:
            self._apply(delivery.snapshot)

    def _apply(self, snapshot: Snapshot) -> None:
        assert self._cache is not None
        assert self._identity is not None
        try:
            changed = reconcile(snapshot.changes, self._cache, self._identity.key_of)
        except KeyExtractionError as exc:
            snapshots_total.labels(outcome="failed").inc()
            self._fail(exc)
            return

        if not changed:
            snapshots_total.labels(outcome="unchanged").inc()
            _log.debug("snapshot_unchanged", subscription=self.name)
            return

        snapshots_total.labels(outcome="applied").inc()
        for record in snapshot.changes:
            change_records_total.labels(change_type=record.type).inc()
        self._publish(tuple(doc for _, doc in self._cache.entries()))

    def _fail(self, error: BaseException) -> None:
        source_errors_total.inc()
        _log.warning(
            "subscription_failed",
            subscription=self.name,
            error=str(error),
            error_type=type(error).__name__,
        )
        if self._state is SubscriptionState.SUBSCRIBED:
            self._teardown()
        self._last_error = error
        for listener in list(self._error_listeners):
            try:
                listener(error)
            except Exception as exc:  # noqa: BLE001
                _log.error("error_listener_failed", subscription=self.name, error=str(exc))

    def _publish(self, results: ResultSequence) -> None:
        self._results = results
        self._version += 1
        publications_total.inc()
        _log.debug(
            "results_published",
            subscription=self.name,
            version=self._version,
            size=len(results),
        )
        for listener in list(self._results_listeners):
            try:
                listener(results)
            except Exception as exc:  # noqa: BLE001
                _log.error("results_listener_failed", subscription=self.name, error=str(exc))


def _discard(listeners: list[Any], listener: Any) -> None:
    try:
        listeners.remove(listener)
    except ValueError:
        pass
