"""Integration tests for the SubscriptionManager state machine.

Exercises IDLE <-> SUBSCRIBED transitions, identity tracking, publish-on-change,
the detach guard against late snapshots, and source error handling.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from livecache.errors import KeyExtractionError, LiveCacheError, SourceError
from livecache.models.changes import Snapshot
from livecache.models.subscription import (
    SubscriptionIdentity,
    SubscriptionState,
    shallow_equality,
)
from livecache.source.memory import InMemoryChangeSource
from livecache.sync.subscription import EMPTY_RESULTS, SubscriptionManager

from .conftest import TODOS_QUERY, Recorder, Todo, added, modified, removed, todo_key

pytestmark = pytest.mark.integration

# ---------------------------------------------------------------------------
# Idle -> Subscribed
# ---------------------------------------------------------------------------


class TestSubscribe:
    def test_new_manager_is_idle_with_empty_results(self, manager: SubscriptionManager) -> None:
        assert manager.state is SubscriptionState.IDLE
        assert manager.results is EMPTY_RESULTS
        assert manager.version == 0

    def test_use_attaches_with_query(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
    ) -> None:
        manager.use(identity)
        assert manager.state is SubscriptionState.SUBSCRIBED
        assert manager.identity is identity
        assert [a.query for a in source.attachments] == [TODOS_QUERY]

    def test_repeated_use_with_same_identity_does_not_resubscribe(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
    ) -> None:
        manager.use(identity)
        manager.use(identity)
        manager.use(SubscriptionIdentity(identity.query, identity.key_of))
        assert len(source.history) == 1

    def test_snapshot_delivered_during_attach_is_applied(self) -> None:
        a = Todo("a")
        source = InMemoryChangeSource(initial=Snapshot(documents=(a,), changes=(added(a),)))
        manager = SubscriptionManager(source)
        manager.use(SubscriptionIdentity(TODOS_QUERY, todo_key))
        assert manager.results == (a,)


# ---------------------------------------------------------------------------
# Publish on change
# ---------------------------------------------------------------------------


class TestPublication:
    def test_changed_snapshot_publishes_new_sequence(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
        recorder: Recorder,
    ) -> None:
        manager.use(identity)
        a, b = Todo("a"), Todo("b")
        source.emit_changes(added(a, 0), added(b, 1))
        assert recorder.results == [(a, b)]
        assert manager.results == (a, b)
        assert manager.version == 1

    def test_empty_snapshot_publishes_nothing(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
        recorder: Recorder,
    ) -> None:
        manager.use(identity)
        source.emit_changes(added(Todo("a")))
        published = manager.results

        source.emit(Snapshot(documents=published, changes=()))
        source.emit(Snapshot(documents=published, changes=()))

        assert len(recorder.results) == 1
        assert manager.results is published
        assert manager.version == 1

    def test_published_sequence_is_immutable(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
    ) -> None:
        manager.use(identity)
        source.emit_changes(added(Todo("a")))
        assert isinstance(manager.results, tuple)

    def test_unsubscribed_listener_is_not_called(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
    ) -> None:
        listener = MagicMock()
        unsubscribe = manager.on_results(listener)
        unsubscribe()
        unsubscribe()
        manager.use(identity)
        source.emit_changes(added(Todo("a")))
        listener.assert_not_called()

    def test_failing_listener_does_not_block_others(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
        captured_logs: list[dict],
    ) -> None:
        manager.on_results(MagicMock(side_effect=RuntimeError("render failed")))
        good = MagicMock()
        manager.on_results(good)
        manager.use(identity)
        source.emit_changes(added(Todo("a")))
        good.assert_called_once()
        assert any(e["event"] == "results_listener_failed" for e in captured_logs)


# ---------------------------------------------------------------------------
# Identity change
# ---------------------------------------------------------------------------


class TestIdentityChange:
    def test_new_identity_detaches_old_and_starts_empty(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
        recorder: Recorder,
    ) -> None:
        manager.use(identity)
        source.emit_changes(added(Todo("a")))

        done_query = {"collection": "todos", "where": [("done", "==", True)]}
        manager.use(SubscriptionIdentity(done_query, todo_key))

        old, new = source.history
        assert not old.active
        assert new.active and new.query == done_query
        assert manager.results == ()
        assert recorder.results[-1] == ()

        c = Todo("c", done=True)
        source.emit_changes(added(c))
        assert manager.results == (c,)

    def test_new_key_extractor_counts_as_new_identity(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
    ) -> None:
        manager.use(identity)
        manager.use(SubscriptionIdentity(identity.query, lambda doc: doc.title))
        assert len(source.history) == 2

    def test_shallow_equality_tolerates_rebuilt_queries(self, source: InMemoryChangeSource) -> None:
        manager = SubscriptionManager(source, equality=shallow_equality)
        manager.use(SubscriptionIdentity({"collection": "todos"}, todo_key))
        manager.use(SubscriptionIdentity({"collection": "todos"}, todo_key))
        assert len(source.history) == 1

    def test_reference_equality_resubscribes_on_rebuilt_queries(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
    ) -> None:
        manager.use(SubscriptionIdentity({"collection": "todos"}, todo_key))
        manager.use(SubscriptionIdentity({"collection": "todos"}, todo_key))
        assert len(source.history) == 2
        assert len(source.attachments) == 1


# ---------------------------------------------------------------------------
# Stop and the detach guard
# ---------------------------------------------------------------------------


class TestStopAndDetachGuard:
    def test_stop_detaches_and_returns_to_idle(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
    ) -> None:
        manager.use(identity)
        source.emit_changes(added(Todo("a")))
        manager.stop()
        assert manager.state is SubscriptionState.IDLE
        assert manager.identity is None
        assert manager.results == ()
        assert source.attachments == []

    def test_stop_is_idempotent(self, manager: SubscriptionManager) -> None:
        manager.stop()
        manager.stop()
        assert manager.state is SubscriptionState.IDLE
        assert manager.version == 0

    def test_late_snapshot_after_stop_is_ignored(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
        recorder: Recorder,
    ) -> None:
        manager.use(identity)
        source.emit_changes(added(Todo("a")))
        stale = source.history[0]
        manager.stop()
        published = list(recorder.results)
        version = manager.version

        stale.on_snapshot(Snapshot(changes=(added(Todo("late")),)))
        stale.on_error(SourceError("late failure"))

        assert recorder.results == published
        assert recorder.errors == []
        assert manager.version == version
        assert manager.results == ()

    def test_late_snapshot_from_previous_identity_is_ignored(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
    ) -> None:
        manager.use(identity)
        stale = source.history[0]
        manager.use(SubscriptionIdentity({"collection": "other"}, todo_key))
        b = Todo("b")
        source.emit_changes(added(b))

        stale.on_snapshot(Snapshot(changes=(added(Todo("late")),)))
        assert manager.results == (b,)

    def test_listener_stopping_manager_mid_batch(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
    ) -> None:
        manager.use(identity)
        attachment = source.history[0]
        seen: list[tuple] = []

        def listener(results: tuple) -> None:
            seen.append(results)
            if len(results) == 1:
                # Queued behind the current delivery, then dropped by the guard.
                attachment.on_snapshot(Snapshot(changes=(added(Todo("queued")),)))
                manager.stop()

        manager.on_results(listener)
        source.emit_changes(added(Todo("a")))
        assert seen == [(Todo("a"),), ()]
        assert manager.state is SubscriptionState.IDLE


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestSourceErrors:
    def test_error_is_surfaced_verbatim_and_tears_down(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
        recorder: Recorder,
    ) -> None:
        manager.use(identity)
        a = Todo("a")
        source.emit_changes(added(a))
        published = manager.results

        error = PermissionError("permission denied")
        source.fail(error)

        assert recorder.errors == [error]
        assert recorder.errors[0] is error
        assert manager.last_error is error
        assert manager.state is SubscriptionState.IDLE
        assert manager.results is published
        assert source.attachments == []

    def test_no_internal_retry_after_error(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
    ) -> None:
        manager.use(identity)
        source.fail(SourceError("transport lost"))
        manager.use(identity)
        assert len(source.history) == 1
        assert manager.state is SubscriptionState.IDLE

    def test_restart_resubscribes_from_empty_cache(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
    ) -> None:
        manager.use(identity)
        source.emit_changes(added(Todo("a")))
        source.fail(SourceError("transport lost"))

        manager.restart()
        assert manager.state is SubscriptionState.SUBSCRIBED
        assert manager.last_error is None
        assert manager.results == ()
        assert len(source.history) == 2

    def test_restart_without_identity_raises(self, manager: SubscriptionManager) -> None:
        with pytest.raises(LiveCacheError):
            manager.restart()

    def test_different_identity_after_error_subscribes(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
    ) -> None:
        manager.use(identity)
        source.fail(SourceError("invalid query"))
        manager.use(SubscriptionIdentity({"collection": "fixed"}, todo_key))
        assert manager.state is SubscriptionState.SUBSCRIBED

    def test_attach_raising_is_reported_as_error(self) -> None:
        source = MagicMock()
        source.attach.side_effect = SourceError("bad query")
        manager = SubscriptionManager(source)
        errors: list[BaseException] = []
        manager.on_error(errors.append)

        manager.use(SubscriptionIdentity(TODOS_QUERY, todo_key))

        assert manager.state is SubscriptionState.IDLE
        assert isinstance(errors[0], SourceError)

    def test_error_delivered_during_attach_detaches_returned_handle(self) -> None:
        class FailingSource(InMemoryChangeSource):
            def attach(self, query, on_snapshot, on_error):  # type: ignore[no-untyped-def]
                handle = super().attach(query, on_snapshot, on_error)
                on_error(SourceError("denied"))
                return handle

        source = FailingSource()
        manager = SubscriptionManager(source)
        manager.use(SubscriptionIdentity(TODOS_QUERY, todo_key))

        assert manager.state is SubscriptionState.IDLE
        assert source.attachments == []

    def test_key_extraction_failure_rejects_snapshot_and_tears_down(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        recorder: Recorder,
    ) -> None:
        manager.use(SubscriptionIdentity(TODOS_QUERY, lambda doc: doc["id"]))
        source.emit_changes(added({"id": "a"}))
        published = manager.results

        source.emit_changes(added({"id": "b"}), added({"name": "no id"}))

        assert manager.results is published
        assert isinstance(recorder.errors[0], KeyExtractionError)
        assert manager.state is SubscriptionState.IDLE

    def test_unhashable_key_rejects_snapshot_and_tears_down(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        recorder: Recorder,
    ) -> None:
        manager.use(SubscriptionIdentity(TODOS_QUERY, lambda doc: doc["id"]))
        source.emit_changes(added({"id": "a"}))
        published = manager.results

        source.emit_changes(added({"id": "b"}), added({"id": {"n": 1}}))

        assert manager.results is published
        assert manager.results == ({"id": "a"},)
        assert isinstance(recorder.errors[0], KeyExtractionError)
        assert manager.state is SubscriptionState.IDLE
        assert source.attachments == []


class TestRemovals:
    def test_modify_and_remove_keep_other_references(
        self,
        manager: SubscriptionManager,
        source: InMemoryChangeSource,
        identity: SubscriptionIdentity,
    ) -> None:
        manager.use(identity)
        a, b, c = Todo("a"), Todo("b"), Todo("c")
        source.emit_changes(added(a), added(b), added(c))
        b2 = Todo("b", title="renamed")
        source.emit_changes(modified(b2), removed(c))
        assert manager.results == (a, b2)
        assert manager.results[0] is a
