"""Prometheus metrics for the reconciliation pipeline."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

snapshots_total = Counter(
    "livecache_snapshots_total",
    "Snapshots delivered to subscription managers, by outcome.",
    ["outcome"],  # applied | unchanged | dropped | failed
)

change_records_total = Counter(
    "livecache_change_records_total",
    "Change records applied to keyed caches.",
    ["change_type"],
)

publications_total = Counter(
    "livecache_publications_total",
    "Result sequences published to consumers.",
)

source_errors_total = Counter(
    "livecache_source_errors_total",
    "Errors reported by change sources or raised during reconciliation.",
)

active_subscriptions = Gauge(
    "livecache_active_subscriptions",
    "Subscription managers currently attached to a change source.",
)
