# Copyright 2025 Hippo Hash Contributors
# Licensed under the Apache License, Version 2.0

"""Prometheus metrics for the hash client."""

from prometheus_client import Counter, Gauge

UPDATES_PUBLISHED = Counter(
    "hippo_hash_updates_published_total",
    "Change notifications published on application channels",
    ["action"],
)
PUBLISH_ERRORS = Counter(
    "hippo_hash_publish_errors_total",
    "Change notifications that failed to publish after a committed mutation",
)
UPDATE_EVENTS = Counter(
    "hippo_hash_update_events_total",
    "Update events fanned out to subscription listeners",
    ["kind"],
)
SCRIPT_CALLS = Counter(
    "hippo_hash_script_calls_total",
    "Atomic scripted operations by outcome",
    ["script", "outcome"],
)
ACTIVE_SUBSCRIPTIONS = Gauge(
    "hippo_hash_active_subscriptions",
    "Keys with at least one registered listener",
)


class HashClientMetrics:
    """Thin recorder over the module collectors, disabled by configuration."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def record_published(self, action: str) -> None:
        if self.enabled:
            UPDATES_PUBLISHED.labels(action=action).inc()

    def record_publish_error(self) -> None:
        if self.enabled:
            PUBLISH_ERRORS.inc()

    def record_event(self, kind: str, listeners: int = 1) -> None:
        if self.enabled:
            UPDATE_EVENTS.labels(kind=kind).inc(listeners)

    def record_script(self, script: str, outcome: str) -> None:
        if self.enabled:
            SCRIPT_CALLS.labels(script=script, outcome=outcome).inc()

    def set_active_subscriptions(self, count: int) -> None:
        if self.enabled:
            ACTIVE_SUBSCRIPTIONS.set(count)
