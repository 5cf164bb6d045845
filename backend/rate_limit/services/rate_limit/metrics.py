"""Prometheus counters for rate-limit events."""

from __future__ import annotations

from prometheus_client import Counter

RATE_LIMIT_OPERATIONS_EVENT_ORG = Counter(
    "rate_limit_operations_event_org",
    "Refresh passes in which an organization exceeded its monthly operations quota.",
    ["org_id", "org_name"],
)


def record_operations_limit_exceeded(*, org_id: str, org_name: str) -> None:
    RATE_LIMIT_OPERATIONS_EVENT_ORG.labels(org_id=org_id, org_name=org_name).inc()
