"""Rate-limit cache engine: usage aggregation, snapshot publication and limit queries."""

from __future__ import annotations

from rate_limit.core.config import settings
from rate_limit.services.rate_limit.aggregator import AggregationResult, UsageAggregator
from rate_limit.services.rate_limit.cache import (
    EMPTY_RATE_LIMIT_CACHE,
    OrganizationUsageSnapshot,
    RateLimitCache,
    derive_operations_usage,
)
from rate_limit.services.rate_limit.emails import EmailScheduler, LimitNotification
from rate_limit.services.rate_limit.limiter import ErrorReporter, LimiterState, RateLimiter
from rate_limit.services.rate_limit.storage import OrganizationLimitRecord, OrganizationStorage
from rate_limit.services.rate_limit.usage_estimator import UsageEstimatorClient


def create_rate_limiter(*, error_reporter: ErrorReporter | None = None) -> RateLimiter:
    """Wire a limiter against the configured storage, usage estimator and email endpoints."""
    return RateLimiter(
        storage=OrganizationStorage(database_url=settings.database_url),
        usage_source=UsageEstimatorClient(endpoint=settings.usage_estimator_endpoint),
        emails=EmailScheduler(endpoint=settings.emails_endpoint),
        refresh_interval_seconds=settings.refresh_interval_seconds,
        default_retention_days=settings.default_retention_days,
        error_reporter=error_reporter,
    )


__all__ = [
    "EMPTY_RATE_LIMIT_CACHE",
    "AggregationResult",
    "EmailScheduler",
    "LimitNotification",
    "LimiterState",
    "OrganizationLimitRecord",
    "OrganizationStorage",
    "OrganizationUsageSnapshot",
    "RateLimitCache",
    "RateLimiter",
    "UsageAggregator",
    "UsageEstimatorClient",
    "create_rate_limiter",
    "derive_operations_usage",
]
