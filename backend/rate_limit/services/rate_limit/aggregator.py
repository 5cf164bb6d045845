"""Usage aggregation pass: joins configuration rows with usage counts into a snapshot."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from rate_limit.core.logging import get_logger
from rate_limit.core.time import BillingWindow, current_billing_window, utcnow
from rate_limit.services.rate_limit.cache import OrganizationUsageSnapshot, RateLimitCache
from rate_limit.services.rate_limit.emails import LimitNotification
from rate_limit.services.rate_limit.metrics import record_operations_limit_exceeded
from rate_limit.services.rate_limit.storage import OrganizationLimitRecord

logger = get_logger(__name__)

WARNING_THRESHOLD = 0.9
EXCEEDED_THRESHOLD = 1.0


class ConfigurationSourceProtocol(Protocol):
    async def list_organizations_with_targets_and_limits(self) -> list[OrganizationLimitRecord]: ...


class UsageSourceProtocol(Protocol):
    async def estimate_operations_for_all_targets(self, window: BillingWindow) -> Mapping[str, int]: ...


class NotificationSinkProtocol(Protocol):
    def limit_warning(self, notification: LimitNotification) -> None: ...

    def limit_exceeded(self, notification: LimitNotification) -> None: ...

    def drain(self) -> list[Awaitable[object]]: ...


@dataclass(frozen=True, slots=True)
class AggregationResult:
    window: BillingWindow
    organization_count: int
    target_count: int
    limited_count: int
    warnings_scheduled: int
    exceeded_scheduled: int
    emails_sent: int


def build_rate_limit_cache(
    records: Iterable[OrganizationLimitRecord],
    operations: Mapping[str, int],
) -> RateLimitCache:
    """Join configuration rows with per-target counts into a fresh snapshot."""
    totals: dict[str, int] = {}
    first_seen: dict[str, OrganizationLimitRecord] = {}
    target_index: dict[str, str] = {}

    for record in records:
        org_id = record.organization_id
        first_seen.setdefault(org_id, record)
        current = totals.get(org_id, 0)
        for target_id in record.targets:
            current += int(operations.get(target_id, 0))
            target_index[target_id] = org_id
        totals[org_id] = current

    organizations = {
        org_id: OrganizationUsageSnapshot.build(
            organization_id=org_id,
            organization_name=record.org_name,
            owner_email=record.owner_email,
            clean_id=record.org_clean_id,
            plan=record.org_plan,
            quota=record.quota_operations_monthly,
            current=totals[org_id],
            retention_in_days=record.retention_days,
        )
        for org_id, record in first_seen.items()
    }
    return RateLimitCache.freeze(organizations=organizations, target_index=target_index)


def _notification_for(snapshot: OrganizationUsageSnapshot, window: BillingWindow) -> LimitNotification:
    return LimitNotification(
        organization_id=snapshot.organization_id,
        clean_id=snapshot.clean_id,
        name=snapshot.organization_name,
        email=snapshot.owner_email,
        period=window,
        quota=snapshot.quota,
        current=snapshot.current,
    )


def schedule_limit_notifications(
    cache: RateLimitCache,
    *,
    window: BillingWindow,
    emails: NotificationSinkProtocol,
) -> tuple[int, int]:
    """Schedule warning/exceeded emails for the snapshot; returns (warnings, exceeded)."""
    warnings = 0
    exceeded = 0
    for org_id, snapshot in cache.organizations.items():
        usage = snapshot.usage_percentage
        if usage >= EXCEEDED_THRESHOLD:
            record_operations_limit_exceeded(org_id=org_id, org_name=snapshot.organization_name)
            logger.info(
                "rate_limit.organization.limited",
                extra={
                    "organization_id": org_id,
                    "organization_name": snapshot.organization_name,
                    "current": snapshot.current,
                    "quota": snapshot.quota,
                },
            )
            emails.limit_exceeded(_notification_for(snapshot, window))
            exceeded += 1
        elif usage >= WARNING_THRESHOLD:
            emails.limit_warning(_notification_for(snapshot, window))
            warnings += 1
    return warnings, exceeded


async def _fetch_both(
    storage: ConfigurationSourceProtocol,
    usage_source: UsageSourceProtocol,
    window: BillingWindow,
) -> tuple[list[OrganizationLimitRecord], Mapping[str, int]]:
    records, operations = await asyncio.gather(
        storage.list_organizations_with_targets_and_limits(),
        usage_source.estimate_operations_for_all_targets(window),
        return_exceptions=True,
    )
    if isinstance(records, BaseException):
        raise records
    if isinstance(operations, BaseException):
        raise operations
    return records, operations


class UsageAggregator:
    """Runs one aggregation pass and hands the snapshot to `publish`."""

    def __init__(
        self,
        *,
        storage: ConfigurationSourceProtocol,
        usage_source: UsageSourceProtocol,
        emails: NotificationSinkProtocol,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._storage = storage
        self._usage_source = usage_source
        self._emails = emails
        self._clock = clock or utcnow

    async def run_pass(self, publish: Callable[[RateLimitCache], None]) -> AggregationResult:
        """Fetch, join, notify, publish, then await the scheduled emails.

        Any failure before `publish` leaves the previous snapshot in place. A
        notification failure raises after the new snapshot is already published.
        """
        window = current_billing_window(self._clock())
        logger.info(
            "rate_limit.refresh.window",
            extra={"window_start": window.start.isoformat(), "window_end": window.end.isoformat()},
        )

        records, operations = await _fetch_both(self._storage, self._usage_source, window)
        logger.debug(
            "rate_limit.refresh.fetched",
            extra={
                "organization_count": len(records),
                "target_count": sum(len(record.targets) for record in records),
                "targets_with_usage": len(operations),
            },
        )

        cache = build_rate_limit_cache(records, operations)
        try:
            warnings, exceeded = schedule_limit_notifications(cache, window=window, emails=self._emails)
        except Exception:
            for pending in self._emails.drain():
                if isinstance(pending, asyncio.Future):
                    pending.cancel()
            raise

        publish(cache)

        scheduled = self._emails.drain()
        if scheduled:
            outcomes = await asyncio.gather(*scheduled, return_exceptions=True)
            failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
            logger.info(
                "rate_limit.emails.scheduled",
                extra={"count": len(scheduled), "failed": len(failures)},
            )
            if failures:
                raise failures[0]

        return AggregationResult(
            window=window,
            organization_count=len(cache.organizations),
            target_count=len(cache.target_index),
            limited_count=sum(1 for snapshot in cache.organizations.values() if snapshot.limited),
            warnings_scheduled=warnings,
            exceeded_scheduled=exceeded,
            emails_sent=len(scheduled),
        )
