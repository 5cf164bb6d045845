"""Rate limiter lifecycle, refresh cadence and non-blocking limit queries."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Protocol

from rate_limit.core.config import settings
from rate_limit.core.logging import get_logger
from rate_limit.schemas.rate_limits import UNKNOWN_RATE_LIMIT, RateLimitCheckResponse, RateLimitInput
from rate_limit.services.rate_limit.aggregator import (
    ConfigurationSourceProtocol,
    NotificationSinkProtocol,
    UsageAggregator,
    UsageSourceProtocol,
)
from rate_limit.services.rate_limit.cache import EMPTY_RATE_LIMIT_CACHE, RateLimitCache

logger = get_logger(__name__)

ErrorReporter = Callable[[BaseException], None]


class StorageProtocol(ConfigurationSourceProtocol, Protocol):
    def is_ready(self) -> bool: ...

    async def ping(self) -> bool: ...

    async def dispose(self) -> None: ...


class LimiterState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


def _log_error_report(error: BaseException) -> None:
    logger.error(
        "rate_limit.error_reported",
        extra={"error_type": type(error).__name__, "error": str(error)},
    )


class RateLimiter:
    """Single writer of the rate-limit snapshot; every query reads the published one."""

    def __init__(
        self,
        *,
        storage: StorageProtocol,
        usage_source: UsageSourceProtocol,
        emails: NotificationSinkProtocol,
        refresh_interval_seconds: float | None = None,
        default_retention_days: int | None = None,
        error_reporter: ErrorReporter | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._storage = storage
        self._aggregator = UsageAggregator(
            storage=storage,
            usage_source=usage_source,
            emails=emails,
            clock=clock,
        )
        interval = (
            refresh_interval_seconds
            if refresh_interval_seconds is not None
            else settings.refresh_interval_seconds
        )
        if interval <= 0:
            raise ValueError("refresh interval must be positive")
        self.refresh_interval_seconds = float(interval)
        self.default_retention_days = int(
            default_retention_days if default_retention_days is not None else settings.default_retention_days
        )
        self._error_reporter = error_reporter or _log_error_report

        self._cache: RateLimitCache = EMPTY_RATE_LIMIT_CACHE
        self._initialized = False
        self._state = LimiterState.STOPPED
        self._pass_lock = asyncio.Lock()
        self._stop_event: asyncio.Event | None = None
        self._loop_task: asyncio.Task[None] | None = None

    @property
    def cache(self) -> RateLimitCache:
        return self._cache

    @property
    def state(self) -> LimiterState:
        return self._state

    def _publish(self, cache: RateLimitCache) -> None:
        self._cache = cache

    def _report(self, error: BaseException) -> None:
        try:
            self._error_reporter(error)
        except Exception as exc:  # pragma: no cover - reporter must not break the loop
            logger.warning("rate_limit.error_reporter.failed", extra={"error": str(exc)})

    # Query API: plain reads of one published snapshot, never awaiting.

    def check_limit(self, request: RateLimitInput) -> RateLimitCheckResponse:
        """Return the organization's limit state, or the unknown sentinel (fail-open)."""
        cache = self._cache
        response = cache.check_limit(request)
        if response is None:
            if cache.resolve_organization_id(request) is None:
                logger.warning(
                    "rate_limit.check.unresolved",
                    extra={"entity_id": request.id, "entity_type": request.entity_type},
                )
            return UNKNOWN_RATE_LIMIT
        return response

    def get_retention(self, target_id: str) -> int:
        snapshot = self._cache.organization_for_target(target_id)
        if snapshot is None:
            return self.default_retention_days
        return snapshot.retention_in_days

    def readiness(self) -> bool:
        return self._initialized and self._storage.is_ready()

    # Refresh and lifecycle.

    async def refresh(self) -> bool:
        """Run one aggregation pass unless another pass is still in flight."""
        if self._pass_lock.locked():
            logger.warning("rate_limit.refresh.skipped_in_flight")
            return False
        async with self._pass_lock:
            try:
                result = await self._aggregator.run_pass(self._publish)
            except Exception as exc:
                logger.exception("rate_limit.refresh.failed", extra={"error": str(exc)})
                self._report(exc)
                return False
        logger.info(
            "rate_limit.refresh.completed",
            extra={
                "organization_count": result.organization_count,
                "target_count": result.target_count,
                "limited_count": result.limited_count,
                "emails_sent": result.emails_sent,
            },
        )
        return True

    async def _run_loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.refresh_interval_seconds)
            except TimeoutError:
                pass
            else:
                break
            logger.info("rate_limit.refresh.interval_triggered")
            await self.refresh()

    async def start(self) -> None:
        """Run the bootstrap pass, then arm the recurring refresh."""
        if self._state is not LimiterState.STOPPED:
            logger.warning("rate_limit.limiter.already_started", extra={"state": self._state.value})
            return
        self._state = LimiterState.STARTING
        logger.info(
            "rate_limit.limiter.starting",
            extra={"interval_seconds": self.refresh_interval_seconds},
        )

        await self.refresh()
        if self._state is not LimiterState.STARTING:
            # stop() ran while the bootstrap pass was in flight
            return
        await self._storage.ping()

        self._initialized = True
        self._stop_event = asyncio.Event()
        self._loop_task = asyncio.create_task(
            self._run_loop(self._stop_event),
            name="rate-limit-refresh",
        )
        self._state = LimiterState.RUNNING

    async def stop(self) -> None:
        """Cancel the cadence and release storage; an in-flight pass may finish first."""
        if self._state is LimiterState.STOPPED:
            return
        self._initialized = False
        self._state = LimiterState.STOPPED
        if self._stop_event is not None:
            self._stop_event.set()
        if self._loop_task is not None:
            await self._loop_task
        self._stop_event = None
        self._loop_task = None
        # bootstrap and manual refresh passes run outside the loop task
        async with self._pass_lock:
            await self._storage.dispose()
        logger.info("rate_limit.limiter.stopped")
