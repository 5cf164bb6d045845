"""Notification sink: schedules limit warning/exceeded emails for organizations."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from rate_limit.core.config import settings
from rate_limit.core.logging import get_logger
from rate_limit.core.time import BillingWindow
from rate_limit.services.rate_limit.errors import NotificationDispatchError

logger = get_logger(__name__)

LIMIT_WARNING_PROCEDURE = "schedule.limitWarning"
LIMIT_EXCEEDED_PROCEDURE = "schedule.limitExceeded"


@dataclass(frozen=True, slots=True)
class LimitNotification:
    """Usage snapshot of one organization for a limit email."""

    organization_id: str
    clean_id: str
    name: str
    email: str
    period: BillingWindow
    quota: int
    current: int

    def as_payload(self) -> dict[str, object]:
        return {
            "organization": {
                "id": self.organization_id,
                "cleanId": self.clean_id,
                "name": self.name,
                "email": self.email,
            },
            "period": {
                "start": self.period.start_ms,
                "end": self.period.end_ms,
            },
            "usage": {
                "quota": self.quota,
                "current": self.current,
            },
        }


class EmailScheduler:
    """Starts one send task per notification and hands them back on `drain()`."""

    def __init__(
        self,
        *,
        endpoint: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = (endpoint if endpoint is not None else settings.emails_endpoint).strip().rstrip("/")
        self.timeout_seconds = float(
            timeout_seconds if timeout_seconds is not None else settings.emails_timeout_seconds
        )
        self.transport = transport
        self._pending: list[asyncio.Task[None]] = []

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint)

    def limit_warning(self, notification: LimitNotification) -> None:
        self._schedule(LIMIT_WARNING_PROCEDURE, notification)

    def limit_exceeded(self, notification: LimitNotification) -> None:
        self._schedule(LIMIT_EXCEEDED_PROCEDURE, notification)

    def drain(self) -> list[asyncio.Task[None]]:
        """Return every send scheduled since the previous drain."""
        pending, self._pending = self._pending, []
        return pending

    def _schedule(self, procedure: str, notification: LimitNotification) -> None:
        if not self.enabled:
            logger.debug(
                "rate_limit.emails.disabled",
                extra={"procedure": procedure, "organization_id": notification.organization_id},
            )
            return
        task = asyncio.create_task(
            self._send(procedure, notification),
            name=f"{procedure}:{notification.organization_id}",
        )
        self._pending.append(task)

    async def _send(self, procedure: str, notification: LimitNotification) -> None:
        try:
            async with httpx.AsyncClient(
                base_url=self.endpoint,
                timeout=self.timeout_seconds,
                transport=self.transport,
            ) as client:
                response = await client.post(f"/trpc/{procedure}", json=notification.as_payload())
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationDispatchError(
                f"{procedure} failed for organization {notification.organization_id}: {exc}",
            ) from exc
