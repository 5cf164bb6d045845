# ruff: noqa: S101
from __future__ import annotations

import json
from datetime import datetime

import httpx
import pytest

from rate_limit.core.time import BillingWindow
from rate_limit.services.rate_limit.emails import EmailScheduler, LimitNotification
from rate_limit.services.rate_limit.errors import NotificationDispatchError


def _notification() -> LimitNotification:
    return LimitNotification(
        organization_id="org-1",
        clean_id="acme",
        name="Acme",
        email="owner@acme.dev",
        period=BillingWindow(start=datetime(2026, 10, 1), end=datetime(2026, 11, 1)),
        quota=1000,
        current=950,
    )


@pytest.mark.asyncio
async def test_scheduled_sends_are_returned_by_drain() -> None:
    requests: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"result": {"data": {"ok": True}}})

    scheduler = EmailScheduler(
        endpoint="http://emails.internal",
        transport=httpx.MockTransport(_handler),
    )

    scheduler.limit_warning(_notification())
    scheduler.limit_exceeded(_notification())
    pending = scheduler.drain()
    for task in pending:
        await task

    assert len(pending) == 2
    assert scheduler.drain() == []
    assert sorted(request.url.path for request in requests) == [
        "/trpc/schedule.limitExceeded",
        "/trpc/schedule.limitWarning",
    ]
    body = json.loads(requests[0].content)
    assert body["organization"] == {"id": "org-1", "cleanId": "acme", "name": "Acme", "email": "owner@acme.dev"}
    assert body["usage"] == {"quota": 1000, "current": 950}
    assert body["period"] == {"start": 1790812800000, "end": 1793491200000}


@pytest.mark.asyncio
async def test_disabled_scheduler_is_a_noop() -> None:
    scheduler = EmailScheduler(endpoint="")

    scheduler.limit_exceeded(_notification())

    assert scheduler.enabled is False
    assert scheduler.drain() == []


@pytest.mark.asyncio
async def test_failed_send_raises_dispatch_error_when_awaited() -> None:
    def _handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    scheduler = EmailScheduler(
        endpoint="http://emails.internal",
        transport=httpx.MockTransport(_handler),
    )

    scheduler.limit_exceeded(_notification())
    (task,) = scheduler.drain()

    with pytest.raises(NotificationDispatchError):
        await task
