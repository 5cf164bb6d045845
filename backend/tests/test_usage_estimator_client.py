# ruff: noqa: S101
from __future__ import annotations

import json
from datetime import datetime

import httpx
import pytest

from rate_limit.core.time import BillingWindow
from rate_limit.services.rate_limit.errors import UsageSourceError
from rate_limit.services.rate_limit.usage_estimator import UsageEstimatorClient

WINDOW = BillingWindow(start=datetime(2026, 10, 1), end=datetime(2026, 11, 1))


@pytest.mark.asyncio
async def test_estimate_queries_window_and_parses_counts() -> None:
    requests: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        assert request.method == "GET"
        assert request.url.path == "/usage/trpc/estimateOperationsForAllTargets"
        window_input = json.loads(request.url.params["input"])
        assert window_input == {"startTime": "2026-10-01T00:00:00+00:00", "endTime": "2026-11-01T00:00:00+00:00"}
        return httpx.Response(200, json={"result": {"data": {"t1": 600, "t2": "500"}}})

    client = UsageEstimatorClient(
        endpoint="http://usage-estimator.internal/usage/",
        transport=httpx.MockTransport(_handler),
    )

    counts = await client.estimate_operations_for_all_targets(WINDOW)

    assert counts == {"t1": 600, "t2": 500}
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_estimate_raises_on_http_error() -> None:
    def _handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "unavailable"})

    client = UsageEstimatorClient(
        endpoint="http://usage-estimator.internal",
        transport=httpx.MockTransport(_handler),
    )

    with pytest.raises(UsageSourceError):
        await client.estimate_operations_for_all_targets(WINDOW)


@pytest.mark.asyncio
async def test_estimate_raises_on_transport_error() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = UsageEstimatorClient(
        endpoint="http://usage-estimator.internal",
        transport=httpx.MockTransport(_handler),
    )

    with pytest.raises(UsageSourceError):
        await client.estimate_operations_for_all_targets(WINDOW)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        ["t1", 1],
        {"result": {}},
        {"result": {"data": {"t1": "many"}}},
    ],
)
async def test_estimate_rejects_unexpected_payload_shapes(payload: object) -> None:
    def _handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    client = UsageEstimatorClient(
        endpoint="http://usage-estimator.internal",
        transport=httpx.MockTransport(_handler),
    )

    with pytest.raises(UsageSourceError):
        await client.estimate_operations_for_all_targets(WINDOW)
