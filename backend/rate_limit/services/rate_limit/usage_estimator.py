"""Usage source: per-target operation estimates for a billing window."""

from __future__ import annotations

import json
from collections.abc import Mapping

import httpx

from rate_limit.core.config import settings
from rate_limit.core.logging import get_logger
from rate_limit.core.time import BillingWindow
from rate_limit.services.rate_limit.errors import UsageSourceError

logger = get_logger(__name__)

ESTIMATE_PROCEDURE = "estimateOperationsForAllTargets"


def _extract_counts(payload: object) -> dict[str, int]:
    if not isinstance(payload, Mapping):
        raise UsageSourceError("usage estimator returned a non-object payload")
    result = payload.get("result")
    data = result.get("data") if isinstance(result, Mapping) else None
    if not isinstance(data, Mapping):
        raise UsageSourceError("usage estimator payload is missing result.data")
    counts: dict[str, int] = {}
    for target_id, value in data.items():
        try:
            counts[str(target_id)] = int(value)
        except (TypeError, ValueError) as exc:
            raise UsageSourceError(
                f"usage estimator returned a non-numeric count for target {target_id}",
            ) from exc
    return counts


class UsageEstimatorClient:
    """HTTP RPC client for the usage estimator service."""

    def __init__(
        self,
        *,
        endpoint: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = (endpoint if endpoint is not None else settings.usage_estimator_endpoint).rstrip("/")
        self.timeout_seconds = float(
            timeout_seconds if timeout_seconds is not None else settings.usage_estimator_timeout_seconds
        )
        self.transport = transport

    async def estimate_operations_for_all_targets(self, window: BillingWindow) -> dict[str, int]:
        """Return operation counts keyed by target id; targets without usage are absent."""
        params = {"input": json.dumps(window.as_query())}
        try:
            async with httpx.AsyncClient(
                base_url=self.endpoint,
                timeout=self.timeout_seconds,
                transport=self.transport,
            ) as client:
                response = await client.get(f"/trpc/{ESTIMATE_PROCEDURE}", params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise UsageSourceError(f"usage estimator request failed: {exc}") from exc
        except ValueError as exc:
            raise UsageSourceError("usage estimator returned invalid JSON") from exc

        counts = _extract_counts(payload)
        logger.debug("rate_limit.usage_estimator.fetched", extra={"target_count": len(counts)})
        return counts
