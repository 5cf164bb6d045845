"""Liveness, readiness and Prometheus exposition routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from rate_limit.api.deps import get_rate_limiter
from rate_limit.services.rate_limit import RateLimiter

router = APIRouter(tags=["health"])
LIMITER_DEP = Depends(get_rate_limiter)


@router.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


@router.get("/readiness")
def readiness(response: Response, limiter: RateLimiter = LIMITER_DEP) -> dict[str, bool]:
    ready = limiter.readiness()
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"ready": ready}


@router.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
