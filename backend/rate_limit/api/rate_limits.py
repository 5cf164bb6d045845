"""Rate-limit query routes consumed by the usage ingestion path."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from rate_limit.api.deps import get_rate_limiter
from rate_limit.schemas.rate_limits import RateLimitCheckResponse, RateLimitInput, RetentionRead
from rate_limit.services.rate_limit import RateLimiter

router = APIRouter(prefix="/rate-limit", tags=["rate-limit"])
LIMITER_DEP = Depends(get_rate_limiter)
TARGET_ID_QUERY = Query(alias="targetId", min_length=1)


@router.post("/check", response_model=RateLimitCheckResponse)
def check_rate_limit(
    payload: RateLimitInput,
    limiter: RateLimiter = LIMITER_DEP,
) -> RateLimitCheckResponse:
    """Return the limit state for an organization or target; unknown subjects fail open."""
    return limiter.check_limit(payload)


@router.get("/retention", response_model=RetentionRead)
def get_retention(
    target_id: str = TARGET_ID_QUERY,
    limiter: RateLimiter = LIMITER_DEP,
) -> RetentionRead:
    return RetentionRead(retention_in_days=limiter.get_retention(target_id))
