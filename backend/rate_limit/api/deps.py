"""Request dependencies for rate-limit routes."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from rate_limit.services.rate_limit import RateLimiter


def get_rate_limiter(request: Request) -> RateLimiter:
    """Return the process-wide limiter attached during application startup."""
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiter is not configured.",
        )
    return limiter
