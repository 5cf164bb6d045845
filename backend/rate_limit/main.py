"""FastAPI entrypoint wiring the rate limiter lifecycle to the app lifespan."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from rate_limit.api.health import router as health_router
from rate_limit.api.rate_limits import router as rate_limits_router
from rate_limit.core.logging import configure_logging, get_logger
from rate_limit.services.rate_limit import RateLimiter, create_rate_limiter

logger = get_logger(__name__)


def create_app(limiter: RateLimiter | None = None) -> FastAPI:
    """Build the service app; a limiter is created from settings when none is given."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        rate_limiter = limiter or create_rate_limiter()
        app.state.rate_limiter = rate_limiter
        await rate_limiter.start()
        try:
            yield
        finally:
            await rate_limiter.stop()

    app = FastAPI(title="Rate Limit", lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(rate_limits_router)
    return app


def run() -> None:
    """Console entrypoint serving the app with uvicorn."""
    import uvicorn

    configure_logging()
    logger.info("rate_limit.app.starting")
    uvicorn.run(create_app(), host="0.0.0.0", port=4012, log_config=None)  # noqa: S104


app = create_app()
