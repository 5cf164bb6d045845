"""Async engine factory for the configuration source."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from rate_limit.core.config import settings


def create_engine(database_url: str | None = None, *, pool_size: int = 1) -> AsyncEngine:
    """Create the single shared engine used for configuration reads."""
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        return create_async_engine(url)
    return create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=0,
        pool_pre_ping=True,
    )
