"""Error taxonomy for rate-limit refresh passes."""

from __future__ import annotations


class RateLimitError(RuntimeError):
    """Base error for failures inside a refresh pass."""


class ConfigurationSourceError(RateLimitError):
    """Raised when organizations/targets/limits cannot be read from storage."""


class UsageSourceError(RateLimitError):
    """Raised when the usage estimator call fails or returns an unexpected shape."""


class NotificationDispatchError(RateLimitError):
    """Raised when a scheduled limit email cannot be delivered."""
