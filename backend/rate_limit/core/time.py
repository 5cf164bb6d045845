"""Time helpers shared by the refresh loop and storage models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return a naive UTC timestamp matching the storage column convention."""
    return datetime.now(UTC).replace(tzinfo=None)


def start_of_month(value: datetime) -> datetime:
    return value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def start_of_next_month(value: datetime) -> datetime:
    first = start_of_month(value)
    if first.month == 12:
        return first.replace(year=first.year + 1, month=1)
    return first.replace(month=first.month + 1)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _epoch_ms(value: datetime) -> int:
    return int(_as_utc(value).timestamp() * 1000)


@dataclass(frozen=True, slots=True)
class BillingWindow:
    """Half-open billing period `[start, end)` covering one calendar month."""

    start: datetime
    end: datetime

    @classmethod
    def containing(cls, now: datetime) -> BillingWindow:
        return cls(start=start_of_month(now), end=start_of_next_month(now))

    @property
    def start_ms(self) -> int:
        return _epoch_ms(self.start)

    @property
    def end_ms(self) -> int:
        return _epoch_ms(self.end)

    def as_query(self) -> dict[str, str]:
        """Serialize the window for the usage estimator RPC input."""
        return {
            "startTime": _as_utc(self.start).isoformat(),
            "endTime": _as_utc(self.end).isoformat(),
        }


def current_billing_window(now: datetime | None = None) -> BillingWindow:
    """Return the billing window containing `now` (defaults to the current UTC time)."""
    return BillingWindow.containing(now or utcnow())
