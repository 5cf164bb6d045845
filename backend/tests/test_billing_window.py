# ruff: noqa: S101
from __future__ import annotations

from datetime import UTC, datetime

from rate_limit.core.time import BillingWindow, current_billing_window


def test_window_covers_calendar_month_half_open() -> None:
    window = current_billing_window(datetime(2026, 2, 14, 23, 59, 59))

    assert window.start == datetime(2026, 2, 1)
    assert window.end == datetime(2026, 3, 1)


def test_window_rolls_over_year_in_december() -> None:
    window = BillingWindow.containing(datetime(2026, 12, 31, 12, 0))

    assert window.start == datetime(2026, 12, 1)
    assert window.end == datetime(2027, 1, 1)


def test_window_serializes_for_usage_queries_and_emails() -> None:
    window = BillingWindow.containing(datetime(2026, 10, 19, 8, 0))

    assert window.as_query() == {"startTime": "2026-10-01T00:00:00+00:00", "endTime": "2026-11-01T00:00:00+00:00"}
    assert window.start_ms == int(datetime(2026, 10, 1, tzinfo=UTC).timestamp() * 1000)


def test_aware_window_keeps_its_offset_in_query() -> None:
    window = BillingWindow(start=datetime(2026, 10, 1, tzinfo=UTC), end=datetime(2026, 11, 1, tzinfo=UTC))

    assert window.as_query()["startTime"].endswith("+00:00")
    assert window.as_query() == BillingWindow.containing(datetime(2026, 10, 5)).as_query()
