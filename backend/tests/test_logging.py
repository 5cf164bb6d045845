# ruff: noqa: S101
from __future__ import annotations

import json
import logging

from rate_limit.core.logging import JsonFormatter, KeyValueFormatter


def _record() -> logging.LogRecord:
    return logging.getLogger("rate_limit.test").makeRecord(
        "rate_limit.test",
        logging.INFO,
        __file__,
        1,
        "rate_limit.refresh.completed",
        None,
        None,
        extra={"organization_count": 3, "limited_count": 1},
    )


def test_json_formatter_emits_extra_fields() -> None:
    payload = json.loads(JsonFormatter(use_utc=True).format(_record()))

    assert payload["message"] == "rate_limit.refresh.completed"
    assert payload["level"] == "INFO"
    assert payload["organization_count"] == 3
    assert payload["limited_count"] == 1
    assert payload["timestamp"].endswith("+00:00")


def test_text_formatter_appends_key_value_pairs() -> None:
    line = KeyValueFormatter("%(levelname)s %(message)s").format(_record())

    assert line == "INFO rate_limit.refresh.completed limited_count=1 organization_count=3"
