"""Logging configuration with structured `extra=` field rendering."""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import UTC, datetime
from typing import Any

from rate_limit.core.config import settings

# Attributes present on every LogRecord; anything else came in through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS}


class KeyValueFormatter(logging.Formatter):
    """Human-readable formatter that appends structured fields as `key=value`."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        fields = _extra_fields(record)
        if not fields:
            return base
        rendered = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
        head, sep, tail = base.partition("\n")
        return f"{head} {rendered}{sep}{tail}"


class JsonFormatter(logging.Formatter):
    """One JSON object per line for log shippers."""

    def __init__(self, *, use_utc: bool = False) -> None:
        super().__init__()
        self._use_utc = use_utc

    def format(self, record: logging.LogRecord) -> str:
        tz = UTC if self._use_utc else None
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=tz).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(
    *,
    level: str | None = None,
    log_format: str | None = None,
    use_utc: bool | None = None,
) -> None:
    """Install a single stdout handler on the root logger."""
    resolved_format = (log_format or settings.log_format).strip().lower()
    resolved_utc = settings.log_use_utc if use_utc is None else use_utc

    handler = logging.StreamHandler(sys.stdout)
    if resolved_format == "json":
        handler.setFormatter(JsonFormatter(use_utc=resolved_utc))
    else:
        formatter = KeyValueFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        if resolved_utc:
            formatter.converter = time.gmtime
        handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel((level or settings.log_level).upper())


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; configuration is applied by the app entrypoint."""
    return logging.getLogger(name)
