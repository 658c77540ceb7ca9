"""Logging configuration for the projects service.

Two output modes, picked by LOG_JSON:

  _ContainerFormatter: one human-readable line per record, for local dev
    and `docker logs`.  WARNING and above get a [file:line] suffix.

  _JsonFormatter: one JSON object per line (JSON Lines).  Request context
    attached by RequestContextMiddleware (request_id, user_id, ...) and the
    project/domain fields logged by the provisioning flow become top-level
    keys, so the log pipeline can filter on them without regexes:

      {"level": "WARNING", "domain": "acme.com", "message": "..."}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime


def _iso_timestamp(record: logging.LogRecord) -> str:
    """UTC, millisecond precision: 2026-10-18T09:14:03.512+00:00"""
    created = datetime.fromtimestamp(record.created, UTC)
    return created.isoformat(timespec="milliseconds")


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter for container stdout.

    Exceptions are appended when the caller passes exc_info=True or uses
    logger.exception().
    """

    _FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _FMT_WITH_LOCATION = _FMT + "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(self._FMT)
        self._located = logging.Formatter(self._FMT_WITH_LOCATION)
        self._located.formatTime = self.formatTime  # type: ignore[method-assign]

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return _iso_timestamp(record)

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            return self._located.format(record)
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter for log aggregation."""

    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "user_id",
        "status_code",
        "duration_ms",
        "project_slug",
        "domain",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": _iso_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(
            (key, getattr(record, key))
            for key in self._CONTEXT_FIELDS
            if getattr(record, key, None) is not None
        )

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger to write to stdout.

    Args:
        level_name: debug/info/warning/error (unknown names fall back to info)
        json_format: emit JSON lines instead of the container format
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # httpx logs every provider call at INFO; keep it and uvicorn at WARNING+
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
