"""Logging configuration for pressmetrics.

The exporter speaks two languages.  Prometheus reads the exposition text
it serves; operators read its logs.  This module owns the second one.

TWO FORMATTERS
----------------
  _ContainerFormatter: human-readable, single-line, for local dev and for
    tailing the container next to the host application.

  _JsonFormatter: one JSON object per line, for log shippers.  Request
    context (request_id, path, client_ip, status_code, duration_ms) is
    injected by RequestContextMiddleware and surfaces as top-level keys.

    Set LOG_JSON=true in production to switch to JSON output.

COLLECTOR DIAGNOSTICS
-----------------------
A failing collector never fails a scrape; its block is dropped and the
rest of the payload is served.  Those failures are only worth a WARNING
when an operator asked for them (PRESSMETRICS_DEBUG_LOG=true), otherwise
they stay at DEBUG so a flaky host subsystem does not flood the logs
every ten seconds.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout.

    - Always: ISO-8601 timestamp, level, logger name, message
    - WARNING+: appends [filename:lineno]
    - stack trace included when exc_info is present
    """

    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        ms = int(record.msecs)
        # Insert .NNN before the timezone offset (last 5 chars: +0000)
        return f"{base[:-5]}.{ms:03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter for log aggregation systems."""

    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "client_ip",
        "status_code",
        "duration_ms",
        "collector",
        "tier",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger for container environments.

    Args:
        level_name: Log level string (debug/info/warning/error)
        json_format: If True, emit JSON lines. If False, human-readable.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Keep third-party loggers from flooding at DEBUG
    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpcore",
        "httpx",
        "sqlalchemy.engine",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def log_collection_error(
    logger: logging.Logger,
    message: str,
    context: Mapping[str, object] | None = None,
    *,
    verbose: bool,
) -> None:
    """Report a recovered data-source failure.

    WARNING when verbose diagnostics are enabled, DEBUG otherwise.
    """
    suffix = f" context={json.dumps(dict(context), default=str)}" if context else ""
    logger.log(
        logging.WARNING if verbose else logging.DEBUG,
        "%s%s",
        message,
        suffix,
    )
