"""JSON log lines as a log shipper sees them.

Request context and collector context travel as record attributes and
must surface as top-level JSON keys; anything else stays in the message.
"""

from __future__ import annotations

import json
import logging
import sys

import pytest

from pressmetrics.core.logging import (
    _ContainerFormatter,
    _JsonFormatter,
    log_collection_error,
)


def _record(
    level: int = logging.INFO, msg: str = "message", **extra: object
) -> logging.LogRecord:
    record = logging.LogRecord(
        name="pressmetrics.test",
        level=level,
        pathname="test.py",
        lineno=7,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_line_has_base_fields() -> None:
    parsed = json.loads(_JsonFormatter().format(_record(msg="scrape served")))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "pressmetrics.test"
    assert parsed["message"] == "scrape served"
    assert "timestamp" in parsed


def test_request_summary_fields_become_keys() -> None:
    record = _record(
        request_id="req-1",
        method="GET",
        path="/metrics",
        client_ip="8.8.8.8",
        status_code=429,
        duration_ms=1.5,
    )
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "req-1"
    assert parsed["path"] == "/metrics"
    assert parsed["client_ip"] == "8.8.8.8"
    assert parsed["status_code"] == 429
    assert parsed["duration_ms"] == 1.5


def test_cache_rebuild_fields_become_keys() -> None:
    parsed = json.loads(
        _JsonFormatter().format(_record(logging.DEBUG, collector="users", tier="fast"))
    )
    assert parsed["collector"] == "users"
    assert parsed["tier"] == "fast"


def test_unlisted_attributes_are_not_promoted() -> None:
    parsed = json.loads(_JsonFormatter().format(_record(api_key="secret")))
    assert "api_key" not in parsed


def test_missing_context_fields_are_omitted() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert "client_ip" not in parsed
    assert "tier" not in parsed


def test_exception_is_serialized() -> None:
    try:
        raise ConnectionError("database unreachable")
    except ConnectionError:
        record = _record(logging.ERROR)
        record.exc_info = sys.exc_info()
    parsed = json.loads(_JsonFormatter().format(record))
    assert "ConnectionError: database unreachable" in parsed["exception"]


def test_collection_error_renders_as_json(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("pressmetrics.test.json")
    with caplog.at_level(logging.DEBUG, logger="pressmetrics.test.json"):
        log_collection_error(
            logger,
            "Collector failed",
            {"collector": "database_size", "tier": "heavy", "error": "timeout"},
            verbose=True,
        )
    parsed = json.loads(_JsonFormatter().format(caplog.records[-1]))
    assert parsed["level"] == "WARNING"
    prefix, context = parsed["message"].split(" context=", 1)
    assert prefix == "Collector failed"
    assert json.loads(context) == {
        "collector": "database_size",
        "tier": "heavy",
        "error": "timeout",
    }


def test_container_format_is_not_json() -> None:
    output = _ContainerFormatter().format(_record(msg="exporter started"))
    assert "INFO" in output
    assert "pressmetrics.test" in output
    assert "exporter started" in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output)
