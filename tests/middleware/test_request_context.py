"""Tests for the request context middleware.

Verifies that every response gets:
- An X-Request-ID header (generated or echoed from the request)
- One summary log line that never includes the query string
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from pressmetrics.api.routes_table import REST_METRICS_PATH


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    """When no X-Request-ID header is sent, one is generated."""
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    # Should be a valid UUID
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    """When the client sends X-Request-ID, the same value is echoed back."""
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    """Even error responses (401 from the dispatcher, 404) get an X-Request-ID."""
    assert client.get(REST_METRICS_PATH).headers.get("x-request-id") is not None
    assert client.get("/nowhere").headers.get("x-request-id") is not None


def test_summary_line_omits_api_key(
    client: TestClient, api_key: str, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="pressmetrics.middleware.request_context"):
        client.get(REST_METRICS_PATH, params={"api_key": api_key})

    records = [
        r for r in caplog.records if r.name == "pressmetrics.middleware.request_context"
    ]
    assert records
    for record in records:
        assert api_key not in record.getMessage()
        assert api_key not in str(record.__dict__)
    assert records[-1].client_ip == "unknown"  # type: ignore[attr-defined]
