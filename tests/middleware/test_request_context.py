"""Tests for the request context middleware.

Every response gets an X-Request-ID header (generated or echoed), and log
records carry the current request_id once the filter is installed.
"""

from __future__ import annotations

import logging
import uuid

from fastapi.testclient import TestClient

from linkhub.middleware.request_context import _RequestContextFilter, request_id_var


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "req-abc-123"})
    assert resp.headers.get("x-request-id") == "req-abc-123"


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/projects")  # No auth token → 401
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_filter_stamps_current_request_id() -> None:
    record = logging.LogRecord("test", logging.INFO, "t.py", 1, "msg", (), None)
    reset = request_id_var.set("req-42")
    try:
        assert _RequestContextFilter().filter(record) is True
    finally:
        request_id_var.reset(reset)
    assert record.request_id == "req-42"  # type: ignore[attr-defined]


def test_filter_defaults_outside_a_request() -> None:
    record = logging.LogRecord("test", logging.INFO, "t.py", 1, "msg", (), None)
    _RequestContextFilter().filter(record)
    assert record.request_id == "-"  # type: ignore[attr-defined]
