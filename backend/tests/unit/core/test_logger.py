"""Tests for the JSON log formatter and request-id propagation."""

from __future__ import annotations

import json
import logging

from tokenvault.core.logger import JSONFormatter, RequestIdFilter, configure_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="tokenvault.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="refresh_token.%s",
        args=("rotated",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_structured_json():
    record = _record(subject_id="S1", count=3, request_id="req-1", secret="nope")

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "refresh_token.rotated"
    assert payload["level"] == "INFO"
    assert payload["name"] == "tokenvault.test"
    assert payload["request_id"] == "req-1"
    assert payload["subject_id"] == "S1"
    assert payload["count"] == 3
    # Only whitelisted extras reach the output
    assert "secret" not in payload


def test_filter_without_request_context_sets_none():
    record = _record()
    assert RequestIdFilter().filter(record) is True
    assert record.request_id is None


def test_configure_logging_installs_single_json_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging("debug")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_request_id_header_is_echoed(client):
    response = client.get("/api/v1/health", headers={"X-Request-ID": "corr-123"})
    assert response.headers["X-Request-ID"] == "corr-123"


def test_request_id_is_generated_when_missing(client):
    response = client.get("/api/v1/health")
    assert response.headers["X-Request-ID"]
