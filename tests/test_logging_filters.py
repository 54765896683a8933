"""Tests for sensitive data filtering and JSON formatting in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from registration_policy.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    hash_identifier,
    set_request_id,
)


@pytest.fixture
def capture():
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()
    clear_request_id()


def test_redacts_client_credentials_in_metadata(capture):
    logger, stream = capture

    logger.info(
        "policy.debug",
        extra={
            "client_metadata": {
                "client_name": "Example",
                "client_secret": "s3cr3t-value",
                "jwks": {"keys": [{"k": "private-key-material"}]},
                "software_statement": "eyJhbGciOi.statement",
            },
        },
    )

    output = stream.getvalue()
    assert "s3cr3t-value" not in output
    assert "private-key-material" not in output
    assert "eyJhbGciOi" not in output
    assert "Example" in output
    assert "[REDACTED]" in output


def test_redacts_api_keys(capture):
    logger, stream = capture

    logger.info("auth", extra={"api_key": "sk-secret-123", "x-api-key": "another", "safe_field": "visible"})

    output = stream.getvalue()
    assert "sk-secret-123" not in output
    assert "another" not in output
    assert "visible" in output


def test_safe_fields_pass_through(capture):
    logger, stream = capture

    logger.info(
        "policy.decision",
        extra={"verdict": "flag", "warnings": ["blocked_user_agent_pattern"], "duration_ms": 1.5},
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "policy.decision"
    assert record["verdict"] == "flag"
    assert record["warnings"] == ["blocked_user_agent_pattern"]
    assert record["level"] == "info"
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_from_context_is_attached(capture):
    logger, stream = capture
    set_request_id("req-123")

    logger.info("with_context")

    assert json.loads(stream.getvalue())["request_id"] == "req-123"


def test_hash_identifier_is_stable_and_opaque():
    assert hash_identifier("203.0.113.5") == hash_identifier("203.0.113.5")
    assert hash_identifier("203.0.113.5") != hash_identifier("203.0.113.6")
    assert len(hash_identifier("203.0.113.5")) == 16
