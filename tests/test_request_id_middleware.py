from __future__ import annotations

from fastapi.testclient import TestClient

from registration_policy.main import app


client = TestClient(app)


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_request_id_reaches_error_envelope():
    resp = client.post(
        "/v1/registration/evaluate",
        json={"client_metadata": {}},
        headers={"X-Request-ID": "corr-42", "X-API-Key": "test-api-key-123"},
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["request_id"] == "corr-42"
    assert resp.headers.get("X-Request-ID") == "corr-42"
