"""
tests/test_health.py -- Integration tests for GET /api/v1/health and the
error envelope for framework-level failures.
"""

from __future__ import annotations

from api.main import VERSION


def test_health_returns_200(api):
    resp = api.client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": VERSION}


def test_health_no_auth_required(api):
    """Health endpoint is accessible without any authentication headers."""
    resp = api.client.get("/api/v1/health", headers={})
    assert resp.status_code == 200


def test_unknown_route_uses_error_envelope(api):
    resp = api.client.get("/api/v1/does-not-exist")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "http_404"


def test_validation_error_envelope(api):
    resp = api.client.post("/api/v1/auth/login", json={"email": "a@example.com"})
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "validation_error"
