"""Shared-password Basic Auth on the /api/ surface."""

import base64

import pytest

from portfolio_tracker import create_app
from portfolio_tracker.config import TestingConfig
from portfolio_tracker.models import db


def _basic(username, password):
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture()
def auth_app(monkeypatch):
    monkeypatch.setattr(TestingConfig, "API_AUTH_ENABLED", True)
    monkeypatch.setattr(TestingConfig, "APP_PASSWORD", "s3cret")
    application = create_app("testing")
    with application.app_context():
        db.create_all()
    return application


class TestBasicAuth:
    def test_missing_credentials(self, auth_app):
        res = auth_app.test_client().get("/api/v1/projects")
        assert res.status_code == 401
        assert "WWW-Authenticate" not in res.headers
        assert res.get_json()["error"] == "Authentication required"

    def test_wrong_password(self, auth_app):
        res = auth_app.test_client().get("/api/v1/projects", headers=_basic("ada", "nope"))
        assert res.status_code == 401

    def test_any_username_with_right_password(self, auth_app):
        res = auth_app.test_client().get("/api/v1/projects", headers=_basic("whoever", "s3cret"))
        assert res.status_code == 200

    def test_health_is_exempt(self, auth_app):
        assert auth_app.test_client().get("/api/v1/health").status_code == 200
        assert auth_app.test_client().get("/api/v1/health/live").status_code == 200

    def test_missing_password_is_configuration_error(self, monkeypatch):
        monkeypatch.setattr(TestingConfig, "API_AUTH_ENABLED", True)
        monkeypatch.setattr(TestingConfig, "APP_PASSWORD", None)
        application = create_app("testing")
        res = application.test_client().get("/api/v1/users")
        assert res.status_code == 500
        assert res.get_json() == {"error": "Server configuration error"}


def test_auth_disabled_in_default_testing_app(client):
    assert client.get("/api/v1/projects").status_code == 200


def test_request_id_header(client):
    res = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
    assert res.headers["X-Request-ID"] == "abc123"
    assert "X-Request-Duration-Ms" in res.headers
