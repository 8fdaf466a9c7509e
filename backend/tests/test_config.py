"""
Unit Tests for Settings, logging and the application health endpoints

Run with: pytest tests/test_config.py -v
"""

import json
import logging

import pytest
from fastapi.testclient import TestClient

from config import Settings
from logging_config import JSONFormatter, RequestContextFilter, clear_request_context, set_request_context
from sentry_integration import filter_sensitive_data


def make_settings(**overrides):
    return Settings(_env_file=None, **overrides)


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("REGISTRY_BACKEND", raising=False)
        settings = make_settings()

        assert settings.REGISTRY_BACKEND == "postgres"
        assert settings.uses_database is True
        assert settings.UPLOAD_MAX_SIZE_MB == 10
        assert settings.upload_max_bytes == 10 * 1024 * 1024

    def test_memory_backend(self):
        assert make_settings(REGISTRY_BACKEND="memory").uses_database is False

    def test_database_url_from_components(self):
        settings = make_settings(
            DATABASE_URL="", POSTGRES_HOST="db", POSTGRES_USER="app", POSTGRES_PASSWORD="secret"
        )

        assert settings.get_database_url() == "postgresql+asyncpg://app:secret@db:5432/event_verification"

    def test_missing_database_configuration(self):
        with pytest.raises(ValueError):
            make_settings(DATABASE_URL="", POSTGRES_HOST="").get_database_url()

    def test_development_cors_includes_localhost(self):
        settings = make_settings(ENVIRONMENT="development", CORS_ORIGINS="https://events.example.com")

        assert "https://events.example.com" in settings.cors_origins_list
        assert "http://localhost:3000" in settings.cors_origins_list

    def test_production_validation(self):
        settings = make_settings(
            ENVIRONMENT="production", REGISTRY_BACKEND="postgres", DATABASE_URL="", POSTGRES_HOST="",
            CORS_ORIGINS="*", DEBUG=True,
        )

        errors = settings.validate_production_config()

        assert "DATABASE_URL is required" in errors
        assert "CORS_ORIGINS cannot be '*' in production" in errors
        assert "DEBUG should be False in production" in errors
        assert "http://localhost:3000" not in settings.cors_origins_list

    def test_invalid_backend_reported(self):
        errors = make_settings(REGISTRY_BACKEND="redis").validate_production_config()

        assert any("REGISTRY_BACKEND" in e for e in errors)


class TestLogging:

    def test_json_formatter_includes_extra_and_request_id(self):
        record = logging.LogRecord("reconciliation", logging.INFO, __file__, 1, "Run done", None, None)
        record.event = "reconciliation.run_completed"

        set_request_context("req-123")
        try:
            RequestContextFilter().filter(record)
        finally:
            clear_request_context()

        data = json.loads(JSONFormatter(service_name="event-verification").format(record))
        assert data["message"] == "Run done"
        assert data["service"] == "event-verification"
        assert data["extra"]["event"] == "reconciliation.run_completed"
        assert data["extra"]["request_id"] == "req-123"


class TestSentryFilter:

    def test_redacts_contact_details(self):
        event = {
            "request": {"headers": {"Authorization": "Bearer x"}, "data": {"email": "a@example.com"}},
            "extra": {"details": {"phone": "9876543210", "run_id": "r1"}},
        }

        filtered = filter_sensitive_data(event, {})

        assert filtered["request"]["headers"]["Authorization"] == "[REDACTED]"
        assert filtered["request"]["data"]["email"] == "[REDACTED]"
        assert filtered["extra"]["details"]["phone"] == "[REDACTED]"
        assert filtered["extra"]["details"]["run_id"] == "r1"


class TestServer:

    @pytest.fixture
    def app_client(self):
        import server

        with TestClient(server.app) as client:
            yield client

    def test_root(self, app_client):
        response = app_client.get("/api/")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_with_memory_registry(self, app_client):
        response = app_client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["checks"]["database"]["type"] == "memory"

    def test_request_id_header(self, app_client):
        response = app_client.get("/api/", headers={"X-Request-ID": "abc"})

        assert response.headers["X-Request-ID"] == "abc"

    def test_status(self, app_client):
        data = app_client.get("/api/verification/status").json()

        assert data["module"] == "verification"
        assert data["extraction_strategies"] == ["primary", "fallback"]
        assert data["registry_backend"] == "memory"
