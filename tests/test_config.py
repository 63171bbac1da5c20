"""Tests for application settings parsing."""

import pytest

from api.config import Settings
from core.models import MAX_DOCUMENT_BYTES


def test_cors_origins_from_comma_separated_env(monkeypatch):
    """Parse CORS origins from comma-separated env var."""
    monkeypatch.setenv(
        "CORS_ORIGINS",
        "https://a.example, https://b.example",
    )
    settings = Settings()
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_cors_origins_from_json_env(monkeypatch):
    """Parse CORS origins from JSON array env var."""
    monkeypatch.setenv(
        "CORS_ORIGINS",
        '["https://a.example", "https://b.example"]',
    )
    settings = Settings()
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_cors_origins_empty_env(monkeypatch):
    """Treat empty CORS env as an empty list."""
    monkeypatch.setenv("CORS_ORIGINS", "")
    settings = Settings()
    assert settings.cors_origins == []


def test_cors_origins_invalid_json_env_raises(monkeypatch):
    """Reject invalid JSON that starts with [ but is not valid."""
    monkeypatch.setenv("CORS_ORIGINS", "[not json]")
    with pytest.raises(ValueError):
        Settings()


def test_parsing_defaults():
    """Document limits default to the shared size guard."""
    settings = Settings()
    assert settings.max_document_bytes == MAX_DOCUMENT_BYTES
    assert settings.suppress_scene_numbers is False
    assert settings.metrics_enabled is True


def test_suppress_scene_numbers_from_env(monkeypatch):
    monkeypatch.setenv("SUPPRESS_SCENE_NUMBERS", "true")
    assert Settings().suppress_scene_numbers is True


def test_log_level_normalized(monkeypatch):
    """Log level is upper-cased and checked against logging's names."""
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert Settings().log_level == "DEBUG"


def test_unknown_log_level_raises(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(ValueError):
        Settings()


def test_production_rejects_debug(monkeypatch):
    """Debug mode is not allowed in production."""
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("DEBUG", "true")
    with pytest.raises(ValueError, match="DEBUG must be false"):
        Settings()


def test_production_without_debug(monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("DEBUG", "false")
    settings = Settings()
    assert settings.is_production
    assert not settings.is_development
