"""Tests for startup validation functions."""

import pytest
from fastapi.testclient import TestClient

from src import main
from src.core.config import settings


def test_startup_passes_in_development(monkeypatch) -> None:
    """Test that the default secret is accepted outside production."""
    monkeypatch.setattr(settings, "is_production", False)
    monkeypatch.setattr(settings, "secret_key", "change-me-in-production")

    main.validate_startup_configuration()


def test_startup_fails_with_default_secret_in_production(monkeypatch, capsys) -> None:
    """Test that production refuses the placeholder session secret."""
    monkeypatch.setattr(settings, "is_production", True)
    monkeypatch.setattr(settings, "secret_key", "change-me-in-production")

    with pytest.raises(SystemExit) as exc_info:
        main.validate_startup_configuration()

    assert exc_info.value.code == 1
    assert "SECRET_KEY must be changed" in capsys.readouterr().err


def test_startup_fails_with_empty_secret(monkeypatch) -> None:
    """Test that an empty secret is rejected regardless of environment."""
    monkeypatch.setattr(settings, "secret_key", "")

    with pytest.raises(SystemExit):
        main.validate_startup_configuration()


def test_startup_passes_with_real_secret_in_production(monkeypatch) -> None:
    monkeypatch.setattr(settings, "is_production", True)
    monkeypatch.setattr(settings, "secret_key", "a-long-random-secret")

    main.validate_startup_configuration()


def test_health_endpoint(tmp_path, monkeypatch) -> None:
    """Test the app starts, creates its schema, and reports healthy."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "health.db"))
    monkeypatch.setattr(settings, "is_production", False)

    with TestClient(main.app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert (tmp_path / "health.db").exists()
