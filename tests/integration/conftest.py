"""Pytest configuration and fixtures for integration tests against a real SQLite file."""

from collections.abc import AsyncIterator

import pytest

from src.core import db_client
from src.core.config import settings
from src.domain.user import User
from src.services import auth_service


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch) -> AsyncIterator[str]:
    """Point db_client at a fresh database file with the schema applied."""
    db_path = str(tmp_path / "taskdeck_test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    await db_client.init_db()
    yield db_path
    await db_client.close_connection()


@pytest.fixture
async def alice_account(sqlite_db) -> User:
    return await auth_service.sign_up(email="alice@test.local", password="password123")


@pytest.fixture
async def bob_account(sqlite_db) -> User:
    return await auth_service.sign_up(email="bob@test.local", password="password123")
