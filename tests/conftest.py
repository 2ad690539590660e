"""Pytest configuration and shared fixtures."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from src.core.config import constants
from src.domain.task import Task
from src.domain.user import User


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Keep PBKDF2 cheap in tests."""
    monkeypatch.setattr(constants, "PASSWORD_HASH_ITERATIONS", 1_000)


@pytest.fixture
def alice() -> User:
    return User(id="user_alice", email="alice@test.local")


@pytest.fixture
def bob() -> User:
    return User(id="user_bob", email="bob@test.local")


@pytest.fixture
def task_factory():
    """Factory for building Task objects without touching a database.

    Usage:
        task = task_factory(title="Buy milk", status="todo")

    Each call is one second newer than the previous one.
    """
    base = datetime(2026, 1, 1, tzinfo=UTC)
    counter = {"n": 0}

    def _create_task(**kwargs) -> Task:
        counter["n"] += 1
        timestamp = (base + timedelta(seconds=counter["n"])).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
        data = {
            "id": uuid.uuid4().hex,
            "user_id": "user_alice",
            "title": f"Task {counter['n']}",
            "description": None,
            "due_date": None,
            "priority": "medium",
            "status": "todo",
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        data.update(kwargs)
        return Task.model_validate(data)

    return _create_task
