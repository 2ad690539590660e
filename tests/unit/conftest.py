"""Pytest configuration and fixtures for unit tests."""

import pytest

from src.services.notification_service import NotificationQueue
from src.services.task_store import TaskStore
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("src.core.db_client.get_full_list", in_memory_db.get_full_list)
    monkeypatch.setattr("src.core.db_client.get_first_record", in_memory_db.get_first_record)

    return in_memory_db


@pytest.fixture
def notifications():
    """Collects notifications emitted by a task store."""
    return NotificationQueue()


@pytest.fixture
def store(patched_db, alice, notifications):
    """Unmounted task store for alice backed by the in-memory database."""
    return TaskStore(user=alice, notify=notifications)
