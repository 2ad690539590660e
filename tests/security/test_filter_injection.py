from unittest.mock import AsyncMock

import pytest

from src.core import db_client
from src.core.errors import AuthenticationError
from src.domain.user import User
from src.services import auth_service
from src.services.task_store import TaskStore


@pytest.fixture
def capture_db_queries(monkeypatch):
    """Mocks db_client functions to capture query parameters."""
    mock_list = AsyncMock(return_value=[])
    mock_get_first = AsyncMock(return_value=None)

    monkeypatch.setattr("src.core.db_client.get_full_list", mock_list)
    monkeypatch.setattr("src.core.db_client.get_first_record", mock_get_first)

    return mock_list, mock_get_first


class TestFilterInjection:
    async def test_sanitize_param_escapes_quotes(self):
        sanitized = db_client.sanitize_param('foo" || true || "')

        assert sanitized == r'foo\" || true || \"'

    async def test_fetch_all_escapes_user_id(self, capture_db_queries):
        mock_list, _ = capture_db_queries
        store = TaskStore(user=User(id='user1" || user_id != "', email="a@test.local"))

        await store.fetch_all()

        filter_query = mock_list.call_args.kwargs["filter_query"]
        assert filter_query == r'user_id = "user1\" || user_id != \""'

    async def test_sign_in_escapes_email(self, capture_db_queries):
        _, mock_get_first = capture_db_queries

        with pytest.raises(AuthenticationError):
            await auth_service.sign_in(email='x" || email != "', password="password123")

        filter_query = mock_get_first.call_args.kwargs["filter_query"]
        assert filter_query == r'email = "x\" || email != \""'

    async def test_escaped_filter_never_widens_the_query(self):
        clause, params = db_client.parse_filter(r'user_id = "user1\" || user_id != \""')

        assert clause == "user_id = ?"
        assert params == ['user1" || user_id != "']
