"""
Unit tests for task store clients.
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from db.supabase_client import SupabaseTaskStore
from db.task_store import InMemoryTaskStore
from utils.exceptions import StoreUnavailableError


class TestSupabaseTaskStore:
    """Test Supabase task store queries."""

    @pytest.fixture
    def task_store(self, mock_supabase_client):
        """Create task store with mocked Supabase."""
        mock_client, mock_table = mock_supabase_client
        with patch("db.supabase_client.create_client", return_value=mock_client):
            store = SupabaseTaskStore(
                url="https://test.supabase.co", key="test_key", table="tasks"
            )
        return store, mock_table

    @pytest.mark.asyncio
    async def test_find_due_queries_half_open_window(self, task_store, now):
        """Test due tasks are selected with gte start and lt end."""
        store, mock_table = task_store
        mock_table.execute.return_value = MagicMock(data=[])

        end = now + timedelta(minutes=5)
        result = await store.find_due(now, end)

        assert result == []
        store.client.table.assert_called_once_with("tasks")
        mock_table.gte.assert_called_once_with("due_date", now.isoformat())
        mock_table.lt.assert_called_once_with("due_date", end.isoformat())

    @pytest.mark.asyncio
    async def test_find_due_parses_rows(self, task_store, now):
        """Test rows are parsed into Task models."""
        store, mock_table = task_store
        mock_table.execute.return_value = MagicMock(
            data=[
                {
                    "id": 42,
                    "task_name": "Submit report",
                    "due_date": "2026-01-15T10:03:00Z",
                    "user_id": 7,
                    "updated_at": "2026-01-14T09:00:00+00:00",
                },
                {
                    "id": 43,
                    "task_name": "Call back",
                    "due_date": "2026-01-15T10:04:00",
                    "user_id": "alice",
                    "updated_at": None,
                },
            ]
        )

        tasks = await store.find_due(now, now + timedelta(minutes=5))

        assert [t.id for t in tasks] == ["42", "43"]
        assert tasks[0].name == "Submit report"
        assert tasks[0].owner_id == "7"
        assert tasks[0].due_at == now + timedelta(minutes=3)
        assert tasks[0].updated_at is not None
        assert tasks[1].due_at == now + timedelta(minutes=4)
        assert tasks[1].updated_at is None

    @pytest.mark.asyncio
    async def test_find_due_query_error(self, task_store, now):
        """Test query errors are raised as StoreUnavailableError."""
        store, mock_table = task_store
        mock_table.execute.side_effect = Exception("connection reset")

        with pytest.raises(StoreUnavailableError, match="connection reset"):
            await store.find_due(now, now + timedelta(minutes=5))

    @pytest.mark.asyncio
    async def test_find_due_skips_malformed_row(self, task_store, now):
        """Test a row without a due date is skipped, the rest are returned."""
        store, mock_table = task_store
        mock_table.execute.return_value = MagicMock(
            data=[
                {"id": 1, "task_name": "Broken", "user_id": "u"},
                {
                    "id": 2,
                    "task_name": "Fine",
                    "due_date": "2026-01-15T10:03:00+00:00",
                    "user_id": "u",
                },
            ]
        )

        tasks = await store.find_due(now, now + timedelta(minutes=5))

        assert [t.id for t in tasks] == ["2"]

    @pytest.mark.asyncio
    async def test_find_due_parses_trimmed_fraction(self, task_store, now):
        """Test timestamps with a trailing-zero-trimmed fraction are parsed."""
        store, mock_table = task_store
        mock_table.execute.return_value = MagicMock(
            data=[
                {
                    "id": 7,
                    "task_name": "Precise",
                    "due_date": "2026-01-15T10:03:00.12345+00:00",
                    "user_id": "u",
                    "updated_at": "2026-01-15T09:00:00.1Z",
                }
            ]
        )

        tasks = await store.find_due(now, now + timedelta(minutes=5))

        assert len(tasks) == 1
        assert tasks[0].due_at == now + timedelta(minutes=3, microseconds=123450)
        assert tasks[0].updated_at == now - timedelta(hours=1) + timedelta(
            microseconds=100000
        )


class TestInMemoryTaskStore:
    """Test the in-memory task store."""

    @pytest.mark.asyncio
    async def test_find_due_window_is_half_open(self, make_task, now):
        """Test start is included and end is excluded."""
        store = InMemoryTaskStore(
            [
                make_task("start", timedelta(0)),
                make_task("inside", timedelta(minutes=2)),
                make_task("end", timedelta(minutes=5)),
            ]
        )

        tasks = await store.find_due(now, now + timedelta(minutes=5))

        assert [t.id for t in tasks] == ["start", "inside"]

    def test_reschedule_updates_due_date(self, make_task, now):
        """Test rescheduling replaces the task and marks it updated."""
        store = InMemoryTaskStore([make_task("A")])

        updated = store.reschedule("A", now + timedelta(hours=1))

        assert updated.due_at == now + timedelta(hours=1)
        assert updated.updated_at is not None
        assert store.get("A") == updated

    def test_reschedule_unknown_task(self):
        """Test rescheduling a missing task raises KeyError."""
        store = InMemoryTaskStore()

        with pytest.raises(KeyError):
            store.reschedule("missing", None)

    def test_remove(self, make_task):
        store = InMemoryTaskStore([make_task("A")])

        assert store.remove("A") is True
        assert store.remove("A") is False
        assert store.get("A") is None
