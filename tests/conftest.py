"""
Pytest configuration and shared fixtures.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from config import ScannerConfig, Settings
from db.task_store import InMemoryTaskStore
from models.reminder import ReminderEvent
from models.task import Task

NOW = datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc)


class RecordingSink:
    """Sink that records events and can be told to fail for given tasks."""

    def __init__(self):
        self.events: List[ReminderEvent] = []
        self.fail_for: set = set()
        self.delay: Optional[float] = None

    async def notify(self, event: ReminderEvent) -> None:
        if self.delay is not None:
            await asyncio.sleep(self.delay)
        if event.task_id in self.fail_for:
            raise RuntimeError(f"delivery refused for {event.task_id}")
        self.events.append(event)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_task():
    """Factory for tasks due relative to NOW."""

    def _make(task_id: str = "A", due_in: timedelta = timedelta(minutes=3), **kwargs):
        return Task(
            id=task_id,
            due_at=kwargs.pop("due_at", NOW + due_in),
            owner_id=kwargs.pop("owner_id", "123456789"),
            name=kwargs.pop("name", f"Task {task_id}"),
            **kwargs,
        )

    return _make


@pytest.fixture
def store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def scanner_config() -> ScannerConfig:
    return ScannerConfig(
        tick_interval=timedelta(seconds=60),
        lookahead=timedelta(minutes=5),
        store_timeout=timedelta(seconds=0.2),
        sink_timeout=timedelta(seconds=0.2),
        suppression_retention=timedelta(hours=1),
    )


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        supabase_url="https://test.supabase.co",
        supabase_key="test_key",
        bot_token=None,
        log_file=None,
    )


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client whose query builder chains to itself."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table
    for method in ("select", "gte", "lt", "order"):
        getattr(mock_table, method).return_value = mock_table
    return mock_client, mock_table
