"""
End-to-end test of the reminder flow.
Runs a real APScheduler instance against the in-memory store: schedule → tick → remind.
"""

import asyncio
from datetime import timedelta

import pytest

from config import ScannerConfig
from db.task_store import InMemoryTaskStore
from models.task import Task
from scheduler import ReminderScanner, setup_scheduler, shutdown_scheduler
from utils.datetime_utils import utc_now


async def _wait_for(condition, timeout: float = 5.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.02)


@pytest.mark.asyncio
async def test_scheduled_scanner_reminds_once(sink):
    """Test a due task is reminded once across several scheduled ticks."""
    start = utc_now()
    store = InMemoryTaskStore(
        [
            Task(id="1", due_at=start + timedelta(minutes=2), owner_id="7", name="Pay rent"),
            Task(id="2", due_at=start + timedelta(hours=3), owner_id="7", name="Dentist"),
        ]
    )
    config = ScannerConfig(
        tick_interval=timedelta(milliseconds=100),
        store_timeout=timedelta(seconds=1),
        sink_timeout=timedelta(seconds=1),
    )
    scanner = ReminderScanner(store, sink, config)

    scheduler = setup_scheduler(scanner)
    try:
        await _wait_for(lambda: scanner.stats.ticks_run >= 3)
    finally:
        shutdown_scheduler(scheduler)

    assert [e.task_id for e in sink.events] == ["1"]
    assert scanner.stats.notifications_sent == 1
    assert scanner.stats.store_failures == 0
