"""
Due-date reminder scanner.

On every tick the scanner asks the task store for tasks due within the
lookahead window and hands one ReminderEvent per task to the notification
sink. Suppression records remember which due date each task was already
notified for, so a task is reminded once per due date rather than on every
poll. Rescheduling a task (a new due date) makes it eligible again.

Suppression state lives in memory only: a restart re-notifies every task that
is currently inside the window once.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

from config import DeliveryGuarantee, ScannerConfig
from db.task_store import TaskStore
from models.reminder import ReminderEvent, ReminderWindow, SuppressionRecord
from models.task import Task
from notifications.sinks import NotificationSink
from utils.datetime_utils import ensure_utc, utc_now
from utils.exceptions import ReminderError, SinkFailureError, StoreUnavailableError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
ErrorHook = Callable[[ReminderError], None]


class ScannerStats(BaseModel):
    """Counters for monitoring a scanner instance."""

    ticks_run: int = 0
    ticks_skipped: int = 0
    notifications_sent: int = 0
    store_failures: int = 0
    sink_failures: int = 0
    records_pruned: int = 0


class ReminderScanner:
    """
    Polling reminder core with duplicate suppression.

    Only one tick runs at a time per instance; a tick requested while another
    is in flight is dropped and counted in ``stats.ticks_skipped``.
    """

    def __init__(
        self,
        store: TaskStore,
        sink: NotificationSink,
        config: Optional[ScannerConfig] = None,
        clock: Clock = utc_now,
        on_error: Optional[ErrorHook] = None,
    ):
        """
        Args:
            store: Task store client queried on every tick
            sink: Receives one ReminderEvent per newly due task
            config: Timing configuration (defaults: 60s interval, 5 min lookahead)
            clock: Source of "now" for scheduled ticks
            on_error: Called once per store or sink failure

        Raises:
            ConfigInvalidError: If the configuration is invalid
        """
        self.config = config or ScannerConfig()
        self.config.ensure_valid()

        self.store = store
        self.sink = sink
        self.clock = clock
        self.on_error = on_error
        self.stats = ScannerStats()

        self._records: Dict[str, SuppressionRecord] = {}
        self._records_lock = asyncio.Lock()
        self._tick_in_flight = False
        self._last_now: Optional[datetime] = None
        self._store_failures_in_row = 0

    @property
    def records_held(self) -> int:
        return len(self._records)

    def suppression_record(self, task_id: str) -> Optional[SuppressionRecord]:
        return self._records.get(task_id)

    # ========== Scan ==========

    async def tick(self, now: datetime) -> int:
        """
        Run one scan at ``now``.

        Returns:
            Number of reminders delivered during this tick

        Raises:
            StoreUnavailableError: If the task store query failed or timed out
        """
        if self._tick_in_flight:
            self.record_skipped_tick()
            return 0

        self._tick_in_flight = True
        try:
            return await self._scan(self._advance_clock(ensure_utc(now)))
        finally:
            self._tick_in_flight = False

    async def _scan(self, now: datetime) -> int:
        self.stats.ticks_run += 1
        window = ReminderWindow.starting_at(now, self.config.lookahead)

        tasks = await self._find_due(window)
        if not tasks:
            logger.debug("No tasks due between %s and %s", window.start, window.end)
            return 0

        sent_count = 0
        for task in tasks:
            if not window.contains(task.due_at):
                logger.warning(
                    "Task store returned task %s due %s outside window %s - %s",
                    task.id,
                    task.due_at,
                    window.start,
                    window.end,
                )
                continue

            if await self._already_notified(task):
                continue

            if await self._deliver(task, now):
                sent_count += 1

        if sent_count:
            logger.info(
                "Reminder tick complete: %d sent, %d due in window",
                sent_count,
                len(tasks),
            )
        return sent_count

    async def _find_due(self, window: ReminderWindow) -> List[Task]:
        timeout = self.config.store_timeout.total_seconds()
        try:
            tasks = await asyncio.wait_for(
                self.store.find_due(window.start, window.end), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            error = StoreUnavailableError(
                f"Task store query timed out after {timeout:g}s"
            )
            self._report(error)
            raise error from e
        except StoreUnavailableError as e:
            self._report(e)
            raise
        except Exception as e:
            error = StoreUnavailableError(f"Task store query failed: {e}")
            self._report(error)
            raise error from e

        if self._store_failures_in_row:
            logger.info(
                "Task store recovered after %d failed ticks",
                self._store_failures_in_row,
            )
            self._store_failures_in_row = 0
        return tasks

    async def _already_notified(self, task: Task) -> bool:
        async with self._records_lock:
            record = self._records.get(task.id)
        if record is None:
            return False
        if record.matches(task):
            return True

        logger.info(
            "Task %s rescheduled from %s to %s; reminding again",
            task.id,
            record.due_at,
            task.due_at,
        )
        return False

    async def _deliver(self, task: Task, now: datetime) -> bool:
        event = ReminderEvent.for_task(task, fired_at=now)
        timeout = self.config.sink_timeout.total_seconds()
        try:
            await asyncio.wait_for(self.sink.notify(event), timeout=timeout)
        except asyncio.TimeoutError:
            self._report(
                SinkFailureError(
                    f"Reminder for task {task.id} timed out after {timeout:g}s",
                    task_id=task.id,
                )
            )
        except SinkFailureError as e:
            if e.task_id is None:
                e.task_id = task.id
            self._report(e)
        except Exception as e:
            self._report(
                SinkFailureError(
                    f"Reminder for task {task.id} failed: {e}", task_id=task.id
                )
            )
        else:
            await self._remember(task, now)
            self.stats.notifications_sent += 1
            return True

        if self.config.delivery_guarantee == DeliveryGuarantee.AT_MOST_ONCE:
            await self._remember(task, now)
        return False

    async def _remember(self, task: Task, now: datetime) -> None:
        async with self._records_lock:
            self._records[task.id] = SuppressionRecord(
                task_id=task.id, due_at=task.due_at, notified_at=now
            )

    def _advance_clock(self, now: datetime) -> datetime:
        if self._last_now is not None and now < self._last_now:
            logger.warning(
                "Clock went backwards (%s < %s); using previous tick time",
                now,
                self._last_now,
            )
            return self._last_now
        self._last_now = now
        return now

    # ========== Housekeeping ==========

    async def prune_stale(self, now: datetime) -> int:
        """
        Drop suppression records whose due date is past the retention margin.

        Returns:
            Number of records removed
        """
        now = ensure_utc(now)
        retention = self.config.suppression_retention
        async with self._records_lock:
            stale = [
                task_id
                for task_id, record in self._records.items()
                if record.expired(now, retention)
            ]
            for task_id in stale:
                del self._records[task_id]

        if stale:
            self.stats.records_pruned += len(stale)
            logger.debug("Pruned %d suppression records", len(stale))
        return len(stale)

    async def invalidate(self, task_id: str) -> bool:
        """Forget that a task was notified, so it is reminded again when due."""
        async with self._records_lock:
            return self._records.pop(task_id, None) is not None

    # ========== Timer entry points ==========

    async def run_scheduled_tick(self) -> Optional[int]:
        """Tick at the clock's current time. Failures are logged, never raised."""
        try:
            return await self.tick(self.clock())
        except StoreUnavailableError:
            # Already reported by tick
            return None
        except Exception:
            logger.exception("Unexpected error during reminder tick")
            return None

    async def run_scheduled_prune(self) -> int:
        try:
            return await self.prune_stale(self.clock())
        except Exception:
            logger.exception("Unexpected error pruning suppression records")
            return 0

    def record_skipped_tick(self) -> None:
        """Count a tick that was dropped because the previous one was still running."""
        self.stats.ticks_skipped += 1
        logger.warning(
            "Reminder tick skipped: previous tick still running (%d skipped so far)",
            self.stats.ticks_skipped,
        )

    # ========== Error reporting ==========

    def _report(self, error: ReminderError) -> None:
        """Count, log and forward one failure. Called from inside the except block."""
        if isinstance(error, StoreUnavailableError):
            self.stats.store_failures += 1
            self._store_failures_in_row += 1
            if self._store_failures_in_row == 1:
                logger.error("Reminder tick aborted: %s", error, exc_info=True)
            else:
                # Traceback already logged for the first failure of this outage
                logger.error(
                    "Reminder tick aborted (%d failures in a row): %s",
                    self._store_failures_in_row,
                    error,
                )
        elif isinstance(error, SinkFailureError):
            self.stats.sink_failures += 1
            logger.error(
                "Reminder delivery failed for task %s: %s",
                error.task_id,
                error,
                exc_info=True,
            )

        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception:
            logger.exception("Reminder error hook failed")
