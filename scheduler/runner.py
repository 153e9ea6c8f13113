"""
APScheduler wiring for the reminder scanner.

Ticks run at a fixed rate: each run is anchored to the interval schedule, not
to the end of the previous run. A run that comes due while the previous tick
is still executing is dropped (``max_instances=1``) and counted on the scanner.
"""

import logging
from datetime import timezone
from typing import Optional

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, EVENT_JOB_MISSED, JobEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from utils.datetime_utils import utc_now

from .reminders import ReminderScanner

logger = logging.getLogger(__name__)

TICK_JOB_ID = "check_reminders"
PRUNE_JOB_ID = "prune_reminder_records"


def create_scheduler() -> AsyncIOScheduler:
    """In-memory scheduler; suppression state is per process anyway."""
    return AsyncIOScheduler(timezone=timezone.utc)


def setup_scheduler(
    scanner: ReminderScanner,
    scheduler: Optional[AsyncIOScheduler] = None,
    start: bool = True,
) -> AsyncIOScheduler:
    """Register the tick and prune jobs and start the scheduler.

    Args:
        scanner: Scanner whose timer entry points are scheduled
        scheduler: Scheduler to use; a new in-memory one by default
        start: Start the scheduler (requires a running event loop)

    Returns:
        The configured scheduler
    """
    scheduler = scheduler or create_scheduler()
    config = scanner.config
    tick_seconds = config.tick_interval.total_seconds()

    scheduler.add_job(
        scanner.run_scheduled_tick,
        trigger=IntervalTrigger(seconds=tick_seconds, timezone=timezone.utc),
        id=TICK_JOB_ID,
        name="Check tasks due soon and send reminders",
        max_instances=1,
        coalesce=True,
        misfire_grace_time=max(1, int(tick_seconds)),
        next_run_time=utc_now(),
        replace_existing=True,
    )
    scheduler.add_job(
        scanner.run_scheduled_prune,
        trigger=IntervalTrigger(
            seconds=config.prune_interval.total_seconds(), timezone=timezone.utc
        ),
        id=PRUNE_JOB_ID,
        name="Prune stale reminder suppression records",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )

    def _on_tick_dropped(event: JobEvent) -> None:
        if event.job_id == TICK_JOB_ID:
            scanner.record_skipped_tick()

    scheduler.add_listener(_on_tick_dropped, EVENT_JOB_MAX_INSTANCES | EVENT_JOB_MISSED)

    if start:
        scheduler.start()
        logger.info(
            "Reminder scheduler started: every %ss, lookahead %s",
            f"{tick_seconds:g}",
            config.lookahead,
        )
    return scheduler


def shutdown_scheduler(scheduler: AsyncIOScheduler, wait: bool = False) -> None:
    """Stop the scheduler; an in-flight tick is abandoned unless ``wait``."""
    if scheduler.running:
        scheduler.shutdown(wait=wait)
    logger.info("Reminder scheduler stopped")
