"""
Main entry point for the task reminder worker.
Scans the task store on a fixed interval and sends due-date reminders.
"""

import asyncio
import logging
import signal
import sys
from typing import Optional

from aiogram import Bot

from config import Settings, settings
from db import SupabaseTaskStore
from notifications import CompositeSink, LoggingSink, NotificationSink, TelegramSink
from scheduler import ReminderScanner, setup_scheduler, shutdown_scheduler
from utils.exceptions import ConfigInvalidError
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_sink(app_settings: Settings) -> tuple[NotificationSink, Optional[Bot]]:
    """Log every reminder; also send it over Telegram when a bot token is set."""
    if not app_settings.bot_token:
        logger.info("Telegram bot token not configured, reminders are only logged")
        return LoggingSink(), None

    bot = Bot(token=app_settings.bot_token)
    return CompositeSink([LoggingSink(), TelegramSink(bot)]), bot


def build_scanner(app_settings: Settings, sink: NotificationSink) -> ReminderScanner:
    """
    Create the scanner from settings.

    Raises:
        ConfigInvalidError: If required settings are missing or invalid
    """
    app_settings.validate_all_required()
    return ReminderScanner(
        store=SupabaseTaskStore(
            url=app_settings.supabase_url,
            key=app_settings.supabase_key,
            table=app_settings.tasks_table,
        ),
        sink=sink,
        config=app_settings.scanner_config(),
    )


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            logger.debug("Signal handler for %s not supported", sig)


async def main() -> None:
    """Run the reminder worker until SIGINT/SIGTERM."""
    # Root logger, so records from every module reach the console and log file
    setup_logging(
        log_level=settings.log_level,
        log_file=settings.log_file,
        log_dir=settings.log_dir,
    )
    logger.info("Starting task reminder worker...")

    sink, bot = build_sink(settings)
    try:
        scanner = build_scanner(settings, sink)
    except ConfigInvalidError as e:
        logger.error(f"Configuration error: {e}")
        if bot:
            await bot.session.close()
        sys.exit(1)

    stop = asyncio.Event()
    _install_signal_handlers(stop)

    reminder_scheduler = setup_scheduler(scanner)
    try:
        logger.info("Reminder worker is running. Press Ctrl+C to stop.")
        await stop.wait()
    except asyncio.CancelledError:
        logger.info("Reminder worker cancelled")
    finally:
        logger.info("Shutting down...")
        shutdown_scheduler(reminder_scheduler)

        if bot:
            try:
                await bot.session.close()
                logger.info("Bot session closed")
            except Exception as e:
                logger.error(f"Error closing bot session: {e}", exc_info=True)

        logger.info(
            "Reminder worker stopped: %s", scanner.stats.model_dump_json()
        )


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    run()
