"""Reminder scanner and its periodic scheduler."""

from .reminders import ReminderScanner, ScannerStats
from .runner import setup_scheduler, shutdown_scheduler

__all__ = ["ReminderScanner", "ScannerStats", "setup_scheduler", "shutdown_scheduler"]
