"""Pydantic models for tasks and reminders."""

from .reminder import ReminderEvent, ReminderWindow, SuppressionRecord
from .task import Task

__all__ = [
    "ReminderEvent",
    "ReminderWindow",
    "SuppressionRecord",
    "Task",
]
