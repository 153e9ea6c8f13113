"""Notification sinks for reminders."""

from .sinks import (
    CompositeSink,
    LoggingSink,
    NotificationSink,
    TelegramSink,
    format_reminder,
)

__all__ = [
    "CompositeSink",
    "LoggingSink",
    "NotificationSink",
    "TelegramSink",
    "format_reminder",
]
