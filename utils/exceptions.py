"""
Custom exception classes for the reminder service.
Each failure mode of a scan has its own type so callers can tell them apart.
"""

from typing import Optional


class ReminderError(Exception):
    """Base exception for reminder scanning."""

    pass


class StoreUnavailableError(ReminderError):
    """Raised when the task store query fails or times out.

    The whole tick is aborted; the next scheduled tick runs normally.
    """

    pass


class SinkFailureError(ReminderError):
    """Raised when delivering a single reminder fails or times out."""

    def __init__(self, message: str, task_id: Optional[str] = None):
        super().__init__(message)
        self.task_id = task_id


class ConfigInvalidError(ReminderError):
    """Raised when scanner configuration is invalid at startup."""

    pass
