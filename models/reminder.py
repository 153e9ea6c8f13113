"""Reminder window, event and suppression models."""

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, model_validator

from .task import Task


class ReminderWindow(BaseModel):
    """Half-open interval [start, end) of due dates that need a reminder."""

    start: datetime
    end: datetime

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_order(self) -> "ReminderWindow":
        if self.end < self.start:
            raise ValueError("window end must not precede its start")
        return self

    @classmethod
    def starting_at(cls, now: datetime, lookahead: timedelta) -> "ReminderWindow":
        return cls(start=now, end=now + lookahead)

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts < self.end


class ReminderEvent(BaseModel):
    """Structured notification handed to a sink."""

    task_id: str
    task_name: str
    due_at: datetime
    owner_id: str
    fired_at: datetime

    model_config = ConfigDict(frozen=True)

    @classmethod
    def for_task(cls, task: Task, fired_at: datetime) -> "ReminderEvent":
        return cls(
            task_id=task.id,
            task_name=task.name,
            due_at=task.due_at,
            owner_id=task.owner_id,
            fired_at=fired_at,
        )


class SuppressionRecord(BaseModel):
    """Last reminder emitted for a task, keyed by task ID in the scanner."""

    task_id: str
    due_at: datetime
    notified_at: datetime

    model_config = ConfigDict(frozen=True)

    def matches(self, task: Task) -> bool:
        """True if the task was already notified for its current due date."""
        return self.due_at == task.due_at

    def expired(self, now: datetime, retention: timedelta) -> bool:
        return self.due_at + retention < now
