"""Task model as read from the task store."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from utils.datetime_utils import ensure_utc


class Task(BaseModel):
    """Task with a due date. Read-only to the reminder scanner."""

    id: str = Field(..., min_length=1, description="Unique task ID")
    due_at: datetime
    owner_id: str
    name: str
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "42",
                "due_at": "2026-01-15T10:00:00+00:00",
                "owner_id": "alice",
                "name": "Submit report",
            }
        },
    )

    @field_validator("due_at", "updated_at")
    @classmethod
    def _normalize_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        return ensure_utc(value)
