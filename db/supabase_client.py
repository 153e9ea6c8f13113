"""
Supabase task store client.
Reads tasks whose due date falls inside a reminder window.

Expected table layout (the schema itself is owned by the task backend):
----------------------------
CREATE TABLE tasks (
    id          bigint PRIMARY KEY,
    task_name   text NOT NULL,
    due_date    timestamptz,
    user_id     text NOT NULL,
    updated_at  timestamptz
);
CREATE INDEX tasks_due_date_idx ON tasks (due_date);

The service key bypasses RLS; this client only ever reads.
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from supabase import Client as SupabaseClientType
from supabase import create_client

from config import settings
from models.task import Task
from utils.datetime_utils import parse_iso_datetime, to_iso_string
from utils.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

TASK_COLUMNS = "id, task_name, due_date, user_id, updated_at"


class SupabaseTaskStore:
    """
    Task store backed by a Supabase (PostgREST) table.

    The Supabase client is synchronous, so queries run in a worker thread
    and the scanner's timeout can abandon them.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        table: Optional[str] = None,
    ):
        self.client: SupabaseClientType = create_client(
            url or settings.supabase_url, key or settings.supabase_key
        )
        self.table = table or settings.tasks_table

    async def find_due(
        self, window_start: datetime, window_end: datetime
    ) -> List[Task]:
        """
        Get tasks with due_date in [window_start, window_end).

        Raises:
            StoreUnavailableError: If the query fails
        """
        query = (
            self.client.table(self.table)
            .select(TASK_COLUMNS)
            .gte("due_date", to_iso_string(window_start))
            .lt("due_date", to_iso_string(window_end))
            .order("due_date")
        )
        try:
            response = await asyncio.to_thread(query.execute)
        except Exception as e:
            raise StoreUnavailableError(f"Failed to query due tasks: {e}") from e

        tasks = []
        for item in response.data or []:
            try:
                tasks.append(self._parse_task(item))
            except (KeyError, TypeError, ValueError) as e:
                # One bad row must not hold back reminders for the rest
                logger.warning("Skipping malformed task row %r: %s", item.get("id"), e)
        return tasks

    # ========== Helper Methods ==========

    def _parse_task(self, item: dict) -> Task:
        """
        Parse task data from database response.

        Args:
            item: Raw task row from database

        Returns:
            Parsed Task object

        Raises:
            KeyError, TypeError, ValueError: If the row is incomplete or invalid
        """
        return Task(
            id=str(item["id"]),
            name=item.get("task_name") or "",
            due_at=parse_iso_datetime(item["due_date"]),
            owner_id=str(item["user_id"]),
            updated_at=(
                parse_iso_datetime(item["updated_at"])
                if item.get("updated_at")
                else None
            ),
        )
