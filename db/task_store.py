"""Task store contract and an in-memory implementation."""

from datetime import datetime
from typing import Dict, List, Optional, Protocol

from models.task import Task
from utils.datetime_utils import ensure_utc, utc_now


class TaskStore(Protocol):
    """Anything the reminder scanner can ask for due tasks."""

    async def find_due(
        self, window_start: datetime, window_end: datetime
    ) -> List[Task]:
        """Return tasks with due_at in [window_start, window_end)."""
        ...


class InMemoryTaskStore:
    """Dict-backed task store for local runs and tests."""

    def __init__(self, tasks: Optional[List[Task]] = None):
        self._tasks: Dict[str, Task] = {}
        for task in tasks or []:
            self.add(task)

    def add(self, task: Task) -> None:
        self._tasks[task.id] = task

    def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def reschedule(self, task_id: str, due_at: datetime) -> Task:
        """
        Move a task to a new due date.

        Raises:
            KeyError: If the task does not exist
        """
        task = self._tasks[task_id]
        updated = task.model_copy(
            update={"due_at": ensure_utc(due_at), "updated_at": utc_now()}
        )
        self._tasks[task_id] = updated
        return updated

    def remove(self, task_id: str) -> bool:
        return self._tasks.pop(task_id, None) is not None

    async def find_due(
        self, window_start: datetime, window_end: datetime
    ) -> List[Task]:
        due = [
            task
            for task in self._tasks.values()
            if window_start <= task.due_at < window_end
        ]
        return sorted(due, key=lambda t: t.due_at)
