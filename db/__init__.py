"""Task store clients."""

from .supabase_client import SupabaseTaskStore
from .task_store import InMemoryTaskStore, TaskStore

__all__ = ["InMemoryTaskStore", "SupabaseTaskStore", "TaskStore"]
