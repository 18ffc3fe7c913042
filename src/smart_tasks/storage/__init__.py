"""Storage backends for tasks and sessions."""

from .base import (
    PRIORITIES,
    STATUSES,
    Priority,
    SessionStore,
    Status,
    TaskRecord,
    TaskStore,
    validate_task_fields,
)
from .duckdb import DuckDBTaskStore
from .memory import InMemoryTaskStore

__all__ = [
    "PRIORITIES",
    "STATUSES",
    "Priority",
    "SessionStore",
    "Status",
    "TaskRecord",
    "TaskStore",
    "validate_task_fields",
    "DuckDBTaskStore",
    "InMemoryTaskStore",
]
