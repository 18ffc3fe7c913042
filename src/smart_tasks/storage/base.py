"""
Storage interfaces and data models for task persistence.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol, TypeAlias

Priority: TypeAlias = Literal["high", "medium", "low"]
Status: TypeAlias = Literal["pending", "in-progress", "completed"]

PRIORITIES: tuple[str, ...] = ("high", "medium", "low")
STATUSES: tuple[str, ...] = ("pending", "in-progress", "completed")


@dataclass(frozen=True)
class TaskRecord:
    """A stored task or subtask."""

    id: str
    owner_id: str
    text: str
    priority: Priority
    status: Status
    created_at: str
    updated_at: str
    parent_task_id: str | None = None
    embedding: list[float] | None = None

    @property
    def is_top_level(self) -> bool:
        return self.parent_task_id is None


def validate_task_fields(
    *,
    text: str | None = None,
    priority: str | None = None,
    status: str | None = None,
) -> None:
    """Raise ValueError for values no backend should persist."""
    if text is not None and not text.strip():
        raise ValueError("Task text must not be empty.")
    if priority is not None and priority not in PRIORITIES:
        raise ValueError(f"Unknown priority {priority!r}; expected one of {PRIORITIES}.")
    if status is not None and status not in STATUSES:
        raise ValueError(f"Unknown status {status!r}; expected one of {STATUSES}.")


class TaskStore(Protocol):
    """Protocol for task persistence used by the task and search services."""

    def list_top_level_tasks(self, owner_id: str) -> list[TaskRecord]:
        """Return the owner's tasks without a parent, newest first."""

    def list_subtasks(self, parent_task_id: str) -> list[TaskRecord]:
        """Return subtasks of a task, oldest first."""

    def create_task(
        self,
        *,
        owner_id: str,
        text: str,
        priority: Priority,
        status: Status,
        parent_task_id: str | None = None,
    ) -> TaskRecord:
        """Insert a task and return the stored record."""

    def get_task(self, task_id: str) -> TaskRecord | None:
        """Get a task by id."""

    def update_task(
        self,
        task_id: str,
        *,
        text: str | None = None,
        priority: Priority | None = None,
        status: Status | None = None,
    ) -> TaskRecord:
        """Update the given fields. A text change clears the stored embedding."""

    def set_embedding(self, task_id: str, embedding: list[float] | None) -> None:
        """Store (or clear) the precomputed embedding for a task."""

    def delete_task(self, task_id: str) -> int:
        """Delete a task and its subtasks. Return the number of rows removed."""


class SessionStore(Protocol):
    """Protocol for resolving bearer tokens to user ids."""

    def create_session(self, user_id: str) -> str:
        """Mint a new session token for a user."""

    def resolve_session(self, token: str) -> str | None:
        """Return the user id for a token, or None when unknown."""

    def revoke_session(self, token: str) -> bool:
        """Forget a token. Return True when it existed."""
