"""In-memory storage backend for tests and local demos."""

from __future__ import annotations

import secrets
from dataclasses import replace
from datetime import UTC, datetime
from uuid import uuid4

from ..errors import TaskNotFoundError
from .base import Priority, Status, TaskRecord, validate_task_fields


def _now() -> str:
    return datetime.now(UTC).isoformat()


class InMemoryTaskStore:
    """Dict-backed TaskStore and SessionStore."""

    def __init__(self) -> None:
        self._tasks: dict[str, TaskRecord] = {}
        self._sessions: dict[str, str] = {}

    def list_top_level_tasks(self, owner_id: str) -> list[TaskRecord]:
        tasks = [
            task
            for task in self._tasks.values()
            if task.owner_id == owner_id and task.parent_task_id is None
        ]
        # dict preserves insertion order, so reversing yields newest first.
        return list(reversed(tasks))

    def list_subtasks(self, parent_task_id: str) -> list[TaskRecord]:
        return [
            task for task in self._tasks.values() if task.parent_task_id == parent_task_id
        ]

    def create_task(
        self,
        *,
        owner_id: str,
        text: str,
        priority: Priority,
        status: Status,
        parent_task_id: str | None = None,
    ) -> TaskRecord:
        validate_task_fields(text=text, priority=priority, status=status)
        if parent_task_id is not None:
            parent = self._tasks.get(parent_task_id)
            if parent is None:
                raise TaskNotFoundError(parent_task_id)
            if parent.parent_task_id is not None:
                raise ValueError("Subtasks cannot have subtasks of their own.")
        now = _now()
        record = TaskRecord(
            id=uuid4().hex,
            owner_id=owner_id,
            text=text,
            priority=priority,
            status=status,
            created_at=now,
            updated_at=now,
            parent_task_id=parent_task_id,
        )
        self._tasks[record.id] = record
        return record

    def add(self, record: TaskRecord) -> TaskRecord:
        """Insert a fully-formed record, e.g. one carrying an embedding."""
        self._tasks[record.id] = record
        return record

    def get_task(self, task_id: str) -> TaskRecord | None:
        return self._tasks.get(task_id)

    def update_task(
        self,
        task_id: str,
        *,
        text: str | None = None,
        priority: Priority | None = None,
        status: Status | None = None,
    ) -> TaskRecord:
        current = self._tasks.get(task_id)
        if current is None:
            raise TaskNotFoundError(task_id)
        validate_task_fields(text=text, priority=priority, status=status)
        changes: dict[str, object] = {"updated_at": _now()}
        if text is not None and text != current.text:
            changes["text"] = text
            changes["embedding"] = None
        if priority is not None:
            changes["priority"] = priority
        if status is not None:
            changes["status"] = status
        updated = replace(current, **changes)
        self._tasks[task_id] = updated
        return updated

    def set_embedding(self, task_id: str, embedding: list[float] | None) -> None:
        current = self._tasks.get(task_id)
        if current is None:
            raise TaskNotFoundError(task_id)
        self._tasks[task_id] = replace(
            current, embedding=list(embedding) if embedding is not None else None
        )

    def delete_task(self, task_id: str) -> int:
        if task_id not in self._tasks:
            return 0
        doomed = [task_id]
        doomed.extend(task.id for task in self.list_subtasks(task_id))
        for key in doomed:
            del self._tasks[key]
        return len(doomed)

    def create_session(self, user_id: str) -> str:
        token = secrets.token_urlsafe(32)
        self._sessions[token] = user_id
        return token

    def resolve_session(self, token: str) -> str | None:
        return self._sessions.get(token)

    def revoke_session(self, token: str) -> bool:
        return self._sessions.pop(token, None) is not None
