"""
Owner-scoped task operations.

Top-level tasks get their embedding precomputed at creation and whenever
their text changes, so searches can skip the provider call for them.
Embedding is best-effort: a provider failure never fails the write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .embeddings import Embedder, coerce_vector
from .errors import TaskNotFoundError
from .storage import Priority, Status, TaskRecord, TaskStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskTree:
    """A top-level task with its subtasks, oldest subtask first."""

    task: TaskRecord
    subtasks: list[TaskRecord] = field(default_factory=list)


class TaskService:
    def __init__(self, store: TaskStore, embedder: Embedder | None = None) -> None:
        self.store = store
        self.embedder = embedder

    def list_tasks(self, owner_id: str) -> list[TaskTree]:
        return [
            TaskTree(task=task, subtasks=self.store.list_subtasks(task.id))
            for task in self.store.list_top_level_tasks(owner_id)
        ]

    def get_task(self, owner_id: str, task_id: str) -> TaskRecord:
        task = self.store.get_task(task_id)
        if task is None or task.owner_id != owner_id:
            raise TaskNotFoundError(task_id)
        return task

    def create_task(
        self,
        owner_id: str,
        text: str,
        *,
        priority: Priority = "medium",
        status: Status = "pending",
        parent_task_id: str | None = None,
    ) -> TaskRecord:
        if parent_task_id is not None:
            self.get_task(owner_id, parent_task_id)
        task = self.store.create_task(
            owner_id=owner_id,
            text=text,
            priority=priority,
            status=status,
            parent_task_id=parent_task_id,
        )
        return self._refresh_embedding(task)

    def add_subtasks(
        self,
        owner_id: str,
        parent_task_id: str,
        texts: list[str],
    ) -> list[TaskRecord]:
        """Store *texts* as pending subtasks inheriting the parent's priority."""
        parent = self.get_task(owner_id, parent_task_id)
        return [
            self.create_task(
                owner_id,
                text,
                priority=parent.priority,
                status="pending",
                parent_task_id=parent.id,
            )
            for text in texts
        ]

    def update_task(
        self,
        owner_id: str,
        task_id: str,
        *,
        text: str | None = None,
        priority: Priority | None = None,
        status: Status | None = None,
    ) -> TaskRecord:
        current = self.get_task(owner_id, task_id)
        updated = self.store.update_task(
            task_id, text=text, priority=priority, status=status
        )
        if updated.text != current.text:
            return self._refresh_embedding(updated)
        return updated

    def delete_task(self, owner_id: str, task_id: str) -> int:
        self.get_task(owner_id, task_id)
        return self.store.delete_task(task_id)

    def _refresh_embedding(self, task: TaskRecord) -> TaskRecord:
        # Subtasks never take part in search.
        if self.embedder is None or not task.is_top_level:
            return task
        try:
            embedding = coerce_vector(self.embedder.embed_text(task.text))
            self.store.set_embedding(task.id, embedding)
        except Exception:
            logger.warning(
                "Could not precompute embedding for task %s; search will embed it on demand",
                task.id,
                exc_info=True,
            )
            return task
        return self.store.get_task(task.id) or task
