"""
DuckDB storage backend for tasks and sessions.
"""

from __future__ import annotations

import secrets
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

import duckdb

from ..errors import TaskNotFoundError
from .base import Priority, Status, TaskRecord, validate_task_fields

_TASK_COLUMNS = (
    "id, owner_id, text, priority, status, parent_task_id, created_at, updated_at, embedding"
)


def _now() -> str:
    return datetime.now(UTC).isoformat()


class DuckDBTaskStore:
    """DuckDB-backed persistence for tasks, subtasks, embeddings, and sessions."""

    def __init__(
        self,
        db_path: str,
        *,
        read_only: bool = False,
        initialize: bool = True,
    ) -> None:
        self.db_path = str(Path(db_path).expanduser().resolve())
        self.read_only = read_only
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        # One DuckDB connection must not run statements from two threads at once.
        self._lock = threading.RLock()
        self._conn = duckdb.connect(self.db_path, read_only=read_only)
        if initialize and not read_only:
            self.initialize()

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        with self._lock:
            self._conn.close()

    def _execute(self, sql: str, params: list[Any] | None = None) -> None:
        with self._lock:
            self._conn.execute(sql, params or [])

    def _fetchall(self, sql: str, params: list[Any] | None = None) -> list[tuple[Any, ...]]:
        with self._lock:
            return self._conn.execute(sql, params or []).fetchall()

    def _fetchone(self, sql: str, params: list[Any] | None = None) -> tuple[Any, ...] | None:
        with self._lock:
            return self._conn.execute(sql, params or []).fetchone()

    def initialize(self) -> None:
        self._execute("CREATE SEQUENCE IF NOT EXISTS task_seq START 1;")
        # parent_task_id carries no REFERENCES clause: DuckDB rewrites UPDATE as
        # delete+insert, which trips foreign keys on rows that have subtasks.
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id VARCHAR PRIMARY KEY,
                seq BIGINT NOT NULL DEFAULT nextval('task_seq'),
                owner_id VARCHAR NOT NULL,
                text VARCHAR NOT NULL,
                priority VARCHAR NOT NULL,
                status VARCHAR NOT NULL,
                parent_task_id VARCHAR,
                created_at VARCHAR NOT NULL,
                updated_at VARCHAR NOT NULL,
                embedding DOUBLE[]
            );
            """
        )
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                token VARCHAR PRIMARY KEY,
                user_id VARCHAR NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            """
        )

    def list_top_level_tasks(self, owner_id: str) -> list[TaskRecord]:
        rows = self._fetchall(
            f"""
            SELECT {_TASK_COLUMNS}
            FROM tasks
            WHERE owner_id = ? AND parent_task_id IS NULL
            ORDER BY seq DESC
            """,
            [owner_id],
        )
        return [self._row_to_task(row) for row in rows]

    def list_subtasks(self, parent_task_id: str) -> list[TaskRecord]:
        rows = self._fetchall(
            f"""
            SELECT {_TASK_COLUMNS}
            FROM tasks
            WHERE parent_task_id = ?
            ORDER BY seq ASC
            """,
            [parent_task_id],
        )
        return [self._row_to_task(row) for row in rows]

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
            parent = self.get_task(parent_task_id)
            if parent is None:
                raise TaskNotFoundError(parent_task_id)
            if parent.parent_task_id is not None:
                raise ValueError("Subtasks cannot have subtasks of their own.")

        task_id = uuid4().hex
        now = _now()
        self._execute(
            """
            INSERT INTO tasks (
                id, owner_id, text, priority, status, parent_task_id, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [task_id, owner_id, text, priority, status, parent_task_id, now, now],
        )
        created = self.get_task(task_id)
        if created is None:
            raise RuntimeError(f"Failed to create task {task_id}")
        return created

    def get_task(self, task_id: str) -> TaskRecord | None:
        row = self._fetchone(
            f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ? LIMIT 1",
            [task_id],
        )
        if row is None:
            return None
        return self._row_to_task(row)

    def update_task(
        self,
        task_id: str,
        *,
        text: str | None = None,
        priority: Priority | None = None,
        status: Status | None = None,
    ) -> TaskRecord:
        current = self.get_task(task_id)
        if current is None:
            raise TaskNotFoundError(task_id)
        validate_task_fields(text=text, priority=priority, status=status)

        assignments = ["updated_at = ?"]
        params: list[Any] = [_now()]
        if text is not None and text != current.text:
            assignments.append("text = ?")
            assignments.append("embedding = NULL")
            params.append(text)
        if priority is not None:
            assignments.append("priority = ?")
            params.append(priority)
        if status is not None:
            assignments.append("status = ?")
            params.append(status)
        params.append(task_id)

        self._execute(
            f"UPDATE tasks SET {', '.join(assignments)} WHERE id = ?",
            params,
        )
        updated = self.get_task(task_id)
        if updated is None:
            raise TaskNotFoundError(task_id)
        return updated

    def set_embedding(self, task_id: str, embedding: list[float] | None) -> None:
        if self.get_task(task_id) is None:
            raise TaskNotFoundError(task_id)
        self._execute(
            "UPDATE tasks SET embedding = ? WHERE id = ?",
            [list(embedding) if embedding is not None else None, task_id],
        )

    def delete_task(self, task_id: str) -> int:
        with self._lock:
            row = self._fetchone(
                "SELECT COUNT(*) FROM tasks WHERE id = ? OR parent_task_id = ?",
                [task_id, task_id],
            )
            removed = int(row[0]) if row else 0
            self._execute("DELETE FROM tasks WHERE parent_task_id = ?", [task_id])
            self._execute("DELETE FROM tasks WHERE id = ?", [task_id])
        return removed

    def create_session(self, user_id: str) -> str:
        token = secrets.token_urlsafe(32)
        self._execute(
            "INSERT INTO sessions (token, user_id) VALUES (?, ?)",
            [token, user_id],
        )
        return token

    def resolve_session(self, token: str) -> str | None:
        row = self._fetchone(
            "SELECT user_id FROM sessions WHERE token = ? LIMIT 1",
            [token],
        )
        if row is None:
            return None
        return str(row[0])

    def revoke_session(self, token: str) -> bool:
        existed = self.resolve_session(token) is not None
        self._execute("DELETE FROM sessions WHERE token = ?", [token])
        return existed

    @staticmethod
    def _row_to_task(row: tuple[Any, ...]) -> TaskRecord:
        embedding = row[8]
        return TaskRecord(
            id=str(row[0]),
            owner_id=str(row[1]),
            text=str(row[2]),
            priority=row[3],
            status=row[4],
            parent_task_id=str(row[5]) if row[5] is not None else None,
            created_at=str(row[6]),
            updated_at=str(row[7]),
            embedding=[float(value) for value in embedding] if embedding is not None else None,
        )
