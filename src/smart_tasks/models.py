from __future__ import annotations

from pydantic import BaseModel, Field

from .search import SearchResult
from .storage import Priority, Status, TaskRecord


class SearchRequest(BaseModel):
    """Request model for semantic search."""

    query: str | None = Field(
        default=None, description="Free-text description of the task to find"
    )


class SearchResultModel(BaseModel):
    """A matching task with its similarity to the query"""

    id: str
    text: str
    priority: Priority
    status: Status
    created_at: str
    similarity: float

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResultModel":
        return cls.model_validate(result.to_dict())


class SearchResponse(BaseModel):
    results: list[SearchResultModel] = Field(
        description="Matching tasks, best match first"
    )


class TaskCreateRequest(BaseModel):
    """Request model for task creation."""

    text: str
    priority: Priority = "medium"
    status: Status = "pending"
    parent_task_id: str | None = None


class TaskUpdateRequest(BaseModel):
    """Request model for partial task updates."""

    text: str | None = None
    priority: Priority | None = None
    status: Status | None = None


class TaskModel(BaseModel):
    id: str
    text: str
    priority: Priority
    status: Status
    parent_task_id: str | None = None
    created_at: str
    updated_at: str
    has_embedding: bool = False
    subtasks: list["TaskModel"] = Field(default_factory=list)

    @classmethod
    def from_record(
        cls, record: TaskRecord, subtasks: list[TaskRecord] | None = None
    ) -> "TaskModel":
        return cls(
            id=record.id,
            text=record.text,
            priority=record.priority,
            status=record.status,
            parent_task_id=record.parent_task_id,
            created_at=record.created_at,
            updated_at=record.updated_at,
            has_embedding=record.embedding is not None,
            subtasks=[cls.from_record(sub) for sub in subtasks or []],
        )


class TaskListResponse(BaseModel):
    tasks: list[TaskModel]


class GenerateSubtasksRequest(BaseModel):
    """Request model for AI subtask generation."""

    task_title: str


class GenerateSubtasksResponse(BaseModel):
    subtasks: list[str]


class ErrorResponse(BaseModel):
    error: str
