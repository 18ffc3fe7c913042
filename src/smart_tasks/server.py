"""
FastAPI server for smart-tasks.

Exposes semantic search, task CRUD, and AI subtask generation. Every route
except /health is scoped to the user behind the bearer session token.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse

from .config import SearchSettings, resolve_db_path
from .embeddings import Embedder, EmbeddingProvider
from .errors import (
    SearchError,
    SubtaskGenerationError,
    TaskNotFoundError,
    UnauthenticatedError,
)
from .models import (
    ErrorResponse,
    GenerateSubtasksRequest,
    GenerateSubtasksResponse,
    SearchRequest,
    SearchResponse,
    SearchResultModel,
    TaskCreateRequest,
    TaskListResponse,
    TaskModel,
    TaskUpdateRequest,
)
from .search import TaskSearchService
from .storage import DuckDBTaskStore
from .subtasks import SubtaskGenerator
from .tasks import TaskService

logger = logging.getLogger(__name__)

app = FastAPI(title="smart-tasks", description="Task manager with semantic search")


@lru_cache(maxsize=None)
def _prepared_db_path(db_path: str) -> str:
    """Create the schema once per process; requests then open without DDL."""
    DuckDBTaskStore(db_path).close()
    return db_path


def get_store() -> Iterator[DuckDBTaskStore]:
    """Open the DuckDB store for one request; serves as TaskStore and SessionStore.

    The connection is closed when the request finishes, releasing the DuckDB
    file lock between requests.
    """
    store = DuckDBTaskStore(_prepared_db_path(resolve_db_path()), initialize=False)
    try:
        yield store
    finally:
        store.close()


@lru_cache(maxsize=1)
def get_embedder() -> Embedder | None:
    try:
        return EmbeddingProvider()
    except ValueError:
        logger.warning("GOOGLE_API_KEY not set; embeddings are disabled")
        return None


@lru_cache(maxsize=1)
def get_subtask_generator() -> SubtaskGenerator | None:
    try:
        return SubtaskGenerator()
    except ValueError:
        return None


def get_search_settings() -> SearchSettings:
    return SearchSettings.from_env()


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_session_token(
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    return bearer_token(authorization)


def get_current_user(
    token: Annotated[str | None, Depends(get_session_token)],
    store: Annotated[DuckDBTaskStore, Depends(get_store)],
) -> str:
    user_id = store.resolve_session(token) if token else None
    if user_id is None:
        raise UnauthenticatedError("Session token did not resolve to a user.")
    return user_id


def get_task_service(
    store: Annotated[DuckDBTaskStore, Depends(get_store)],
    embedder: Annotated[Embedder | None, Depends(get_embedder)],
) -> TaskService:
    return TaskService(store, embedder)


@app.exception_handler(SearchError)
async def handle_search_error(request: Request, exc: SearchError) -> JSONResponse:
    return JSONResponse({"error": exc.public_message}, status_code=exc.status_code)


@app.exception_handler(TaskNotFoundError)
async def handle_task_not_found(request: Request, exc: TaskNotFoundError) -> JSONResponse:
    return JSONResponse({"error": "Task not found"}, status_code=404)


@app.get("/health")
async def health():
    return {"status": "ok"}


_ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 401, 500)}


@app.post("/api/search", response_model=SearchResponse, responses=_ERROR_RESPONSES)
async def search_tasks(
    request: SearchRequest,
    token: Annotated[str | None, Depends(get_session_token)],
    store: Annotated[DuckDBTaskStore, Depends(get_store)],
    embedder: Annotated[Embedder | None, Depends(get_embedder)],
    settings: Annotated[SearchSettings, Depends(get_search_settings)],
):
    """Rank the caller's top-level tasks against a natural-language query."""
    service = TaskSearchService(store, store, embedder, settings)
    results = await service.search(token, request.query)
    return SearchResponse(results=[SearchResultModel.from_result(r) for r in results])


@app.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(
    user_id: Annotated[str, Depends(get_current_user)],
    service: Annotated[TaskService, Depends(get_task_service)],
):
    """List top-level tasks, newest first, each with its subtasks."""
    trees = service.list_tasks(user_id)
    return TaskListResponse(
        tasks=[TaskModel.from_record(tree.task, tree.subtasks) for tree in trees]
    )


@app.post("/api/tasks", response_model=TaskModel, status_code=201)
async def create_task(
    request: TaskCreateRequest,
    user_id: Annotated[str, Depends(get_current_user)],
    service: Annotated[TaskService, Depends(get_task_service)],
):
    try:
        # Creating a top-level task calls the embedding provider, which blocks.
        task = await asyncio.to_thread(
            service.create_task,
            user_id,
            request.text,
            priority=request.priority,
            status=request.status,
            parent_task_id=request.parent_task_id,
        )
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    return TaskModel.from_record(task)


@app.patch("/api/tasks/{task_id}", response_model=TaskModel)
async def update_task(
    task_id: str,
    request: TaskUpdateRequest,
    user_id: Annotated[str, Depends(get_current_user)],
    service: Annotated[TaskService, Depends(get_task_service)],
):
    try:
        task = await asyncio.to_thread(
            service.update_task,
            user_id,
            task_id,
            text=request.text,
            priority=request.priority,
            status=request.status,
        )
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    return TaskModel.from_record(task)


@app.delete("/api/tasks/{task_id}")
async def delete_task(
    task_id: str,
    user_id: Annotated[str, Depends(get_current_user)],
    service: Annotated[TaskService, Depends(get_task_service)],
):
    removed = service.delete_task(user_id, task_id)
    return {"deleted": removed}


@app.post("/api/subtasks/generate", response_model=GenerateSubtasksResponse)
async def generate_subtasks(
    request: GenerateSubtasksRequest,
    user_id: Annotated[str, Depends(get_current_user)],
    generator: Annotated[SubtaskGenerator | None, Depends(get_subtask_generator)],
):
    """Suggest 5-7 subtasks for a task title without storing them."""
    if not request.task_title.strip():
        return JSONResponse({"error": "Task title is required"}, status_code=400)
    if generator is None:
        return JSONResponse({"error": "Failed to generate subtasks"}, status_code=500)
    try:
        subtasks = await generator.generate(request.task_title)
    except SubtaskGenerationError as exc:
        logger.warning("Subtask generation failed for user=%s: %s", user_id, exc)
        return JSONResponse({"error": str(exc)}, status_code=500)
    return GenerateSubtasksResponse(subtasks=subtasks)


@app.post(
    "/api/tasks/{task_id}/subtasks/generate",
    response_model=list[TaskModel],
    status_code=201,
)
async def generate_and_store_subtasks(
    task_id: str,
    user_id: Annotated[str, Depends(get_current_user)],
    service: Annotated[TaskService, Depends(get_task_service)],
    generator: Annotated[SubtaskGenerator | None, Depends(get_subtask_generator)],
):
    """Generate subtasks for one of the caller's tasks and store them under it."""
    parent = service.get_task(user_id, task_id)
    if generator is None:
        return JSONResponse({"error": "Failed to generate subtasks"}, status_code=500)
    try:
        texts = await generator.generate(parent.text)
        created = await asyncio.to_thread(service.add_subtasks, user_id, parent.id, texts)
    except SubtaskGenerationError as exc:
        logger.warning("Subtask generation failed for task=%s: %s", task_id, exc)
        return JSONResponse({"error": str(exc)}, status_code=500)
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    return [TaskModel.from_record(task) for task in created]


def run_server(host: str = "127.0.0.1", port: int = 8000):
    """Run the FastAPI server."""
    import uvicorn

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
