"""
smart-tasks - personal task manager with semantic search.

Tasks are stored per user with priority and status, can be decomposed into
AI-generated subtasks, and can be searched in natural language: the query
and each task are embedded with Google GenAI and ranked by cosine
similarity.

Example usage:
    >>> from smart_tasks import InMemoryTaskStore, TaskSearchService
    >>> store = InMemoryTaskStore()
    >>> service = TaskSearchService(store, store, embedder)
    >>> results = await service.search(token, "buy milk")
"""

from .client import ClientError, ClientResult, TaskSearchClient
from .config import SearchSettings
from .embeddings import Embedder, EmbeddingProvider
from .errors import (
    EmbeddingFailureError,
    InvalidInputError,
    SearchError,
    StoreFailureError,
    UnauthenticatedError,
)
from .search import SearchResult, TaskSearchService, cosine_similarity, rank
from .storage import DuckDBTaskStore, InMemoryTaskStore, TaskRecord
from .tasks import TaskService

__all__ = [
    # Search
    "TaskSearchService",
    "SearchResult",
    "SearchSettings",
    "cosine_similarity",
    "rank",
    # Errors
    "SearchError",
    "InvalidInputError",
    "UnauthenticatedError",
    "EmbeddingFailureError",
    "StoreFailureError",
    # Client
    "TaskSearchClient",
    "ClientResult",
    "ClientError",
    # Storage and tasks
    "TaskRecord",
    "TaskService",
    "DuckDBTaskStore",
    "InMemoryTaskStore",
    # Embeddings
    "Embedder",
    "EmbeddingProvider",
]
