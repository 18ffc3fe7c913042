"""Semantic search over a user's tasks."""

from .service import SearchResult, TaskSearchService
from .similarity import RankedTask, cosine_similarity, rank

__all__ = [
    "SearchResult",
    "TaskSearchService",
    "RankedTask",
    "cosine_similarity",
    "rank",
]
