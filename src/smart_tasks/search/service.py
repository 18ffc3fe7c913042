"""
Semantic task search.

Embeds a free-text query, gathers the caller's top-level tasks with their
embeddings (stored or computed on demand), and ranks them by cosine
similarity.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any

from ..config import SearchSettings
from ..embeddings import Embedder, coerce_vector
from ..errors import (
    EmbeddingFailureError,
    EmbeddingResponseError,
    InvalidInputError,
    StoreFailureError,
    UnauthenticatedError,
)
from ..storage import SessionStore, TaskRecord, TaskStore
from .similarity import rank

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    """Public task fields plus the similarity computed for this call."""

    id: str
    text: str
    priority: str
    status: str
    created_at: str
    similarity: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class TaskSearchService:
    """Run one semantic search for the owner of a session."""

    def __init__(
        self,
        store: TaskStore,
        sessions: SessionStore,
        embedder: Embedder | None,
        settings: SearchSettings | None = None,
    ) -> None:
        self.store = store
        self.sessions = sessions
        self.embedder = embedder
        self.settings = settings or SearchSettings()

    async def search(
        self, session_token: str | None, query: str | None
    ) -> list[SearchResult]:
        """Return up to ``settings.limit`` of the caller's tasks, best match first.

        Raises InvalidInputError, UnauthenticatedError, EmbeddingFailureError
        or StoreFailureError on total failure. Candidates whose embedding
        cannot be produced are left out of the ranking.
        """
        if not isinstance(query, str) or not query.strip():
            raise InvalidInputError("Query is empty.")
        query = query.strip()

        owner_id = self.sessions.resolve_session(session_token) if session_token else None
        if owner_id is None:
            raise UnauthenticatedError("Session token did not resolve to a user.")

        query_vector = await self._embed_query(query)
        tasks = self._load_candidates(owner_id)
        if not tasks:
            return []

        vectors = await self._candidate_vectors(tasks)
        candidates = [
            (task.id, vector) for task, vector in zip(tasks, vectors) if vector is not None
        ]
        ranked = rank(
            query_vector,
            candidates,
            threshold=self.settings.threshold,
            limit=self.settings.limit,
        )

        by_id = {task.id: task for task in tasks}
        results: list[SearchResult] = []
        for item in ranked:
            task = by_id.get(item.task_id)
            if task is None:
                logger.warning("Ranked task %s has no matching candidate; dropping", item.task_id)
                continue
            results.append(
                SearchResult(
                    id=task.id,
                    text=task.text,
                    priority=task.priority,
                    status=task.status,
                    created_at=task.created_at,
                    similarity=item.similarity,
                )
            )

        logger.info(
            "search owner=%s candidates=%d usable=%d results=%d",
            owner_id,
            len(tasks),
            len(candidates),
            len(results),
        )
        return results

    async def _embed_query(self, query: str) -> list[float]:
        if self.embedder is None:
            logger.error("No embedding provider configured; set GOOGLE_API_KEY")
            raise EmbeddingFailureError("Embedding provider is not configured.")
        try:
            raw = await asyncio.wait_for(
                asyncio.to_thread(self.embedder.embed_query, query),
                timeout=self.settings.embedding_timeout,
            )
            return coerce_vector(raw, expected_dim=self.settings.expected_dim)
        except TimeoutError as exc:
            logger.error(
                "Query embedding timed out after %.1fs", self.settings.embedding_timeout
            )
            raise EmbeddingFailureError("Query embedding timed out.") from exc
        except Exception as exc:
            logger.exception("Query embedding failed")
            raise EmbeddingFailureError("Query embedding failed.") from exc

    def _load_candidates(self, owner_id: str) -> list[TaskRecord]:
        try:
            tasks = self.store.list_top_level_tasks(owner_id)
        except Exception as exc:
            logger.exception("Loading candidate tasks failed for owner=%s", owner_id)
            raise StoreFailureError("Task store lookup failed.") from exc

        scoped: list[TaskRecord] = []
        for task in tasks:
            if task.owner_id != owner_id or task.parent_task_id is not None:
                logger.warning(
                    "Store returned out-of-scope task %s for owner=%s; ignoring",
                    task.id,
                    owner_id,
                )
                continue
            scoped.append(task)
        return scoped

    async def _candidate_vectors(self, tasks: list[TaskRecord]) -> list[list[float] | None]:
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_embeddings)

        async def vector_for(task: TaskRecord) -> list[float]:
            if task.embedding is not None:
                try:
                    return coerce_vector(task.embedding)
                except EmbeddingResponseError as exc:
                    logger.warning(
                        "Stored embedding for task %s is unusable (%s); recomputing",
                        task.id,
                        exc,
                    )
            if self.embedder is None:
                raise EmbeddingFailureError("Embedding provider is not configured.")
            async with semaphore:
                raw = await asyncio.wait_for(
                    asyncio.to_thread(self.embedder.embed_text, task.text),
                    timeout=self.settings.embedding_timeout,
                )
            return coerce_vector(raw)

        # gather() returns outcomes in argument order, so the ranking input
        # keeps retrieval order whatever order the embeddings complete in.
        outcomes = await asyncio.gather(
            *(vector_for(task) for task in tasks), return_exceptions=True
        )

        vectors: list[list[float] | None] = []
        for task, outcome in zip(tasks, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(
                    "Embedding task %s failed; leaving it out of ranking: %r",
                    task.id,
                    outcome,
                )
                vectors.append(None)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                vectors.append(outcome)
        return vectors
