"""
HTTP client for UI code.

Every call returns a ClientResult holding exactly one of ``data`` or
``error``. Transport failures, non-success responses, and malformed bodies
never raise; they come back as a generic ClientError and are logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Generic, TypeVar

import httpx
from pydantic import ValidationError

from .models import GenerateSubtasksResponse, SearchResponse
from .search import SearchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEARCH_FAILED = "Failed to perform smart search"
SUBTASKS_FAILED = "Failed to generate subtasks"


@dataclass(frozen=True)
class ClientError:
    message: str


@dataclass(frozen=True)
class ClientResult(Generic[T]):
    """Either ``data`` or ``error``, never both and never neither."""

    data: T | None = None
    error: ClientError | None = None

    def __post_init__(self) -> None:
        if (self.data is None) == (self.error is None):
            raise ValueError("ClientResult needs exactly one of data or error.")

    @property
    def ok(self) -> bool:
        return self.error is None


class TaskSearchClient:
    """Calls the smart-tasks HTTP API on behalf of one session."""

    def __init__(
        self,
        *,
        session_token: str,
        base_url: str = "http://127.0.0.1:8000",
        timeout: float = 15.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.session_token = session_token
        self._http = http_client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "TaskSearchClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.session_token}",
            "Content-Type": "application/json",
        }

    def search(self, query: str) -> ClientResult[list[SearchResult]]:
        """Run a semantic search. A single attempt; no retries."""
        if not isinstance(query, str) or not query.strip():
            return ClientResult(error=ClientError("Query is required"))

        body = self._post_json("/api/search", {"query": query.strip()}, SEARCH_FAILED)
        if isinstance(body, ClientError):
            return ClientResult(error=body)
        try:
            parsed = SearchResponse.model_validate(body)
        except ValidationError:
            logger.error("Malformed search response body: %r", body)
            return ClientResult(error=ClientError(SEARCH_FAILED))

        return ClientResult(
            data=[SearchResult(**item.model_dump()) for item in parsed.results]
        )

    def generate_subtasks(self, task_title: str) -> ClientResult[list[str]]:
        if not isinstance(task_title, str) or not task_title.strip():
            return ClientResult(error=ClientError("Task title is required"))

        body = self._post_json(
            "/api/subtasks/generate", {"task_title": task_title.strip()}, SUBTASKS_FAILED
        )
        if isinstance(body, ClientError):
            return ClientResult(error=body)
        try:
            parsed = GenerateSubtasksResponse.model_validate(body)
        except ValidationError:
            logger.error("Malformed subtask response body: %r", body)
            return ClientResult(error=ClientError(SUBTASKS_FAILED))
        return ClientResult(data=parsed.subtasks)

    def _post_json(self, path: str, payload: dict, failure_message: str) -> object:
        try:
            response = self._http.post(path, json=payload, headers=self._headers)
        except httpx.HTTPError as exc:
            logger.error("Request to %s failed: %s", path, exc)
            return ClientError(failure_message)

        if not response.is_success:
            logger.error(
                "Request to %s returned %s: %s",
                path,
                response.status_code,
                response.text[:500],
            )
            return ClientError(failure_message)

        try:
            return response.json()
        except ValueError:
            logger.error("Response from %s is not JSON: %r", path, response.text[:500])
            return ClientError(failure_message)
