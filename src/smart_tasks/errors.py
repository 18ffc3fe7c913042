"""
Error taxonomy shared by the search service, task service, and HTTP layer.
"""

from __future__ import annotations


class SearchError(Exception):
    """Total failure of a search call.

    ``public_message`` is safe to show to end users; the exception message and
    its ``__cause__`` carry the diagnostic detail for logs.
    """

    public_message = "Failed to perform smart search"
    status_code = 500


class InvalidInputError(SearchError):
    """The query text is empty or whitespace-only."""

    public_message = "Query is required"
    status_code = 400


class UnauthenticatedError(SearchError):
    """The caller's session could not be resolved to a user."""

    public_message = "User not authenticated"
    status_code = 401


class EmbeddingFailureError(SearchError):
    """The query vector could not be produced."""


class StoreFailureError(SearchError):
    """Candidate tasks could not be retrieved."""


class TaskNotFoundError(KeyError):
    """Task id is unknown or not owned by the caller."""


class EmbeddingResponseError(ValueError):
    """The embedding provider returned something that is not a usable vector."""


class SubtaskGenerationError(RuntimeError):
    """The completion model did not return a usable list of subtasks."""
