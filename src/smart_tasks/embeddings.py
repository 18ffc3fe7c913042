"""
Embedding provider for semantic task search.

Wraps the Google GenAI embedding API for single-text and batch embedding
with configurable model, dimensions, batch size, and request timeout.
"""

from __future__ import annotations

import math
import os
from collections.abc import Sequence
from typing import Any, Protocol

from google.genai import Client as GenAIClient
from google.genai.types import HttpOptions

from .errors import EmbeddingResponseError


_DEFAULT_MODEL = "gemini-embedding-001"
_DEFAULT_DIM = 768
_DEFAULT_BATCH_SIZE = 50
_DEFAULT_TIMEOUT_SECONDS = 10.0


class Embedder(Protocol):
    """Anything that maps a text to a fixed-length vector."""

    def embed_text(self, text: str) -> list[float]:
        """Embed a task text for storage and ranking."""

    def embed_query(self, query: str) -> list[float]:
        """Embed a search query."""


def coerce_vector(raw: Any, *, expected_dim: int | None = None) -> list[float]:
    """Validate provider output and return it as a list of floats.

    Raises EmbeddingResponseError for anything that is not a non-empty
    sequence of finite real numbers (booleans rejected), or whose length
    differs from *expected_dim* when given.
    """
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise EmbeddingResponseError(
            f"Expected a sequence of numbers, got {type(raw).__name__}."
        )
    if not raw:
        raise EmbeddingResponseError("Embedding is empty.")

    vector: list[float] = []
    for index, value in enumerate(raw):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise EmbeddingResponseError(
                f"Embedding component {index} is not numeric: {value!r}."
            )
        number = float(value)
        if not math.isfinite(number):
            raise EmbeddingResponseError(
                f"Embedding component {index} is not finite: {value!r}."
            )
        vector.append(number)

    if expected_dim is not None and len(vector) != expected_dim:
        raise EmbeddingResponseError(
            f"Embedding has {len(vector)} dimensions, expected {expected_dim}."
        )
    return vector


class EmbeddingProvider:
    """Generate text embeddings via Google GenAI."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        dim: int | None = None,
        batch_size: int | None = None,
        timeout: float | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv("SMART_TASKS_EMBEDDING_MODEL", _DEFAULT_MODEL)
        self.dim = dim or int(os.getenv("SMART_TASKS_EMBEDDING_DIM", str(_DEFAULT_DIM)))
        self.batch_size = batch_size or int(
            os.getenv("SMART_TASKS_EMBEDDING_BATCH_SIZE", str(_DEFAULT_BATCH_SIZE))
        )
        self.timeout = timeout or float(
            os.getenv("SMART_TASKS_EMBEDDING_TIMEOUT", str(_DEFAULT_TIMEOUT_SECONDS))
        )

        if client is not None:
            self._client = client
        else:
            resolved_key = api_key or os.getenv("GOOGLE_API_KEY")
            if resolved_key is None:
                raise ValueError(
                    "GOOGLE_API_KEY not found. "
                    "Provide api_key or set the environment variable."
                )
            # HttpOptions.timeout is in milliseconds.
            self._client = GenAIClient(
                api_key=resolved_key,
                http_options=HttpOptions(timeout=int(self.timeout * 1000)),
            )

    def _embed(self, contents: list[str], task_type: str) -> list[list[float]]:
        result = self._client.models.embed_content(
            model=self.model,
            contents=contents,
            config={
                "task_type": task_type,
                "output_dimensionality": self.dim,
            },
        )
        embeddings = getattr(result, "embeddings", None) or []
        if len(embeddings) != len(contents):
            raise EmbeddingResponseError(
                f"Provider returned {len(embeddings)} embeddings for {len(contents)} texts."
            )
        return [coerce_vector(emb.values) for emb in embeddings]

    def embed_texts(
        self,
        texts: list[str],
        *,
        task_type: str = "RETRIEVAL_DOCUMENT",
    ) -> list[list[float]]:
        """Embed a list of texts in batches.

        Returns a list of embedding vectors in the same order as *texts*.
        """
        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            all_embeddings.extend(self._embed(batch, task_type))
        return all_embeddings

    def embed_text(self, text: str) -> list[float]:
        """Embed a single task text for storage and ranking."""
        return self._embed([text], "RETRIEVAL_DOCUMENT")[0]

    def embed_query(self, query: str) -> list[float]:
        """Embed a single query text for retrieval."""
        return self._embed([query], "RETRIEVAL_QUERY")[0]
