"""
Configuration helpers for task storage and semantic search.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


DEFAULT_DB_PATH = "~/.smart_tasks/tasks.duckdb"
ENV_DB_PATH = "SMART_TASKS_DB_PATH"

ENV_SEARCH_THRESHOLD = "SMART_TASKS_SEARCH_THRESHOLD"
ENV_SEARCH_LIMIT = "SMART_TASKS_SEARCH_LIMIT"
ENV_EMBEDDING_TIMEOUT = "SMART_TASKS_EMBEDDING_TIMEOUT"
ENV_EMBEDDING_CONCURRENCY = "SMART_TASKS_EMBEDDING_CONCURRENCY"
ENV_EMBEDDING_DIM = "SMART_TASKS_EMBEDDING_DIM"
ENV_LOG_LEVEL = "SMART_TASKS_LOG_LEVEL"

DEFAULT_SEARCH_THRESHOLD = 0.1
DEFAULT_SEARCH_LIMIT = 5
DEFAULT_EMBEDDING_TIMEOUT = 10.0
DEFAULT_EMBEDDING_CONCURRENCY = 8


def resolve_db_path(override_path: str | None = None) -> str:
    """
    Resolve the DuckDB path from CLI override, env var, or default.

    Precedence:
    1) explicit override_path
    2) SMART_TASKS_DB_PATH
    3) default path
    """
    raw_path = override_path or os.getenv(ENV_DB_PATH) or DEFAULT_DB_PATH
    resolved = Path(raw_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)


def resolve_log_level(override_level: str | None = None) -> str:
    return (override_level or os.getenv(ENV_LOG_LEVEL) or "INFO").upper()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}.") from exc


def _env_int(name: str, default: int) -> int:
    value = _env_optional_int(name)
    return default if value is None else value


def _env_optional_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}.") from exc


@dataclass(frozen=True)
class SearchSettings:
    """Policy knobs for one semantic search call."""

    threshold: float = DEFAULT_SEARCH_THRESHOLD
    limit: int = DEFAULT_SEARCH_LIMIT
    embedding_timeout: float = DEFAULT_EMBEDDING_TIMEOUT
    max_concurrent_embeddings: int = DEFAULT_EMBEDDING_CONCURRENCY
    expected_dim: int | None = None

    def __post_init__(self) -> None:
        if self.embedding_timeout <= 0:
            raise ValueError("embedding_timeout must be positive.")
        if self.max_concurrent_embeddings < 1:
            raise ValueError("max_concurrent_embeddings must be at least 1.")
        if self.expected_dim is not None and self.expected_dim < 1:
            raise ValueError("expected_dim must be at least 1.")

    @classmethod
    def from_env(cls) -> "SearchSettings":
        """Build settings from SMART_TASKS_* environment variables."""
        return cls(
            threshold=_env_float(ENV_SEARCH_THRESHOLD, DEFAULT_SEARCH_THRESHOLD),
            limit=_env_int(ENV_SEARCH_LIMIT, DEFAULT_SEARCH_LIMIT),
            embedding_timeout=_env_float(ENV_EMBEDDING_TIMEOUT, DEFAULT_EMBEDDING_TIMEOUT),
            max_concurrent_embeddings=_env_int(
                ENV_EMBEDDING_CONCURRENCY, DEFAULT_EMBEDDING_CONCURRENCY
            ),
            expected_dim=_env_optional_int(ENV_EMBEDDING_DIM),
        )
