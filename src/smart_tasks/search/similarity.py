"""
Cosine similarity ranking for task embeddings.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class RankedTask:
    """A candidate id paired with its similarity to the query."""

    task_id: str
    similarity: float


def _unit_scaled(vector: Sequence[float]) -> list[float] | None:
    """Divide by the largest absolute component, or None for a zero vector."""
    peak = max((abs(x) for x in vector), default=0.0)
    if peak == 0.0:
        return None
    return [x / peak for x in vector]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the cosine similarity of two vectors.

    Vectors of different length, or with a zero norm on either side, score
    0.0, as do vectors holding NaN or infinite components. The result is
    clamped to [-1, 1].
    """
    if len(a) != len(b):
        return 0.0
    if not all(math.isfinite(x) for x in a) or not all(math.isfinite(y) for y in b):
        return 0.0

    # Components end up in [-1, 1], so no square or product overflows and the
    # largest one never underflows.
    scaled_a = _unit_scaled(a)
    scaled_b = _unit_scaled(b)
    if scaled_a is None or scaled_b is None:
        return 0.0

    dot = math.fsum(x * y for x, y in zip(scaled_a, scaled_b))
    score = dot / (math.hypot(*scaled_a) * math.hypot(*scaled_b))
    if not math.isfinite(score):
        return 0.0
    return max(-1.0, min(1.0, score))


def rank(
    query: Sequence[float],
    candidates: Iterable[tuple[str, Sequence[float]]],
    *,
    threshold: float,
    limit: int,
) -> list[RankedTask]:
    """Score candidates against *query* and return the best matches.

    Candidates with a different dimensionality than the query are skipped.
    Output is sorted by descending similarity with ties in input order, keeps
    only scores strictly above *threshold*, and holds at most *limit* entries.
    """
    if limit <= 0:
        return []

    scored: list[RankedTask] = []
    for task_id, vector in candidates:
        if len(vector) != len(query):
            continue
        scored.append(
            RankedTask(task_id=task_id, similarity=cosine_similarity(query, vector))
        )

    # sorted() is stable, so equal scores keep their input order.
    ordered = sorted(scored, key=lambda item: -item.similarity)
    return [item for item in ordered if item.similarity > threshold][:limit]
