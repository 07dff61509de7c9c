"""Vector similarity helpers."""

import math
from collections.abc import Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors.

    Returns 0.0 when either vector has zero norm.

    Raises:
        ValueError: The vectors differ in length
    """
    if len(a) != len(b):
        raise ValueError(f"vector lengths differ: {len(a)} != {len(b)}")

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def brute_search(
    query: Sequence[float],
    candidates: Iterable[tuple[T, Sequence[float]]],
    limit: int | None = None,
) -> list[tuple[T, float]]:
    """Score every candidate against query, best first.

    Ties keep their input order.
    """
    scored = [(item, cosine_similarity(query, vector)) for item, vector in candidates]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored if limit is None else scored[:limit]
