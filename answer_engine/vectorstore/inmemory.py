from __future__ import annotations

"""Exhaustive in-memory similarity ranking over embedded chunks."""

import math
from typing import Sequence

from answer_engine.rag.types import Chunk, ScoredChunk

DEFAULT_TOP_K = 3


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors.

    Returns 0.0 when either vector has zero magnitude.
    """
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


def score_chunks(query_vector: Sequence[float], chunks: Sequence[Chunk]) -> list[ScoredChunk]:
    """Score every embedded chunk against the query, in corpus order."""
    return [
        ScoredChunk(chunk=chunk, score=cosine_similarity(query_vector, chunk.embedding))
        for chunk in chunks
        if chunk.embedding is not None
    ]


def rank(
    query_vector: Sequence[float],
    chunks: Sequence[Chunk],
    k: int = DEFAULT_TOP_K,
) -> list[ScoredChunk]:
    """Return the top ``k`` chunks by descending score.

    Ties keep corpus order because ``list.sort`` is stable.
    """
    if k <= 0:
        return []
    scored = score_chunks(query_vector, chunks)
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored[:k]
