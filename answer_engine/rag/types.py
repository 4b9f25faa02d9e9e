from __future__ import annotations

"""Core data types for documents, chunks and retrieval."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Document:
    """Named text body loaded from a document source."""
    name: str
    lines: tuple[str, ...]


@dataclass(frozen=True)
class Chunk:
    """Contiguous slice of a document, optionally embedded."""
    source: str
    text: str
    embedding: tuple[float, ...] | None = None
    embedding_fallback: bool = False


@dataclass(frozen=True)
class ScoredChunk:
    """Chunk paired with its similarity to a query."""
    chunk: Chunk
    score: float


@dataclass(frozen=True)
class Citation:
    """Caller-facing provenance for a ranked chunk."""
    source: str
    text: str
    relevance: float


@dataclass(frozen=True)
class CorpusSnapshot:
    """Embedded chunks for one cache generation."""
    chunks: tuple[Chunk, ...]
    built_at: float
    document_count: int = 0

    @property
    def fallback_count(self) -> int:
        return sum(1 for chunk in self.chunks if chunk.embedding_fallback)
