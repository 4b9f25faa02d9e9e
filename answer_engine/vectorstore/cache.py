from __future__ import annotations

"""Time-expired in-memory cache of the embedded corpus."""

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Callable

from prometheus_client import Counter

from answer_engine.loaders.chunking import DEFAULT_CHUNK_SIZE, chunk_documents
from answer_engine.loaders.directory import DocumentSource, load_documents
from answer_engine.rag.embeddings import ResilientEmbedder
from answer_engine.rag.types import Chunk, CorpusSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0

CORPUS_REBUILDS = Counter(
    "answer_engine_corpus_rebuilds_total",
    "Completed corpus snapshot rebuilds",
)


@dataclass
class CorpusCache:
    """Hold the current corpus snapshot and rebuild it when stale.

    Rebuilds are serialized by a lock and the new snapshot is installed with
    a single assignment, so readers only ever see complete snapshots.
    """
    source: DocumentSource
    embedder: ResilientEmbedder
    chunk_size: int = DEFAULT_CHUNK_SIZE
    ttl_seconds: float = DEFAULT_TTL_SECONDS
    clock: Callable[[], float] = time.monotonic
    rebuild_count: int = field(default=0, init=False)
    _snapshot: CorpusSnapshot | None = field(default=None, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    @property
    def snapshot(self) -> CorpusSnapshot | None:
        return self._snapshot

    def is_fresh(self, snapshot: CorpusSnapshot | None) -> bool:
        if snapshot is None:
            return False
        return self.clock() - snapshot.built_at < self.ttl_seconds

    def age(self) -> float | None:
        snapshot = self._snapshot
        if snapshot is None:
            return None
        return self.clock() - snapshot.built_at

    def invalidate(self) -> None:
        """Drop the current snapshot so the next read rebuilds it."""
        self._snapshot = None
        logger.info("corpus_invalidated")

    async def get_corpus(self) -> CorpusSnapshot:
        """Return a fresh snapshot, rebuilding it if absent or expired."""
        snapshot = self._snapshot
        if self.is_fresh(snapshot):
            return snapshot
        async with self._lock:
            snapshot = self._snapshot
            if self.is_fresh(snapshot):
                return snapshot
            snapshot = await self._build()
            self._snapshot = snapshot
            self.rebuild_count += 1
            CORPUS_REBUILDS.inc()
            return snapshot

    get_or_rebuild = get_corpus

    async def _build(self) -> CorpusSnapshot:
        """Load, chunk and embed every document into a new snapshot."""
        logger.info("corpus_rebuild_started")
        documents = await load_documents(self.source)
        chunks = list(chunk_documents(documents, max_chars=self.chunk_size))
        embedded: list[Chunk] = []
        for idx, chunk in enumerate(chunks, start=1):
            result = await self.embedder.embed(chunk.text, target="chunk")
            embedded.append(
                replace(
                    chunk,
                    embedding=tuple(result.vector),
                    embedding_fallback=result.fallback,
                )
            )
            logger.debug("chunk_embedded", extra={"index": idx, "total": len(chunks)})
        snapshot = CorpusSnapshot(
            chunks=tuple(embedded),
            built_at=self.clock(),
            document_count=len(documents),
        )
        logger.info(
            "corpus_rebuild_complete",
            extra={
                "documents": snapshot.document_count,
                "chunks": len(snapshot.chunks),
                "fallbacks": snapshot.fallback_count,
            },
        )
        if snapshot.fallback_count:
            logger.warning(
                "corpus_degraded",
                extra={"fallbacks": snapshot.fallback_count, "chunks": len(snapshot.chunks)},
            )
        return snapshot
