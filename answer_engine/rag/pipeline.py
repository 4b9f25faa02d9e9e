from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from answer_engine.rag.citations import DEFAULT_PREVIEW_CHARS, assemble_context
from answer_engine.rag.embeddings import ResilientEmbedder
from answer_engine.rag.guardrails import require_question
from answer_engine.rag.llm import ChatProvider, generate
from answer_engine.rag.types import Citation, ScoredChunk
from answer_engine.vectorstore.cache import CorpusCache
from answer_engine.vectorstore.inmemory import DEFAULT_TOP_K, rank

logger = logging.getLogger(__name__)


class DegradedRetrievalError(RuntimeError):
    """Raised when the question embedding fell back and policy rejects it."""
    pass


@dataclass
class RAGResponse:
    answer: str
    citations: list[Citation] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    degraded: bool = False


@dataclass
class RAGPipeline:
    corpus: CorpusCache
    embedder: ResilientEmbedder
    chat: ChatProvider
    max_chunks: int = DEFAULT_TOP_K
    preview_chars: int = DEFAULT_PREVIEW_CHARS
    reject_degraded: bool = False

    async def retrieve(self, question: str) -> tuple[list[ScoredChunk], bool]:
        snapshot = await self.corpus.get_corpus()
        query = await self.embedder.embed(question, target="query")
        if query.fallback and self.reject_degraded:
            raise DegradedRetrievalError(
                f"Question embedding unavailable: {query.cause}"
            )
        ranked = rank(query.vector, snapshot.chunks, self.max_chunks)
        degraded = query.fallback or any(item.chunk.embedding_fallback for item in ranked)
        logger.info(
            "retrieval_complete",
            extra={
                "results": len(ranked),
                "corpus_chunks": len(snapshot.chunks),
                "query_length": len(question),
                "degraded": degraded,
            },
        )
        return ranked, degraded

    async def answer(self, question: Any) -> RAGResponse:
        cleaned = require_question(question)
        ranked, degraded = await self.retrieve(cleaned)
        assembled = assemble_context(ranked, self.preview_chars)
        answer = await generate(self.chat, cleaned, assembled.context)
        logger.info(
            "answer_complete",
            extra={
                "citations": len(assembled.citations),
                "sources": len(assembled.sources),
                "degraded": degraded,
            },
        )
        return RAGResponse(
            answer=answer,
            citations=assembled.citations,
            sources=assembled.sources,
            degraded=degraded,
        )
