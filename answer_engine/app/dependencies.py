from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from answer_engine.app.settings import settings
from answer_engine.loaders.directory import DirectorySource
from answer_engine.rag.embeddings import (
    EmbeddingConfigError,
    EmbeddingProvider,
    HashEmbedder,
    OllamaEmbedder,
    OpenAIEmbedder,
    ResilientEmbedder,
)
from answer_engine.rag.llm import ChatProvider, build_chat_client
from answer_engine.rag.pipeline import RAGPipeline
from answer_engine.vectorstore.cache import CorpusCache


@lru_cache
def get_pipeline() -> RAGPipeline:
    embedder = ResilientEmbedder(
        provider=build_embedder(),
        dimension=settings.embedding_dimension,
    )
    corpus = CorpusCache(
        source=build_document_source(),
        embedder=embedder,
        chunk_size=settings.chunk_size,
        ttl_seconds=settings.corpus_ttl_seconds,
    )
    return RAGPipeline(
        corpus=corpus,
        embedder=embedder,
        chat=build_chat(),
        max_chunks=settings.max_chunks,
        preview_chars=settings.citation_preview_chars,
        reject_degraded=settings.reject_degraded,
    )


def reset_pipeline_cache() -> None:
    get_pipeline.cache_clear()


def build_document_source() -> DirectorySource:
    return DirectorySource(
        root=Path(settings.data_dir),
        extensions=settings.document_extensions,
    )


def build_embedder() -> EmbeddingProvider:
    provider = settings.embedding_provider.lower().strip()
    if provider == "hash":
        return HashEmbedder(dimension=settings.embedding_dimension)
    if provider == "openai":
        return OpenAIEmbedder(
            api_key=settings.ai_api_key or "",
            model=settings.embedding_model,
            dimension=settings.embedding_dimension,
            base_url=settings.ai_base_url,
            timeout=settings.embedding_timeout,
        )
    if provider == "ollama":
        return OllamaEmbedder(
            base_url=settings.ollama_base_url.rstrip("/"),
            model=settings.embedding_model,
            dimension=settings.embedding_dimension,
            timeout=settings.embedding_timeout,
        )
    raise EmbeddingConfigError(f"Unsupported embedding provider: {provider}")


def build_chat() -> ChatProvider:
    return build_chat_client(
        settings.llm_provider,
        api_key=settings.ai_api_key,
        base_url=settings.ai_base_url,
        model=settings.chat_model,
        ollama_base_url=settings.ollama_base_url,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.llm_timeout,
    )
