from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    data_dir: str = os.getenv("RAG_DATA_DIR", "data")
    document_extensions_raw: str = os.getenv("RAG_DOCUMENT_EXTENSIONS", ".txt,.md")
    chunk_size: int = int(os.getenv("RAG_CHUNK_SIZE", "800"))
    max_chunks: int = int(os.getenv("RAG_MAX_CHUNKS", "3"))
    corpus_ttl_seconds: float = float(os.getenv("RAG_CORPUS_TTL_SECONDS", "3600"))
    citation_preview_chars: int = int(os.getenv("RAG_CITATION_PREVIEW_CHARS", "200"))
    reject_degraded: bool = _env_flag("RAG_REJECT_DEGRADED", "false")
    embedding_provider: str = os.getenv("EMBEDDING_PROVIDER", "openai")
    embedding_model: str = os.getenv("EMBEDDING_MODEL", "nomic-embed-text")
    embedding_dimension: int = int(os.getenv("EMBEDDING_DIMENSION", "768"))
    embedding_timeout: float = float(os.getenv("EMBEDDING_TIMEOUT", "30"))
    ai_api_key: str | None = os.getenv("AI_API_KEY")
    ai_base_url: str = os.getenv("AI_BASE_URL", "https://api.openai.com/v1")
    llm_provider: str = os.getenv("RAG_LLM_PROVIDER", "openai")
    chat_model: str = os.getenv("RAG_CHAT_MODEL", "llama-3.3-70b-versatile")
    llm_temperature: float = float(os.getenv("RAG_LLM_TEMPERATURE", "0.7"))
    llm_max_tokens: int = int(os.getenv("RAG_LLM_MAX_TOKENS", "500"))
    llm_timeout: float = float(os.getenv("RAG_LLM_TIMEOUT", "60"))
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    metrics_enabled: bool = _env_flag("RAG_METRICS_ENABLED", "true")
    log_level: str = os.getenv("RAG_LOG_LEVEL", "INFO")

    @property
    def document_extensions(self) -> frozenset[str]:
        extensions = set()
        for value in self.document_extensions_raw.split(","):
            value = value.strip().lower()
            if not value:
                continue
            extensions.add(value if value.startswith(".") else f".{value}")
        return frozenset(extensions)


settings = Settings()
