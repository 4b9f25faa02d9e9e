from __future__ import annotations

"""Shared pytest fixtures and test environment defaults."""

import os
import sys
from pathlib import Path

import anyio
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ["EMBEDDING_PROVIDER"] = "hash"
os.environ["EMBEDDING_DIMENSION"] = "256"
os.environ["RAG_LLM_PROVIDER"] = "ollama"
os.environ.pop("AI_API_KEY", None)
os.environ.setdefault("RAG_METRICS_ENABLED", "true")

from answer_engine.rag.embeddings import EmbeddingError, HashEmbedder  # noqa: E402
from answer_engine.rag.types import Document  # noqa: E402


class FakeSource:
    """In-memory document source that counts reads."""

    def __init__(self, documents: dict[str, str] | None = None, error: Exception | None = None):
        self.documents = dict(documents or {})
        self.error = error
        self.list_calls = 0

    async def list_documents(self) -> list[str]:
        self.list_calls += 1
        await anyio.sleep(0)
        if self.error is not None:
            raise self.error
        return list(self.documents)

    async def read_document(self, name: str) -> Document:
        return Document(name=name, lines=tuple(self.documents[name].splitlines()))


class FailingEmbedder:
    """Embedding provider that fails for selected texts (all by default)."""

    def __init__(self, dimension: int = 256, fail_on: set[str] | None = None):
        self.dimension = dimension
        self.fail_on = fail_on
        self.delegate = HashEmbedder(dimension=dimension)
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_on is None or text in self.fail_on:
            raise EmbeddingError("service unavailable")
        return await self.delegate.embed(text)


class FakeChat:
    """Chat provider that records prompts and returns a canned answer."""

    def __init__(self, answer: str = "The answer.", error: Exception | None = None):
        self.model = "fake-chat"
        self.answer = answer
        self.error = error
        self.prompts: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.prompts.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        return self.answer


class FakeClock:
    """Manually advanced clock for freshness tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
