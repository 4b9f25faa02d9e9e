from __future__ import annotations

"""Embedding provider and fallback tests."""

import math

import httpx
import pytest

from answer_engine.rag.embeddings import (
    EmbeddingConfigError,
    EmbeddingError,
    HashEmbedder,
    OllamaEmbedder,
    OpenAIEmbedder,
    ResilientEmbedder,
    fallback_vector,
    validate_vector,
)
from conftest import FailingEmbedder

pytestmark = pytest.mark.anyio


async def test_hash_embedder_is_deterministic_and_normalized() -> None:
    embedder = HashEmbedder(dimension=64)

    first = await embedder.embed("Price of the phone")
    second = await embedder.embed("Price of the phone")

    assert first == second
    assert len(first) == 64
    assert math.isclose(math.sqrt(sum(value * value for value in first)), 1.0)


def test_validate_vector_rejects_bad_values() -> None:
    with pytest.raises(EmbeddingError):
        validate_vector([0.1, 0.2], 3)
    with pytest.raises(EmbeddingError):
        validate_vector([0.1, float("nan")], 2)
    with pytest.raises(EmbeddingError):
        validate_vector([0.1, "x"], 2)  # type: ignore[list-item]


def test_fallback_vector_is_deterministic() -> None:
    vector = fallback_vector("some chunk", 768)

    assert len(vector) == 768
    assert vector == fallback_vector("some chunk", 768)
    assert vector != fallback_vector("another chunk", 768)
    assert all(-1.0 <= value <= 1.0 for value in vector)


async def test_resilient_embedder_tags_fallback() -> None:
    embedder = ResilientEmbedder(provider=FailingEmbedder(dimension=32), dimension=32)

    result = await embedder.embed("What is the price?", target="query")

    assert result.fallback is True
    assert result.cause == "service unavailable"
    assert result.vector == fallback_vector("What is the price?", 32)


async def test_resilient_embedder_passes_real_vectors() -> None:
    embedder = ResilientEmbedder(provider=HashEmbedder(dimension=32), dimension=32)

    result = await embedder.embed("What is the price?")

    assert result.fallback is False
    assert result.cause is None
    assert result.vector == await HashEmbedder(dimension=32).embed("What is the price?")


async def test_resilient_embedder_rejects_dimension_mismatch() -> None:
    embedder = ResilientEmbedder(provider=HashEmbedder(dimension=16), dimension=32)

    result = await embedder.embed("text")

    assert result.fallback is True
    assert len(result.vector) == 32


async def test_ollama_embedder_parses_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/embeddings"
        return httpx.Response(200, json={"embedding": [0.5, 0.5, 0.0]})

    embedder = OllamaEmbedder(
        base_url="http://ollama.test",
        model="nomic-embed-text",
        dimension=3,
        transport=httpx.MockTransport(handler),
    )

    assert await embedder.embed("hello") == [0.5, 0.5, 0.0]


async def test_ollama_embedder_wraps_http_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "overloaded"})

    embedder = OllamaEmbedder(
        base_url="http://ollama.test",
        model="nomic-embed-text",
        dimension=3,
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(EmbeddingError):
        await embedder.embed("hello")


async def test_ollama_embedder_rejects_missing_vector() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"unexpected": True})

    embedder = OllamaEmbedder(
        base_url="http://ollama.test",
        model="nomic-embed-text",
        dimension=3,
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(EmbeddingError):
        await embedder.embed("hello")


class _FakeEmbeddings:
    def __init__(self, vector: list[float]):
        self.vector = vector
        self.calls: list[dict[str, str]] = []

    async def create(self, model: str, input: str):
        self.calls.append({"model": model, "input": input})
        item = type("Item", (), {"embedding": self.vector})()
        return type("Response", (), {"data": [item]})()


class _FakeOpenAIClient:
    def __init__(self, vector: list[float]):
        self.embeddings = _FakeEmbeddings(vector)


async def test_openai_embedder_uses_client() -> None:
    client = _FakeOpenAIClient([1.0, 0.0])
    embedder = OpenAIEmbedder(api_key="", model="nomic-embed-text", dimension=2, client=client)

    assert await embedder.embed("hello") == [1.0, 0.0]
    assert client.embeddings.calls == [{"model": "nomic-embed-text", "input": "hello"}]


def test_openai_embedder_requires_api_key() -> None:
    with pytest.raises(EmbeddingConfigError):
        OpenAIEmbedder(api_key="", model="nomic-embed-text")
