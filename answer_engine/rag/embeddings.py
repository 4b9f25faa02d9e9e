from __future__ import annotations

"""Embedding providers, validation and fallback handling."""

import hashlib
import logging
import math
import random
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from openai import AsyncOpenAI, OpenAIError
from prometheus_client import Counter

_TOKEN_RE = re.compile(r"[a-z0-9]+")

DEFAULT_EMBEDDING_DIMENSION = 768

logger = logging.getLogger(__name__)

EMBEDDING_FALLBACKS = Counter(
    "answer_engine_embedding_fallbacks_total",
    "Embeddings replaced by non-semantic fallback vectors",
    ["target"],
)


class EmbeddingError(RuntimeError):
    """Raised when embeddings fail or are invalid."""
    pass


class EmbeddingConfigError(RuntimeError):
    """Raised when embedding configuration is invalid."""
    pass


class EmbeddingProvider(Protocol):
    """Protocol for embedding providers."""
    dimension: int

    async def embed(self, text: str) -> list[float]:
        """Return an embedding vector for the provided text."""
        raise NotImplementedError


def validate_vector(vector: list[float], dimension: int) -> list[float]:
    """Validate and normalize embedding vectors."""
    if len(vector) != dimension:
        raise EmbeddingError(
            f"Embedding dimension mismatch: expected {dimension}, got {len(vector)}"
        )
    cleaned: list[float] = []
    for value in vector:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise EmbeddingError("Embedding contains a non-numeric value")
        if not math.isfinite(value):
            raise EmbeddingError("Embedding contains a non-finite value")
        cleaned.append(float(value))
    return cleaned


def fallback_vector(text: str, dimension: int = DEFAULT_EMBEDDING_DIMENSION) -> list[float]:
    """Return a deterministic, non-semantic vector for ``text``.

    Values are drawn uniformly from [-1, 1] with a generator seeded by the
    SHA-256 digest of the text. Scores computed against these vectors carry
    no meaning.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    rng = random.Random(int.from_bytes(digest[:8], "big"))
    return [rng.uniform(-1.0, 1.0) for _ in range(dimension)]


@dataclass(frozen=True)
class EmbeddingResult:
    """Embedding vector tagged with its provenance."""
    vector: list[float]
    fallback: bool = False
    cause: str | None = None


@dataclass
class HashEmbedder:
    """Deterministic hash-based embedder for testing or offline use."""
    dimension: int = DEFAULT_EMBEDDING_DIMENSION

    async def embed(self, text: str) -> list[float]:
        """Embed text using token hashing and L2 normalization."""
        tokens = _TOKEN_RE.findall(text.lower())
        if not tokens:
            return validate_vector([0.0] * self.dimension, self.dimension)
        vector = [0.0] * self.dimension
        for token in tokens:
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            idx = int.from_bytes(digest[:4], "big") % self.dimension
            vector[idx] += 1.0
        return validate_vector(self._l2_normalize(vector), self.dimension)

    def _l2_normalize(self, vector: list[float]) -> list[float]:
        """Normalize vector magnitude to 1.0."""
        norm = math.sqrt(sum(value * value for value in vector))
        if norm == 0.0:
            return vector
        return [value / norm for value in vector]


@dataclass
class OpenAIEmbedder:
    """Embedding provider for OpenAI-compatible embeddings APIs."""
    api_key: str
    model: str
    dimension: int = DEFAULT_EMBEDDING_DIMENSION
    base_url: str | None = None
    timeout: float = 30.0
    client: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate configuration and create a client."""
        if not self.model:
            raise EmbeddingConfigError("EMBEDDING_MODEL is required for OpenAIEmbedder")
        if self.dimension <= 0:
            raise EmbeddingConfigError("EMBEDDING_DIMENSION must be greater than zero")
        if self.client is not None:
            return
        if not self.api_key:
            raise EmbeddingConfigError("AI_API_KEY is required for OpenAIEmbedder")
        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
        )

    async def embed(self, text: str) -> list[float]:
        """Embed text using the embeddings API."""
        try:
            response = await self.client.embeddings.create(model=self.model, input=text)
            vector = list(response.data[0].embedding)
        except OpenAIError as exc:
            raise EmbeddingError(str(exc)) from exc
        except (AttributeError, IndexError, TypeError) as exc:
            raise EmbeddingError("Invalid embeddings response") from exc
        return validate_vector(vector, self.dimension)


@dataclass(frozen=True)
class OllamaEmbedder:
    """Embedding provider backed by the Ollama embeddings API."""
    base_url: str
    model: str
    dimension: int = DEFAULT_EMBEDDING_DIMENSION
    timeout: float = 30.0
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)

    async def embed(self, text: str) -> list[float]:
        """Embed text using Ollama."""
        payload = {"model": self.model, "prompt": text}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(f"{self.base_url}/api/embeddings", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise EmbeddingError(str(exc)) from exc
        except ValueError as exc:
            raise EmbeddingError("Ollama embedding response is not valid JSON") from exc
        embedding = data.get("embedding") if isinstance(data, dict) else None
        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingError("Ollama embedding response missing embedding vector")
        return validate_vector(embedding, self.dimension)


@dataclass
class ResilientEmbedder:
    """Wrap a provider so failures degrade to tagged fallback vectors."""
    provider: EmbeddingProvider
    dimension: int = DEFAULT_EMBEDDING_DIMENSION

    async def embed(self, text: str, target: str = "chunk") -> EmbeddingResult:
        """Embed text once, substituting a fallback vector on failure."""
        try:
            vector = await self.provider.embed(text)
            return EmbeddingResult(vector=validate_vector(vector, self.dimension))
        except EmbeddingError as exc:
            cause = str(exc) or type(exc).__name__
            logger.warning(
                "embedding_fallback",
                extra={"target": target, "text_length": len(text), "detail": cause},
            )
            EMBEDDING_FALLBACKS.labels(target).inc()
            return EmbeddingResult(
                vector=fallback_vector(text, self.dimension),
                fallback=True,
                cause=cause,
            )
