from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class AnswerRequest(BaseModel):
    question: Any = None


class CitationOut(BaseModel):
    source: str
    text: str
    relevance: float


class AnswerResponse(BaseModel):
    answer: str
    citations: list[CitationOut] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    degraded: bool = False


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None


class StatsResponse(BaseModel):
    built: bool
    document_count: int
    chunk_count: int
    fallback_count: int
    embedding_dimension: int
    age_seconds: float | None = None


class InvalidateResponse(BaseModel):
    invalidated: bool
