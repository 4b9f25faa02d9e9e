from __future__ import annotations

"""Context assembly and citation helpers for ranked chunks."""

from dataclasses import dataclass, field

from answer_engine.rag.types import Citation, ScoredChunk

DEFAULT_PREVIEW_CHARS = 200
TRUNCATION_MARKER = "..."


@dataclass(frozen=True)
class AssembledContext:
    """Prompt context plus the provenance kept out of it."""
    context: str
    citations: list[Citation] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)


def truncate_preview(text: str, limit: int = DEFAULT_PREVIEW_CHARS) -> str:
    """Trim text to ``limit`` characters, marking truncation."""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def build_context(ranked: list[ScoredChunk]) -> str:
    """Join chunk texts with blank lines, without source labels."""
    return "\n\n".join(item.chunk.text for item in ranked)


def build_citations(
    ranked: list[ScoredChunk], preview_chars: int = DEFAULT_PREVIEW_CHARS
) -> list[Citation]:
    """Build one citation per ranked chunk, in ranked order."""
    return [
        Citation(
            source=item.chunk.source,
            text=truncate_preview(item.chunk.text, preview_chars),
            relevance=item.score,
        )
        for item in ranked
    ]


def unique_sources(ranked: list[ScoredChunk]) -> list[str]:
    """Return distinct source names in order of first appearance."""
    return list(dict.fromkeys(item.chunk.source for item in ranked))


def assemble_context(
    ranked: list[ScoredChunk], preview_chars: int = DEFAULT_PREVIEW_CHARS
) -> AssembledContext:
    """Build the generation context and caller-facing provenance."""
    return AssembledContext(
        context=build_context(ranked),
        citations=build_citations(ranked, preview_chars),
        sources=unique_sources(ranked),
    )
