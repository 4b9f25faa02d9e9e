from __future__ import annotations

"""Line-based chunking of documents into bounded text segments."""

from typing import Iterable, Iterator

from answer_engine.rag.types import Chunk, Document

DEFAULT_CHUNK_SIZE = 800


def iter_chunks(document: Document, max_chars: int = DEFAULT_CHUNK_SIZE) -> Iterator[Chunk]:
    """Yield chunks of at most ``max_chars`` characters in document order.

    Lines are never split: a single line longer than ``max_chars`` becomes
    its own oversized chunk. Whitespace-only accumulations are dropped.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be greater than zero")
    current = ""
    for line in document.lines:
        candidate = f"{current}\n{line}" if current else line
        if current and len(candidate) > max_chars:
            text = current.strip()
            if text:
                yield Chunk(source=document.name, text=text)
            current = line
        else:
            current = candidate
    text = current.strip()
    if text:
        yield Chunk(source=document.name, text=text)


def chunk_document(document: Document, max_chars: int = DEFAULT_CHUNK_SIZE) -> list[Chunk]:
    """Chunk a document into a list."""
    return list(iter_chunks(document, max_chars=max_chars))


def chunk_documents(
    documents: Iterable[Document], max_chars: int = DEFAULT_CHUNK_SIZE
) -> Iterator[Chunk]:
    """Chain chunks of several documents, preserving document order."""
    for document in documents:
        yield from iter_chunks(document, max_chars=max_chars)
