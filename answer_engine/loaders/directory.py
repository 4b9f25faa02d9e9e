from __future__ import annotations

"""Plain text and Markdown document source backed by a local directory."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from answer_engine.rag.types import Document

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = frozenset({".txt", ".md"})


class SourceReadError(RuntimeError):
    """Raised when the document source cannot be enumerated or read."""
    pass


class DocumentSource(Protocol):
    """Protocol for corpus document sources."""

    async def list_documents(self) -> list[str]:
        """Return the names of the available documents."""
        raise NotImplementedError

    async def read_document(self, name: str) -> Document:
        """Read a single document by name."""
        raise NotImplementedError


def load_text_file(path: Path) -> Document:
    """Load a UTF-8 text file from disk into a Document."""
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceReadError(f"Unable to read document {path.name}: {exc}") from exc
    return Document(name=path.name, lines=tuple(content.splitlines()))


@dataclass(frozen=True)
class DirectorySource:
    """Enumerate and read text documents from a directory."""
    root: Path
    extensions: frozenset[str] = DEFAULT_EXTENSIONS

    def _list_sync(self) -> list[str]:
        if not self.root.is_dir():
            raise SourceReadError(f"Corpus directory not found: {self.root}")
        try:
            entries = list(self.root.iterdir())
        except OSError as exc:
            raise SourceReadError(f"Unable to list corpus directory {self.root}: {exc}") from exc
        names = [
            entry.name
            for entry in entries
            if entry.is_file() and entry.suffix.lower() in self.extensions
        ]
        return sorted(names)

    async def list_documents(self) -> list[str]:
        """Return matching file names in sorted order."""
        return await asyncio.to_thread(self._list_sync)

    async def read_document(self, name: str) -> Document:
        """Read a document from the directory."""
        return await asyncio.to_thread(load_text_file, self.root / name)


async def load_documents(source: DocumentSource) -> list[Document]:
    """Read every document the source lists, in listing order."""
    names = await source.list_documents()
    documents: list[Document] = []
    for name in names:
        documents.append(await source.read_document(name))
    logger.info("documents_loaded", extra={"documents": len(documents)})
    return documents
