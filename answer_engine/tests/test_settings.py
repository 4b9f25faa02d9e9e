from __future__ import annotations

"""Settings parsing tests."""

from answer_engine.app.settings import Settings


def test_document_extensions_are_normalized() -> None:
    config = Settings(document_extensions_raw="txt, .MD,,")

    assert config.document_extensions == frozenset({".txt", ".md"})


def test_document_extensions_ignore_later_environment(monkeypatch) -> None:
    config = Settings(document_extensions_raw=".txt")
    monkeypatch.setenv("RAG_DOCUMENT_EXTENSIONS", ".csv")

    assert config.document_extensions == frozenset({".txt"})
