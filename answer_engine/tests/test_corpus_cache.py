from __future__ import annotations

"""Corpus cache freshness, rebuild and isolation tests."""

import anyio
import pytest

from answer_engine.loaders.directory import SourceReadError
from answer_engine.rag.embeddings import HashEmbedder, ResilientEmbedder
from answer_engine.vectorstore.cache import CorpusCache
from conftest import FailingEmbedder, FakeSource

pytestmark = pytest.mark.anyio


def build_cache(source: FakeSource, clock, provider=None, ttl: float = 3600.0) -> CorpusCache:
    embedder = ResilientEmbedder(provider=provider or HashEmbedder(dimension=256), dimension=256)
    return CorpusCache(source=source, embedder=embedder, ttl_seconds=ttl, clock=clock)


async def test_builds_snapshot_on_first_request(clock) -> None:
    source = FakeSource({"prices.txt": "Price: $999", "faq.md": "Shipping takes 3 days."})
    cache = build_cache(source, clock)

    snapshot = await cache.get_corpus()

    assert [chunk.source for chunk in snapshot.chunks] == ["prices.txt", "faq.md"]
    assert all(chunk.embedding is not None for chunk in snapshot.chunks)
    assert all(len(chunk.embedding) == 256 for chunk in snapshot.chunks)
    assert snapshot.built_at == clock.now
    assert snapshot.document_count == 2
    assert snapshot.fallback_count == 0


async def test_fresh_snapshot_is_reused(clock) -> None:
    source = FakeSource({"prices.txt": "Price: $999"})
    cache = build_cache(source, clock)

    first = await cache.get_corpus()
    clock.advance(3599)
    second = await cache.get_corpus()

    assert second is first
    assert source.list_calls == 1
    assert cache.rebuild_count == 1


async def test_expired_snapshot_rebuilds_exactly_once(clock) -> None:
    source = FakeSource({"prices.txt": "Price: $999"})
    cache = build_cache(source, clock)

    first = await cache.get_corpus()
    clock.advance(3600)
    second = await cache.get_corpus()
    third = await cache.get_corpus()

    assert second is not first
    assert third is second
    assert source.list_calls == 2
    assert cache.rebuild_count == 2


async def test_concurrent_requests_share_one_rebuild(clock) -> None:
    source = FakeSource({f"doc{idx}.txt": f"Document {idx}" for idx in range(5)})
    cache = build_cache(source, clock)
    results = []

    async def fetch() -> None:
        results.append(await cache.get_corpus())

    async with anyio.create_task_group() as tg:
        for _ in range(5):
            tg.start_soon(fetch)

    assert source.list_calls == 1
    assert cache.rebuild_count == 1
    assert all(snapshot is results[0] for snapshot in results)


async def test_embedding_failure_degrades_single_chunk(clock) -> None:
    source = FakeSource({"a.txt": "alpha", "b.txt": "beta", "c.txt": "gamma"})
    provider = FailingEmbedder(dimension=256, fail_on={"beta"})
    cache = build_cache(source, clock, provider=provider)

    snapshot = await cache.get_corpus()

    assert provider.calls == ["alpha", "beta", "gamma"]
    assert [chunk.embedding_fallback for chunk in snapshot.chunks] == [False, True, False]
    assert snapshot.fallback_count == 1
    assert {len(chunk.embedding) for chunk in snapshot.chunks} == {256}


async def test_source_failure_keeps_previous_snapshot(clock) -> None:
    source = FakeSource({"prices.txt": "Price: $999"})
    cache = build_cache(source, clock)
    first = await cache.get_corpus()

    clock.advance(7200)
    source.error = SourceReadError("disk gone")
    with pytest.raises(SourceReadError):
        await cache.get_corpus()

    assert cache.snapshot is first


async def test_old_snapshot_reference_stays_consistent(clock) -> None:
    source = FakeSource({"prices.txt": "Price: $999"})
    cache = build_cache(source, clock)
    old = await cache.get_corpus()
    old_chunks = old.chunks

    source.documents = {"new.txt": "Price: $1099"}
    clock.advance(3600)
    new = await cache.get_corpus()

    assert old.chunks is old_chunks
    assert [chunk.text for chunk in old.chunks] == ["Price: $999"]
    assert [chunk.text for chunk in new.chunks] == ["Price: $1099"]


async def test_invalidate_forces_rebuild(clock) -> None:
    source = FakeSource({"prices.txt": "Price: $999"})
    cache = build_cache(source, clock)
    await cache.get_corpus()

    cache.invalidate()
    assert cache.snapshot is None
    await cache.get_or_rebuild()

    assert source.list_calls == 2


async def test_empty_source_yields_empty_snapshot(clock) -> None:
    cache = build_cache(FakeSource({}), clock)

    snapshot = await cache.get_corpus()

    assert snapshot.chunks == ()
    assert snapshot.document_count == 0
