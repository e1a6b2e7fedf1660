"""Tests for CachedEmbedder wrapper."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from archive_rag.embeddings.cache import EmbeddingCache
from archive_rag.embeddings.cached_embedder import CachedEmbedder


class FakeEmbedder:
    """Fake embedder that tracks call counts and the texts it was asked for."""

    def __init__(self) -> None:
        self.embed_texts_calls = 0
        self.embed_query_calls = 0
        self.requested: list[list[str]] = []
        self._dimensions = 3

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.embed_texts_calls += 1
        self.requested.append(list(texts))
        return [[float(len(t))] * 3 for t in texts]

    async def embed_query(self, query: str) -> list[float]:
        self.embed_query_calls += 1
        return [1.0, 2.0, 3.0]


@pytest.fixture
def cache_path():
    return str(Path(tempfile.mkdtemp()) / "cache.db")


@pytest.fixture
async def embedder_pair(cache_path):
    cache = EmbeddingCache(cache_path, model="text-embedding-3-small")
    await cache.initialize()
    delegate = FakeEmbedder()
    embedder = CachedEmbedder(delegate=delegate, cache=cache)
    return embedder, delegate


async def test_embed_query_caches(embedder_pair):
    embedder, delegate = embedder_pair
    result1 = await embedder.embed_query("What is aggregation theory?")
    result2 = await embedder.embed_query("What is aggregation theory?")
    assert result1 == result2
    assert delegate.embed_query_calls == 1


async def test_embed_query_different_queries(embedder_pair):
    embedder, delegate = embedder_pair
    await embedder.embed_query("aggregators")
    await embedder.embed_query("smiling curve")
    assert delegate.embed_query_calls == 2


async def test_embed_texts_caches(embedder_pair):
    embedder, delegate = embedder_pair
    texts = ["a", "bb", "ccc"]
    result1 = await embedder.embed_texts(texts)
    result2 = await embedder.embed_texts(texts)
    assert result1 == result2
    assert delegate.embed_texts_calls == 1


async def test_embed_texts_partial_cache_keeps_order(embedder_pair):
    embedder, delegate = embedder_pair
    await embedder.embed_texts(["a", "bb"])
    result = await embedder.embed_texts(["ccc", "a", "bb"])
    assert delegate.requested == [["a", "bb"], ["ccc"]]
    assert result == [[3.0] * 3, [1.0] * 3, [2.0] * 3]


async def test_embed_texts_empty(embedder_pair):
    embedder, delegate = embedder_pair
    result = await embedder.embed_texts([])
    assert result == []
    assert delegate.embed_texts_calls == 0


async def test_cache_is_keyed_by_model(cache_path):
    first = EmbeddingCache(cache_path, model="text-embedding-3-small")
    await first.initialize()
    await first.put("aggregators", [1.0, 2.0, 3.0])

    other = EmbeddingCache(cache_path, model="text-embedding-3-large")
    assert await other.get("aggregators") is None
    assert await first.get("aggregators") == [1.0, 2.0, 3.0]


async def test_dimensions_passthrough(embedder_pair):
    embedder, delegate = embedder_pair
    assert embedder.dimensions == 3
