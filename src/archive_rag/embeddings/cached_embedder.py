"""Caching wrapper so repeated queries and claims are embedded once."""

from __future__ import annotations

from archive_rag.embeddings.cache import EmbeddingCache
from archive_rag.observability.logger import get_logger
from archive_rag.protocols.embedder import Embedder

logger = get_logger("cached_embedder")


class CachedEmbedder:
    """Wraps any Embedder, answers from EmbeddingCache first, delegates misses."""

    def __init__(self, delegate: Embedder, cache: EmbeddingCache) -> None:
        self._delegate = delegate
        self._cache = cache

    @property
    def dimensions(self) -> int:
        return self._delegate.dimensions

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        cached = await self._cache.get_batch(texts)
        misses = [i for i in range(len(texts)) if i not in cached]
        if not misses:
            logger.debug("embed_texts_all_cached", count=len(texts))
            return [cached[i] for i in range(len(texts))]

        fresh = await self._delegate.embed_texts([texts[i] for i in misses])
        await self._cache.put_batch([texts[i] for i in misses], fresh)

        merged = dict(cached)
        merged.update(zip(misses, fresh))
        logger.info(
            "embed_texts_with_cache",
            total=len(texts),
            hits=len(texts) - len(misses),
            misses=len(misses),
        )
        return [merged[i] for i in range(len(texts))]

    async def embed_query(self, query: str) -> list[float]:
        cached = await self._cache.get(query)
        if cached is not None:
            logger.debug("embed_query_cache_hit", query_len=len(query))
            return cached

        embedding = await self._delegate.embed_query(query)
        await self._cache.put(query, embedding)
        logger.debug("embed_query_cache_miss", query_len=len(query))
        return embedding
