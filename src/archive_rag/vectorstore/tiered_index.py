"""Two-tier embedding index: one FAISS store for distillations, one for chunks."""

from __future__ import annotations

import asyncio

import numpy as np

from archive_rag.exceptions import RetrievalError
from archive_rag.models.domain import Chunk, Distillation, IndexTier
from archive_rag.observability.logger import get_logger
from archive_rag.protocols.embedder import Embedder
from archive_rag.storage.sqlite_archive_store import SQLiteArchiveStore
from archive_rag.vectorstore.faiss_store import FAISSVectorStore

logger = get_logger("tiered_index")


def distillation_embedding_text(distillation: Distillation) -> str:
    """Text embedded for a distillation: thesis, claims, then topics."""
    parts = [distillation.thesis_statement]
    parts.extend(distillation.key_claims)
    if distillation.topics:
        parts.append("Topics: " + ", ".join(distillation.topics))
    return "\n".join(parts)


def clamp_similarity(score: float) -> float:
    return max(0.0, min(1.0, score))


class TieredEmbeddingIndex:
    def __init__(
        self,
        embedder: Embedder,
        archive: SQLiteArchiveStore,
        distillation_store: FAISSVectorStore,
        chunk_store: FAISSVectorStore,
        timeout_s: float = 10.0,
    ) -> None:
        self._embedder = embedder
        self._archive = archive
        self._stores = {
            IndexTier.DISTILLATIONS: distillation_store,
            IndexTier.CHUNKS: chunk_store,
        }
        self._timeout_s = timeout_s

    def size(self, tier: IndexTier) -> int:
        return self._stores[tier].size

    async def search(
        self, tier: IndexTier, query: str, limit: int
    ) -> list[tuple[Distillation | Chunk, float]]:
        try:
            return await asyncio.wait_for(self._search(tier, query, limit), timeout=self._timeout_s)
        except asyncio.TimeoutError as e:
            raise RetrievalError(
                f"{tier.value} index timed out after {self._timeout_s}s"
            ) from e
        except RetrievalError:
            raise
        except Exception as e:
            raise RetrievalError(f"{tier.value} index unavailable: {e}") from e

    async def _search(
        self, tier: IndexTier, query: str, limit: int
    ) -> list[tuple[Distillation | Chunk, float]]:
        vector = np.array(await self._embedder.embed_query(query), dtype=np.float32)
        hits = await asyncio.to_thread(self._stores[tier].search, vector, limit)
        if not hits:
            return []

        ids = [item_id for item_id, _ in hits]
        if tier == IndexTier.DISTILLATIONS:
            items = await self._archive.get_distillations_by_ids(ids)
        else:
            items = await self._archive.get_chunks_by_ids(ids)

        results = []
        for item_id, score in hits:
            item = items.get(item_id)
            if item is None:
                logger.warning("index_item_missing", tier=tier.value, item_id=item_id)
                continue
            results.append((item, clamp_similarity(score)))
        return results

    async def add_distillations(self, distillations: list[Distillation]) -> None:
        texts = [distillation_embedding_text(d) for d in distillations]
        vectors = await self._embedder.embed_texts(texts)
        await self._stores[IndexTier.DISTILLATIONS].add_safe(
            [d.distillation_id for d in distillations], np.array(vectors, dtype=np.float32)
        )

    async def add_chunks(self, chunks: list[Chunk]) -> None:
        vectors = await self._embedder.embed_texts([c.content for c in chunks])
        await self._stores[IndexTier.CHUNKS].add_safe(
            [c.chunk_id for c in chunks], np.array(vectors, dtype=np.float32)
        )

    def save(self) -> None:
        for store in self._stores.values():
            store.save()
