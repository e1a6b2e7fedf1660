"""Protocol for the two-tier similarity search primitive."""

from __future__ import annotations

from typing import Protocol

from archive_rag.models.domain import Chunk, Distillation, IndexTier


class EmbeddingIndex(Protocol):
    async def search(
        self, tier: IndexTier, query: str, limit: int
    ) -> list[tuple[Distillation | Chunk, float]]:
        """Ranked nearest neighbours, best first, similarity in [0, 1].

        Raises RetrievalError when the backend is unavailable.
        """
        ...

    def size(self, tier: IndexTier) -> int: ...
