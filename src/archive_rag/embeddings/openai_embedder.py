"""OpenAI embedding provider for query and archive text."""

from __future__ import annotations

import asyncio

from openai import AsyncOpenAI

from archive_rag.exceptions import EmbeddingError
from archive_rag.observability.logger import get_logger

logger = get_logger("embeddings")


class OpenAIEmbedder:
    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        batch_size: int = 100,
        dimensions: int = 1536,
        timeout_s: float = 10.0,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key)
        self._model = model
        self._batch_size = batch_size
        self._dimensions = dimensions
        self._timeout_s = timeout_s

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model(self) -> str:
        return self._model

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        vectors: list[list[float]] = []
        try:
            for start in range(0, len(texts), self._batch_size):
                batch = texts[start : start + self._batch_size]
                vectors.extend(await self._create(batch))
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Failed to embed {len(texts)} texts: {e}") from e
        logger.info("embedded_texts", count=len(texts), model=self._model)
        return vectors

    async def embed_query(self, query: str) -> list[float]:
        try:
            vectors = await self._create([query])
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Failed to embed query: {e}") from e
        return vectors[0]

    async def _create(self, batch: list[str]) -> list[list[float]]:
        try:
            response = await asyncio.wait_for(
                self._client.embeddings.create(
                    input=batch, model=self._model, dimensions=self._dimensions
                ),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise EmbeddingError(f"Embedding request timed out after {self._timeout_s}s") from e
        return [item.embedding for item in response.data]
