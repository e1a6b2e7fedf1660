"""SQLite-backed embedding cache keyed by model and text."""

from __future__ import annotations

import hashlib
import json

import aiosqlite

CREATE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS embedding_cache (
    text_hash TEXT PRIMARY KEY,
    model TEXT NOT NULL,
    embedding TEXT NOT NULL
)
"""


class EmbeddingCache:
    def __init__(self, db_path: str, model: str = "") -> None:
        self._db_path = db_path
        self._model = model

    async def initialize(self) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(CREATE_CACHE_TABLE)
            await db.commit()

    async def get(self, text: str) -> list[float] | None:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT embedding FROM embedding_cache WHERE text_hash = ?",
                (self._key(text),),
            ) as cursor:
                row = await cursor.fetchone()
                return json.loads(row[0]) if row else None

    async def get_batch(self, texts: list[str]) -> dict[int, list[float]]:
        """Return {position: embedding} for the texts already cached."""
        if not texts:
            return {}
        positions: dict[str, list[int]] = {}
        for i, text in enumerate(texts):
            positions.setdefault(self._key(text), []).append(i)
        keys = list(positions)
        placeholders = ",".join("?" for _ in keys)

        found: dict[int, list[float]] = {}
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                f"SELECT text_hash, embedding FROM embedding_cache WHERE text_hash IN ({placeholders})",
                keys,
            ) as cursor:
                async for key, payload in cursor:
                    vector = json.loads(payload)
                    for i in positions.get(key, []):
                        found[i] = vector
        return found

    async def put_batch(self, texts: list[str], embeddings: list[list[float]]) -> None:
        if not texts:
            return
        rows = [(self._key(t), self._model, json.dumps(e)) for t, e in zip(texts, embeddings)]
        async with aiosqlite.connect(self._db_path) as db:
            await db.executemany(
                "INSERT OR REPLACE INTO embedding_cache (text_hash, model, embedding) VALUES (?, ?, ?)",
                rows,
            )
            await db.commit()

    async def put(self, text: str, embedding: list[float]) -> None:
        await self.put_batch([text], [embedding])

    def _key(self, text: str) -> str:
        return hashlib.sha256(f"{self._model}\x00{text}".encode("utf-8")).hexdigest()
