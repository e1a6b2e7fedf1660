"""SQLite-backed store for articles, distillations and chunks."""

from __future__ import annotations

import json
from datetime import date

import aiosqlite

from archive_rag.models.domain import Article, Chunk, Distillation
from archive_rag.storage.migrations import initialize_archive_db


class SQLiteArchiveStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_archive_db(self._db_path)

    # Writes are only used by the seeding and rebuild scripts.

    async def save_article(self, article: Article) -> str:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO articles (article_id, title, publication_date, word_count) "
                "VALUES (?, ?, ?, ?)",
                (
                    article.article_id,
                    article.title,
                    article.publication_date.isoformat() if article.publication_date else None,
                    article.word_count,
                ),
            )
            await db.commit()
        return article.article_id

    async def save_distillation(self, distillation: Distillation) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO distillations "
                "(distillation_id, article_id, thesis_statement, key_claims, topics, entities, confidence_score) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    distillation.distillation_id,
                    distillation.article_id,
                    distillation.thesis_statement,
                    json.dumps(distillation.key_claims),
                    json.dumps(distillation.topics),
                    json.dumps(distillation.entities),
                    distillation.confidence_score,
                ),
            )
            await db.commit()

    async def save_chunks(self, chunks: list[Chunk]) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.executemany(
                "INSERT OR REPLACE INTO chunks (chunk_id, article_id, chunk_index, content, token_count) "
                "VALUES (?, ?, ?, ?, ?)",
                [
                    (c.chunk_id, c.article_id, c.chunk_index, c.content, c.token_count)
                    for c in chunks
                ],
            )
            await db.commit()

    # Reads

    async def get_article(self, article_id: str) -> Article | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM articles WHERE article_id = ?", (article_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return self._row_to_article(row) if row else None

    async def get_articles(self, article_ids: list[str]) -> dict[str, Article]:
        if not article_ids:
            return {}
        ids = list(dict.fromkeys(article_ids))
        placeholders = ",".join("?" for _ in ids)
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                f"SELECT * FROM articles WHERE article_id IN ({placeholders})", ids
            ) as cursor:
                rows = await cursor.fetchall()
                return {row["article_id"]: self._row_to_article(row) for row in rows}

    async def find_articles(
        self, title: str, publication_date: date | None = None
    ) -> list[Article]:
        """Case-insensitive exact title match, optionally narrowed by date."""
        query = "SELECT * FROM articles WHERE title = ? COLLATE NOCASE"
        params: list = [title.strip()]
        if publication_date is not None:
            query += " AND publication_date = ?"
            params.append(publication_date.isoformat())
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query + " ORDER BY article_id", params) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_article(row) for row in rows]

    async def get_distillation_for_article(self, article_id: str) -> Distillation | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM distillations WHERE article_id = ?", (article_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return self._row_to_distillation(row) if row else None

    async def get_distillations_by_ids(self, ids: list[str]) -> dict[str, Distillation]:
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                f"SELECT * FROM distillations WHERE distillation_id IN ({placeholders})", ids
            ) as cursor:
                rows = await cursor.fetchall()
                return {row["distillation_id"]: self._row_to_distillation(row) for row in rows}

    async def get_chunks_by_ids(self, chunk_ids: list[str]) -> dict[str, Chunk]:
        if not chunk_ids:
            return {}
        placeholders = ",".join("?" for _ in chunk_ids)
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                f"SELECT * FROM chunks WHERE chunk_id IN ({placeholders})", chunk_ids
            ) as cursor:
                rows = await cursor.fetchall()
                return {row["chunk_id"]: self._row_to_chunk(row) for row in rows}

    async def get_chunks_by_article(self, article_id: str) -> list[Chunk]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM chunks WHERE article_id = ? ORDER BY chunk_index",
                (article_id,),
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_chunk(row) for row in rows]

    async def get_all_distillations(self) -> list[Distillation]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute("SELECT * FROM distillations ORDER BY article_id") as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_distillation(row) for row in rows]

    async def get_all_chunks(self) -> list[Chunk]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM chunks ORDER BY article_id, chunk_index"
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_chunk(row) for row in rows]

    async def count_articles(self) -> int:
        return await self._count("articles")

    async def count_distillations(self) -> int:
        return await self._count("distillations")

    async def count_chunks(self) -> int:
        return await self._count("chunks")

    async def _count(self, table: str) -> int:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(f"SELECT COUNT(*) FROM {table}") as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    @staticmethod
    def _row_to_article(row: aiosqlite.Row) -> Article:
        published = row["publication_date"]
        return Article(
            article_id=row["article_id"],
            title=row["title"],
            publication_date=date.fromisoformat(published) if published else None,
            word_count=row["word_count"],
        )

    @staticmethod
    def _row_to_distillation(row: aiosqlite.Row) -> Distillation:
        return Distillation(
            distillation_id=row["distillation_id"],
            article_id=row["article_id"],
            thesis_statement=row["thesis_statement"],
            key_claims=json.loads(row["key_claims"]),
            topics=json.loads(row["topics"]),
            entities=json.loads(row["entities"]),
            confidence_score=row["confidence_score"],
        )

    @staticmethod
    def _row_to_chunk(row: aiosqlite.Row) -> Chunk:
        return Chunk(
            chunk_id=row["chunk_id"],
            article_id=row["article_id"],
            chunk_index=row["chunk_index"],
            content=row["content"],
            token_count=row["token_count"],
        )
