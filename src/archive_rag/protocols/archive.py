"""Protocol for read access to the article archive."""

from __future__ import annotations

from datetime import date
from typing import Protocol

from archive_rag.models.domain import Article, Chunk, Distillation


class ArchiveStore(Protocol):
    async def get_article(self, article_id: str) -> Article | None: ...

    async def get_articles(self, article_ids: list[str]) -> dict[str, Article]: ...

    async def find_articles(
        self, title: str, publication_date: date | None = None
    ) -> list[Article]: ...

    async def get_distillation_for_article(self, article_id: str) -> Distillation | None: ...

    async def get_chunks_by_article(self, article_id: str) -> list[Chunk]: ...
