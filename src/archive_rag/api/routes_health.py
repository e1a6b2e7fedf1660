"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from archive_rag.api.dependencies import get_archive_store, get_embedding_index
from archive_rag.models.domain import IndexTier
from archive_rag.models.schemas import HealthResponse
from archive_rag.storage.sqlite_archive_store import SQLiteArchiveStore
from archive_rag.vectorstore.tiered_index import TieredEmbeddingIndex

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    archive: SQLiteArchiveStore = Depends(get_archive_store),
    index: TieredEmbeddingIndex = Depends(get_embedding_index),
) -> HealthResponse:
    return HealthResponse(
        status="ok",
        article_count=await archive.count_articles(),
        distillation_index_size=index.size(IndexTier.DISTILLATIONS),
        chunk_index_size=index.size(IndexTier.CHUNKS),
    )
