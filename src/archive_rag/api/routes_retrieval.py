"""Retrieval inspection and archive browsing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from archive_rag.api.dependencies import (
    get_archive_store,
    get_embedding_index,
    get_query_pipeline,
)
from archive_rag.exceptions import NotFoundError
from archive_rag.models.domain import IndexTier
from archive_rag.models.schemas import (
    ArticleComparisonResponse,
    ArticleOut,
    ChunkOut,
    ComparisonStats,
    DistillationOut,
    DistillationSearchHit,
    DistillationSearchResponse,
    EmbeddingStatsResponse,
    InspectRequest,
    InspectResponse,
    KeyClaim,
    RetrievalResultOut,
    RoutingDecisionOut,
)
from archive_rag.pipeline.query_pipeline import QueryPipeline, validate_question
from archive_rag.storage.sqlite_archive_store import SQLiteArchiveStore
from archive_rag.vectorstore.tiered_index import TieredEmbeddingIndex

router = APIRouter()


@router.post("/retrieval/inspect", response_model=InspectResponse)
async def inspect(
    request: InspectRequest,
    pipeline: QueryPipeline = Depends(get_query_pipeline),
) -> InspectResponse:
    outcome = await pipeline.inspect(request.query, request.threshold, request.limit)
    return InspectResponse(
        decision=RoutingDecisionOut.from_domain(outcome.decision),
        distillations=[RetrievalResultOut.from_domain(r) for r in outcome.distillations],
        chunks=[RetrievalResultOut.from_domain(r) for r in outcome.chunks],
        distillation_count=len(outcome.distillations),
        distillations_above_threshold=sum(1 for r in outcome.distillations if r.above_threshold),
        chunk_count=len(outcome.chunks),
        chunks_above_threshold=sum(1 for r in outcome.chunks if r.above_threshold),
    )


@router.get(
    "/retrieval/article/{article_id}/comparison", response_model=ArticleComparisonResponse
)
async def article_comparison(
    article_id: str,
    archive: SQLiteArchiveStore = Depends(get_archive_store),
) -> ArticleComparisonResponse:
    """One article's distillation side by side with its raw chunks."""
    article = await archive.get_article(article_id)
    if article is None:
        raise NotFoundError(f"Article {article_id} not found")
    distillation = await archive.get_distillation_for_article(article_id)
    chunks = await archive.get_chunks_by_article(article_id)
    return ArticleComparisonResponse(
        article=ArticleOut.from_domain(article),
        distillation=DistillationOut.from_domain(distillation) if distillation else None,
        chunks=[ChunkOut.from_domain(c) for c in chunks],
        stats=ComparisonStats(total_chunks=len(chunks)),
    )


@router.get("/embeddings/stats", response_model=EmbeddingStatsResponse)
async def embedding_stats(
    archive: SQLiteArchiveStore = Depends(get_archive_store),
    index: TieredEmbeddingIndex = Depends(get_embedding_index),
) -> EmbeddingStatsResponse:
    return EmbeddingStatsResponse(
        total_articles=await archive.count_articles(),
        total_distillations=await archive.count_distillations(),
        total_distillation_embeddings=index.size(IndexTier.DISTILLATIONS),
        total_chunks=await archive.count_chunks(),
        total_chunk_embeddings=index.size(IndexTier.CHUNKS),
    )


@router.get("/embeddings/search/distillations", response_model=DistillationSearchResponse)
async def search_distillations(
    q: str,
    threshold: float = Query(default=0.30, ge=0.0, le=1.0),
    limit: int = Query(default=20, ge=1, le=100),
    archive: SQLiteArchiveStore = Depends(get_archive_store),
    index: TieredEmbeddingIndex = Depends(get_embedding_index),
) -> DistillationSearchResponse:
    """Browse the archive by distillation similarity."""
    q = validate_question(q)
    ranked = await index.search(IndexTier.DISTILLATIONS, q, limit)
    hits = [(d, s) for d, s in ranked if s >= threshold]
    articles = await archive.get_articles([d.article_id for d, _ in hits])
    results = []
    for d, similarity in hits:
        article = articles.get(d.article_id)
        results.append(
            DistillationSearchHit(
                distillation_id=d.distillation_id,
                article_id=d.article_id,
                title=article.title if article else None,
                publication_date=article.publication_date if article else None,
                thesis_statement=d.thesis_statement,
                key_claims=[KeyClaim(claim=c) for c in d.key_claims],
                topics=list(d.topics),
                similarity=similarity,
            )
        )
    return DistillationSearchResponse(query=q, threshold=threshold, results=results)
