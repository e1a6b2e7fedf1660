"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from archive_rag.api.errors import register_error_handlers
from archive_rag.api.middleware import RequestTimingMiddleware
from archive_rag.api.routes_eval import router as eval_router
from archive_rag.api.routes_health import router as health_router
from archive_rag.api.routes_query import router as query_router
from archive_rag.api.routes_retrieval import router as retrieval_router
from archive_rag.config.settings import Settings
from archive_rag.embeddings.cache import EmbeddingCache
from archive_rag.embeddings.cached_embedder import CachedEmbedder
from archive_rag.embeddings.openai_embedder import OpenAIEmbedder
from archive_rag.evaluation.harness import EvaluationHarness
from archive_rag.evaluation.judge import LLMJudge
from archive_rag.generation.answer_generator import AnswerGenerator
from archive_rag.generation.gemini_provider import GeminiProvider
from archive_rag.generation.reasoning import ReasoningPipeline
from archive_rag.models.domain import IndexTier
from archive_rag.observability.logger import get_logger, setup_logging
from archive_rag.pipeline.query_pipeline import QueryPipeline
from archive_rag.retrieval.content_policy import AllowAllPolicy, CopyrightPolicy
from archive_rag.retrieval.router import RetrievalRouter
from archive_rag.storage.sqlite_archive_store import SQLiteArchiveStore
from archive_rag.storage.sqlite_eval_store import SQLiteEvalStore
from archive_rag.vectorstore.faiss_store import FAISSVectorStore
from archive_rag.vectorstore.tiered_index import TieredEmbeddingIndex
from archive_rag.verification.citation_verifier import CitationVerifier

logger = get_logger("app")


def build_embedding_index(
    settings: Settings, archive: SQLiteArchiveStore, cache: EmbeddingCache
) -> TieredEmbeddingIndex:
    """Cached OpenAI embedder plus one FAISS store per tier."""
    raw_embedder = OpenAIEmbedder(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        batch_size=settings.embedding_batch_size,
        dimensions=settings.embedding_dimensions,
        timeout_s=settings.index_timeout_s,
    )
    embedder = CachedEmbedder(delegate=raw_embedder, cache=cache)
    return TieredEmbeddingIndex(
        embedder=embedder,
        archive=archive,
        distillation_store=FAISSVectorStore(
            dimensions=settings.embedding_dimensions,
            index_path=settings.distillation_index_path,
            name="distillations",
        ),
        chunk_store=FAISSVectorStore(
            dimensions=settings.embedding_dimensions,
            index_path=settings.chunk_index_path,
            name="chunks",
        ),
        timeout_s=settings.index_timeout_s,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()
    setup_logging(settings.log_level, settings.log_format)

    for path in [
        settings.sqlite_archive_db_path,
        settings.sqlite_eval_db_path,
        settings.embedding_cache_db_path,
    ]:
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    # Storage
    archive_store = SQLiteArchiveStore(settings.sqlite_archive_db_path)
    await archive_store.initialize()
    eval_store = SQLiteEvalStore(settings.sqlite_eval_db_path)
    await eval_store.initialize()

    # Embedding index
    embedding_cache = EmbeddingCache(
        settings.embedding_cache_db_path, model=settings.embedding_model
    )
    await embedding_cache.initialize()
    embedding_index = build_embedding_index(settings, archive_store, embedding_cache)

    # LLM
    llm = GeminiProvider(
        api_key=settings.google_api_key,
        model=settings.gemini_model,
        temperature=settings.gemini_temperature,
        max_tokens=settings.gemini_max_tokens,
        timeout_s=settings.llm_timeout_s,
    )

    # Retrieval and generation
    router = RetrievalRouter(
        index=embedding_index,
        archive=archive_store,
        confirm_with_chunks=settings.confirm_with_chunks,
    )
    answer_generator = AnswerGenerator(
        llm=llm, answer_when_ungrounded=settings.answer_when_ungrounded
    )
    reasoning = ReasoningPipeline(
        llm=llm,
        router=router,
        max_claims=settings.max_claims,
        claim_min_words=settings.claim_min_words,
        concurrency=settings.claim_retrieval_concurrency,
    )
    verifier = CitationVerifier(
        archive=archive_store, faithfulness_threshold=settings.faithfulness_threshold
    )
    query_pipeline = QueryPipeline(
        policy=CopyrightPolicy() if settings.copyright_policy_enabled else AllowAllPolicy(),
        router=router,
        answer_generator=answer_generator,
        reasoning=reasoning,
        verifier=verifier,
    )

    # Evaluation
    harness = EvaluationHarness(
        pipeline=query_pipeline,
        judge=LLMJudge(llm=llm, temperature=settings.judge_temperature),
        store=eval_store,
        concurrency=settings.eval_concurrency,
        batch_timeout_s=settings.eval_batch_timeout_s,
    )

    app.state.settings = settings
    app.state.archive_store = archive_store
    app.state.eval_store = eval_store
    app.state.embedding_index = embedding_index
    app.state.query_pipeline = query_pipeline
    app.state.harness = harness

    logger.info(
        "startup_complete",
        articles=await archive_store.count_articles(),
        distillation_index_size=embedding_index.size(IndexTier.DISTILLATIONS),
        chunk_index_size=embedding_index.size(IndexTier.CHUNKS),
    )

    yield

    logger.info("shutdown_complete")


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Archive RAG Engine",
        version="1.0.0",
        description="Two-tier retrieval, reasoning-first answers with verified citations, "
        "and LLM-judge evaluation over an article archive",
        lifespan=lifespan if use_lifespan else None,
    )
    app.add_middleware(RequestTimingMiddleware)
    register_error_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(query_router, tags=["query"])
    app.include_router(retrieval_router, tags=["retrieval"])
    app.include_router(eval_router, tags=["eval"])
    return app
