"""FastAPI dependency injection helpers."""

from __future__ import annotations

from fastapi import Request

from archive_rag.config.settings import Settings
from archive_rag.evaluation.harness import EvaluationHarness
from archive_rag.pipeline.query_pipeline import QueryPipeline
from archive_rag.storage.sqlite_archive_store import SQLiteArchiveStore
from archive_rag.storage.sqlite_eval_store import SQLiteEvalStore
from archive_rag.vectorstore.tiered_index import TieredEmbeddingIndex


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_query_pipeline(request: Request) -> QueryPipeline:
    return request.app.state.query_pipeline


def get_archive_store(request: Request) -> SQLiteArchiveStore:
    return request.app.state.archive_store


def get_embedding_index(request: Request) -> TieredEmbeddingIndex:
    return request.app.state.embedding_index


def get_eval_store(request: Request) -> SQLiteEvalStore:
    return request.app.state.eval_store


def get_harness(request: Request) -> EvaluationHarness:
    return request.app.state.harness
