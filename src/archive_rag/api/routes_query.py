"""Question answering endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from archive_rag.api.dependencies import get_query_pipeline
from archive_rag.models.schemas import AnswerResponseOut, QueryRequest
from archive_rag.pipeline.query_pipeline import QueryPipeline

router = APIRouter()


@router.post("/query", response_model=AnswerResponseOut)
async def query(
    request: QueryRequest,
    pipeline: QueryPipeline = Depends(get_query_pipeline),
) -> AnswerResponseOut:
    response = await pipeline.answer(
        request.question, request.limit, request.threshold, request.mode
    )
    return AnswerResponseOut.from_domain(response)
