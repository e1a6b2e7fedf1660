"""Evaluation endpoints: examples, LLM-judge runs and citation-accuracy runs."""

from __future__ import annotations

from uuid import uuid4

from fastapi import APIRouter, Depends, Query

from archive_rag.api.dependencies import get_eval_store, get_harness, get_settings
from archive_rag.config.settings import Settings
from archive_rag.evaluation.harness import EvaluationHarness
from archive_rag.exceptions import NotFoundError, ValidationError
from archive_rag.models.domain import EvalExample
from archive_rag.models.schemas import (
    CitationAccuracyRequest,
    CitationAccuracyResultOut,
    CitationAccuracyRunDetail,
    CitationAccuracyRunOut,
    CitationBatchRequest,
    EvalExampleCreate,
    EvalExampleOut,
    EvalResultOut,
    EvalRunDetail,
    EvalRunOut,
    EvalRunRequest,
)
from archive_rag.pipeline.query_pipeline import validate_question
from archive_rag.storage.sqlite_eval_store import SQLiteEvalStore

router = APIRouter(prefix="/eval")


async def _examples_or_fail(store: SQLiteEvalStore) -> list[EvalExample]:
    examples = await store.list_examples()
    if not examples:
        raise ValidationError("No eval examples; add some with POST /eval/examples first")
    return examples


# Examples


@router.get("/examples", response_model=list[EvalExampleOut])
async def list_examples(
    store: SQLiteEvalStore = Depends(get_eval_store),
) -> list[EvalExampleOut]:
    return [EvalExampleOut.from_domain(e) for e in await store.list_examples()]


@router.post("/examples", response_model=EvalExampleOut)
async def add_example(
    body: EvalExampleCreate,
    store: SQLiteEvalStore = Depends(get_eval_store),
) -> EvalExampleOut:
    example = EvalExample(
        example_id=str(uuid4()),
        question=validate_question(body.question),
        category=body.category,
        difficulty=body.difficulty,
    )
    return EvalExampleOut.from_domain(await store.add_example(example))


# LLM-judge runs


@router.get("/runs", response_model=list[EvalRunOut])
async def list_runs(
    limit: int = Query(default=50, ge=1, le=500),
    store: SQLiteEvalStore = Depends(get_eval_store),
) -> list[EvalRunOut]:
    return [EvalRunOut.from_domain(r) for r in await store.list_eval_runs(limit)]


@router.post("/run", response_model=EvalRunDetail)
async def run_eval(
    body: EvalRunRequest | None = None,
    settings: Settings = Depends(get_settings),
    store: SQLiteEvalStore = Depends(get_eval_store),
    harness: EvaluationHarness = Depends(get_harness),
) -> EvalRunDetail:
    body = body or EvalRunRequest(
        limit=settings.default_limit, threshold=settings.default_threshold
    )
    examples = await _examples_or_fail(store)
    run = await harness.run_rag_eval(examples, body.mode, body.limit, body.threshold)
    results = await store.get_eval_results(run.run_id)
    return EvalRunDetail(
        run=EvalRunOut.from_domain(run),
        results=[EvalResultOut.from_domain(r) for r in results],
    )


@router.get("/runs/{run_id}", response_model=EvalRunDetail)
async def get_run(
    run_id: str,
    store: SQLiteEvalStore = Depends(get_eval_store),
) -> EvalRunDetail:
    run = await store.get_eval_run(run_id)
    if run is None:
        raise NotFoundError(f"Eval run {run_id} not found")
    results = await store.get_eval_results(run_id)
    return EvalRunDetail(
        run=EvalRunOut.from_domain(run),
        results=[EvalResultOut.from_domain(r) for r in results],
    )


# Citation accuracy


@router.post("/citation-accuracy", response_model=CitationAccuracyResultOut)
async def citation_accuracy(
    body: CitationAccuracyRequest,
    harness: EvaluationHarness = Depends(get_harness),
) -> CitationAccuracyResultOut:
    """Check one question's citations. The result is not persisted."""
    result = await harness.run_citation_eval_single(body.question, body.threshold, body.limit)
    return CitationAccuracyResultOut.from_domain(result)


@router.post("/citation-accuracy/batch", response_model=CitationAccuracyRunDetail)
async def citation_accuracy_batch(
    body: CitationBatchRequest | None = None,
    settings: Settings = Depends(get_settings),
    store: SQLiteEvalStore = Depends(get_eval_store),
    harness: EvaluationHarness = Depends(get_harness),
) -> CitationAccuracyRunDetail:
    body = body or CitationBatchRequest(
        limit=settings.default_limit, threshold=settings.default_threshold
    )
    examples = await _examples_or_fail(store)
    run = await harness.run_citation_eval(examples, body.threshold, body.limit)
    results = await store.get_citation_results(run.run_id)
    return CitationAccuracyRunDetail(
        run=CitationAccuracyRunOut.from_domain(run),
        results=[CitationAccuracyResultOut.from_domain(r) for r in results],
    )


@router.get("/citation-accuracy/runs", response_model=list[CitationAccuracyRunOut])
async def list_citation_runs(
    limit: int = Query(default=10, ge=1, le=500),
    store: SQLiteEvalStore = Depends(get_eval_store),
) -> list[CitationAccuracyRunOut]:
    return [CitationAccuracyRunOut.from_domain(r) for r in await store.list_citation_runs(limit)]


@router.get("/citation-accuracy/runs/{run_id}", response_model=CitationAccuracyRunDetail)
async def get_citation_run(
    run_id: str,
    store: SQLiteEvalStore = Depends(get_eval_store),
) -> CitationAccuracyRunDetail:
    run = await store.get_citation_run(run_id)
    if run is None:
        raise NotFoundError(f"Citation accuracy run {run_id} not found")
    results = await store.get_citation_results(run_id)
    return CitationAccuracyRunDetail(
        run=CitationAccuracyRunOut.from_domain(run),
        results=[CitationAccuracyResultOut.from_domain(r) for r in results],
    )
