"""Batch evaluation: LLM-judge RAG runs and citation-accuracy runs.

Both batch paths follow the same protocol:

1. Persist the run in ``running`` state before any example executes, so
   clients can poll it.
2. Execute examples through a bounded worker pool. A failing example is
   recorded as an ``excluded`` result and never cancels its siblings.
3. After every example resolves, or the global batch timeout expires,
   finalize the run from its stored results. Examples still pending at the
   timeout are cancelled and the run is marked ``incomplete``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from uuid import uuid4

from archive_rag.config.constants import NO_CITATIONS_ACCURACY
from archive_rag.evaluation.judge import LLMJudge
from archive_rag.models.domain import (
    CitationAccuracyResult,
    CitationAccuracyRun,
    EvalExample,
    EvalResult,
    EvalRun,
    QueryMode,
    ResultStatus,
)
from archive_rag.observability.logger import get_logger
from archive_rag.observability.metrics import log_eval_run_metrics
from archive_rag.pipeline.query_pipeline import QueryPipeline, validate_parameters
from archive_rag.storage.sqlite_eval_store import SQLiteEvalStore

logger = get_logger("eval_harness")


class EvaluationHarness:
    def __init__(
        self,
        pipeline: QueryPipeline,
        judge: LLMJudge,
        store: SQLiteEvalStore,
        concurrency: int = 3,
        batch_timeout_s: float = 900.0,
    ) -> None:
        self._pipeline = pipeline
        self._judge = judge
        self._store = store
        self._concurrency = max(1, concurrency)
        self._batch_timeout_s = batch_timeout_s

    async def run_rag_eval(
        self,
        examples: list[EvalExample],
        mode: QueryMode = QueryMode.AUTO,
        limit: int = 5,
        threshold: float = 0.30,
    ) -> EvalRun:
        validate_parameters(limit, threshold)
        run = await self._store.create_eval_run(
            EvalRun(
                run_id=str(uuid4()),
                started_at=datetime.now(timezone.utc),
                total_examples=len(examples),
                mode=mode.value,
                limit=limit,
                threshold=threshold,
            )
        )
        logger.info("eval_run_started", run_id=run.run_id, examples=len(examples), mode=mode.value)

        async def evaluate(position: int, example: EvalExample) -> None:
            result = await self._evaluate_example(
                run.run_id, position, example, mode, limit, threshold
            )
            await self._store.add_eval_result(result)

        incomplete = await self._execute(
            run.run_id, [evaluate(i, ex) for i, ex in enumerate(examples)]
        )
        finalized = await self._store.finalize_eval_run(run.run_id, incomplete=incomplete)
        log_eval_run_metrics(
            run_id=finalized.run_id,
            kind="rag",
            total=finalized.total_examples,
            scored=finalized.scored_examples,
            excluded=finalized.excluded_examples,
            score=finalized.avg_score,
            incomplete=finalized.incomplete,
        )
        return finalized

    async def _evaluate_example(
        self,
        run_id: str,
        position: int,
        example: EvalExample,
        mode: QueryMode,
        limit: int,
        threshold: float,
    ) -> EvalResult:
        try:
            response = await self._pipeline.answer(example.question, limit, threshold, mode)
            scores = await self._judge.score(
                example.question,
                response.answer,
                response.retrieval_tier.value,
                response.sources,
            )
        except Exception as e:
            logger.warning(
                "eval_example_failed",
                run_id=run_id,
                example_id=example.example_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return EvalResult(
                result_id=str(uuid4()),
                run_id=run_id,
                example_id=example.example_id,
                question=example.question,
                status=ResultStatus.EXCLUDED,
                position=position,
                retrieval_tier=getattr(getattr(e, "decision", None), "tier_used", None),
                error=f"{type(e).__name__}: {e}",
            )

        return EvalResult(
            result_id=str(uuid4()),
            run_id=run_id,
            example_id=example.example_id,
            question=example.question,
            status=ResultStatus.SCORED,
            position=position,
            retrieval_tier=response.retrieval_tier,
            relevance_score=scores.relevance,
            faithfulness_score=scores.faithfulness,
            completeness_score=scores.completeness,
            avg_score=scores.avg_score,
            judge_reasoning=scores.reasoning,
            answer=response.answer,
        )

    async def run_citation_eval(
        self,
        examples: list[EvalExample],
        threshold: float = 0.30,
        limit: int = 5,
    ) -> CitationAccuracyRun:
        validate_parameters(limit, threshold)
        run = await self._store.create_citation_run(
            CitationAccuracyRun(
                run_id=str(uuid4()),
                started_at=datetime.now(timezone.utc),
                total_examples=len(examples),
            )
        )
        logger.info("citation_run_started", run_id=run.run_id, examples=len(examples))

        async def evaluate(position: int, example: EvalExample) -> None:
            result = await self._check_example(run.run_id, position, example, threshold, limit)
            await self._store.add_citation_result(result)

        incomplete = await self._execute(
            run.run_id, [evaluate(i, ex) for i, ex in enumerate(examples)]
        )
        finalized = await self._store.finalize_citation_run(run.run_id, incomplete=incomplete)
        log_eval_run_metrics(
            run_id=finalized.run_id,
            kind="citation_accuracy",
            total=finalized.total_examples,
            scored=finalized.scored_examples,
            excluded=finalized.excluded_examples,
            score=finalized.overall_accuracy,
            incomplete=finalized.incomplete,
        )
        return finalized

    async def run_citation_eval_single(
        self, question: str, threshold: float = 0.30, limit: int = 5
    ) -> CitationAccuracyResult:
        """Ad hoc check of one question. Nothing is persisted."""
        return await self._pipeline.check_citations(question, threshold, limit)

    async def _check_example(
        self,
        run_id: str,
        position: int,
        example: EvalExample,
        threshold: float,
        limit: int,
    ) -> CitationAccuracyResult:
        try:
            result = await self._pipeline.check_citations(example.question, threshold, limit)
        except Exception as e:
            logger.warning(
                "eval_example_failed",
                run_id=run_id,
                example_id=example.example_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            result = CitationAccuracyResult(
                question=example.question,
                total_citations=0,
                valid=0,
                misused=0,
                hallucinated=0,
                accuracy_score=NO_CITATIONS_ACCURACY,
                details=[],
                status=ResultStatus.EXCLUDED,
                error=f"{type(e).__name__}: {e}",
            )
        result.example_id = example.example_id
        result.result_id = str(uuid4())
        result.run_id = run_id
        result.position = position
        return result

    async def _execute(self, run_id: str, jobs: list) -> bool:
        """Run jobs on the worker pool. Returns True if the batch timed out."""
        if not jobs:
            return False
        semaphore = asyncio.Semaphore(self._concurrency)

        async def bounded(job) -> None:
            try:
                async with semaphore:
                    await job
            finally:
                # Jobs cancelled while queued were never started.
                job.close()

        tasks = [asyncio.create_task(bounded(job)) for job in jobs]
        done, pending = await asyncio.wait(tasks, timeout=self._batch_timeout_s)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("eval_batch_timeout", run_id=run_id, unfinished=len(pending))

        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.error("eval_result_not_stored", run_id=run_id, error=str(task.exception()))
        return bool(pending)
