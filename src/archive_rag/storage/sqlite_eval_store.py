"""SQLite-backed store for eval examples and persisted eval runs.

Runs are append-only: a run row is created in ``running`` state before any
work starts, results are appended as examples resolve, and ``finalize_*``
recomputes the aggregates from the stored results and closes the run once.
A closed run is never written again.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, timezone

import aiosqlite

from archive_rag.evaluation.metrics import summarize_citation_results, summarize_eval_results
from archive_rag.exceptions import ArchiveRAGError, NotFoundError
from archive_rag.models.domain import (
    Citation,
    CitationAccuracyResult,
    CitationAccuracyRun,
    CitationStatus,
    EvalExample,
    EvalResult,
    EvalRun,
    ResultStatus,
    RetrievalTier,
    RunStatus,
)
from archive_rag.storage.migrations import initialize_eval_db


class RunClosedError(ArchiveRAGError):
    """Attempt to write to a run that has already been finalized."""

    code = "run_closed"
    status_code = 409


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


class SQLiteEvalStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_eval_db(self._db_path)

    # Examples

    async def add_example(self, example: EvalExample) -> EvalExample:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT INTO eval_examples (example_id, question, category, difficulty, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    example.example_id,
                    example.question,
                    example.category,
                    example.difficulty,
                    example.created_at.isoformat(),
                ),
            )
            await db.commit()
        return example

    async def list_examples(self) -> list[EvalExample]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM eval_examples ORDER BY created_at, example_id"
            ) as cursor:
                rows = await cursor.fetchall()
                return [
                    EvalExample(
                        example_id=row["example_id"],
                        question=row["question"],
                        category=row["category"],
                        difficulty=row["difficulty"],
                        created_at=_parse_ts(row["created_at"]),
                    )
                    for row in rows
                ]

    # RAG eval runs

    async def create_eval_run(self, run: EvalRun) -> EvalRun:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT INTO eval_runs "
                "(run_id, started_at, status, mode, limit_k, threshold, total_examples) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    run.run_id,
                    run.started_at.isoformat(),
                    RunStatus.RUNNING.value,
                    run.mode,
                    run.limit,
                    run.threshold,
                    run.total_examples,
                ),
            )
            await db.commit()
        return run

    async def add_eval_result(self, result: EvalResult) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await self._ensure_running(db, "eval_runs", result.run_id)
            await db.execute(
                "INSERT INTO eval_results "
                "(result_id, run_id, example_id, position, question, status, retrieval_tier, relevance_score, "
                "faithfulness_score, completeness_score, avg_score, judge_reasoning, answer, error, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    result.result_id,
                    result.run_id,
                    result.example_id,
                    result.position,
                    result.question,
                    result.status.value,
                    result.retrieval_tier.value if result.retrieval_tier else None,
                    result.relevance_score,
                    result.faithfulness_score,
                    result.completeness_score,
                    result.avg_score,
                    result.judge_reasoning,
                    result.answer,
                    result.error,
                    _now().isoformat(),
                ),
            )
            await db.commit()

    async def finalize_eval_run(self, run_id: str, incomplete: bool = False) -> EvalRun:
        results = await self.get_eval_results(run_id)
        summary = summarize_eval_results(results)
        status = RunStatus.INCOMPLETE if incomplete else RunStatus.COMPLETE
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                "UPDATE eval_runs SET status = ?, completed_at = ?, scored_examples = ?, "
                "excluded_examples = ?, avg_score = ? WHERE run_id = ? AND status = ?",
                (
                    status.value,
                    _now().isoformat(),
                    summary.scored_examples,
                    summary.excluded_examples,
                    summary.avg_score,
                    run_id,
                    RunStatus.RUNNING.value,
                ),
            )
            if cursor.rowcount == 0:
                raise RunClosedError(f"Eval run {run_id} is not open")
            await db.commit()
        run = await self.get_eval_run(run_id)
        assert run is not None
        return run

    async def get_eval_run(self, run_id: str) -> EvalRun | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute("SELECT * FROM eval_runs WHERE run_id = ?", (run_id,)) as cursor:
                row = await cursor.fetchone()
                return self._row_to_eval_run(row) if row else None

    async def list_eval_runs(self, limit: int = 50) -> list[EvalRun]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM eval_runs ORDER BY started_at DESC LIMIT ?", (limit,)
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_eval_run(row) for row in rows]

    async def get_eval_results(self, run_id: str) -> list[EvalResult]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM eval_results WHERE run_id = ? ORDER BY position, created_at",
                (run_id,),
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_eval_result(row) for row in rows]

    # Citation accuracy runs

    async def create_citation_run(self, run: CitationAccuracyRun) -> CitationAccuracyRun:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT INTO citation_runs (run_id, started_at, status, total_examples) "
                "VALUES (?, ?, ?, ?)",
                (
                    run.run_id,
                    run.started_at.isoformat(),
                    RunStatus.RUNNING.value,
                    run.total_examples,
                ),
            )
            await db.commit()
        return run

    async def add_citation_result(self, result: CitationAccuracyResult) -> None:
        if result.run_id is None or result.result_id is None:
            raise ValueError("Citation results need run_id and result_id before persisting")
        async with aiosqlite.connect(self._db_path) as db:
            await self._ensure_running(db, "citation_runs", result.run_id)
            await db.execute(
                "INSERT INTO citation_results "
                "(result_id, run_id, example_id, position, question, status, total_citations, valid, misused, "
                "hallucinated, accuracy_score, details, answer, error, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    result.result_id,
                    result.run_id,
                    result.example_id,
                    result.position,
                    result.question,
                    result.status.value,
                    result.total_citations,
                    result.valid,
                    result.misused,
                    result.hallucinated,
                    result.accuracy_score,
                    json.dumps([self._citation_to_dict(c) for c in result.details]),
                    result.answer,
                    result.error,
                    _now().isoformat(),
                ),
            )
            await db.commit()

    async def finalize_citation_run(
        self, run_id: str, incomplete: bool = False
    ) -> CitationAccuracyRun:
        results = await self.get_citation_results(run_id)
        summary = summarize_citation_results(results)
        status = RunStatus.INCOMPLETE if incomplete else RunStatus.COMPLETE
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                "UPDATE citation_runs SET status = ?, completed_at = ?, scored_examples = ?, "
                "excluded_examples = ?, total_citations = ?, valid_citations = ?, "
                "misused_citations = ?, hallucinated_citations = ?, overall_accuracy = ? "
                "WHERE run_id = ? AND status = ?",
                (
                    status.value,
                    _now().isoformat(),
                    summary.scored_examples,
                    summary.excluded_examples,
                    summary.total_citations,
                    summary.valid_citations,
                    summary.misused_citations,
                    summary.hallucinated_citations,
                    summary.overall_accuracy,
                    run_id,
                    RunStatus.RUNNING.value,
                ),
            )
            if cursor.rowcount == 0:
                raise RunClosedError(f"Citation run {run_id} is not open")
            await db.commit()
        run = await self.get_citation_run(run_id)
        assert run is not None
        return run

    async def get_citation_run(self, run_id: str) -> CitationAccuracyRun | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM citation_runs WHERE run_id = ?", (run_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return self._row_to_citation_run(row) if row else None

    async def list_citation_runs(self, limit: int = 10) -> list[CitationAccuracyRun]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM citation_runs ORDER BY started_at DESC LIMIT ?", (limit,)
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_citation_run(row) for row in rows]

    async def get_citation_results(self, run_id: str) -> list[CitationAccuracyResult]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM citation_results WHERE run_id = ? ORDER BY position, created_at",
                (run_id,),
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_citation_result(row) for row in rows]

    # Helpers

    @staticmethod
    async def _ensure_running(db: aiosqlite.Connection, table: str, run_id: str) -> None:
        async with db.execute(f"SELECT status FROM {table} WHERE run_id = ?", (run_id,)) as cursor:
            row = await cursor.fetchone()
        if row is None:
            raise NotFoundError(f"Run {run_id} not found")
        if row[0] != RunStatus.RUNNING.value:
            raise RunClosedError(f"Run {run_id} is {row[0]} and no longer accepts results")

    @staticmethod
    def _citation_to_dict(citation: Citation) -> dict:
        data = asdict(citation)
        data["status"] = citation.status.value
        return data

    @staticmethod
    def _row_to_eval_run(row: aiosqlite.Row) -> EvalRun:
        return EvalRun(
            run_id=row["run_id"],
            started_at=_parse_ts(row["started_at"]),
            completed_at=_parse_ts(row["completed_at"]),
            status=RunStatus(row["status"]),
            mode=row["mode"],
            limit=row["limit_k"],
            threshold=row["threshold"],
            total_examples=row["total_examples"],
            scored_examples=row["scored_examples"],
            excluded_examples=row["excluded_examples"],
            avg_score=row["avg_score"],
        )

    @staticmethod
    def _row_to_eval_result(row: aiosqlite.Row) -> EvalResult:
        tier = row["retrieval_tier"]
        return EvalResult(
            result_id=row["result_id"],
            run_id=row["run_id"],
            example_id=row["example_id"],
            position=row["position"],
            question=row["question"],
            status=ResultStatus(row["status"]),
            retrieval_tier=RetrievalTier(tier) if tier else None,
            relevance_score=row["relevance_score"],
            faithfulness_score=row["faithfulness_score"],
            completeness_score=row["completeness_score"],
            avg_score=row["avg_score"],
            judge_reasoning=row["judge_reasoning"],
            answer=row["answer"],
            error=row["error"],
        )

    @staticmethod
    def _row_to_citation_run(row: aiosqlite.Row) -> CitationAccuracyRun:
        return CitationAccuracyRun(
            run_id=row["run_id"],
            started_at=_parse_ts(row["started_at"]),
            completed_at=_parse_ts(row["completed_at"]),
            status=RunStatus(row["status"]),
            total_examples=row["total_examples"],
            scored_examples=row["scored_examples"],
            excluded_examples=row["excluded_examples"],
            total_citations=row["total_citations"],
            valid_citations=row["valid_citations"],
            misused_citations=row["misused_citations"],
            hallucinated_citations=row["hallucinated_citations"],
            overall_accuracy=row["overall_accuracy"],
        )

    @staticmethod
    def _row_to_citation_result(row: aiosqlite.Row) -> CitationAccuracyResult:
        details = [
            Citation(
                marker=d["marker"],
                claim_text=d["claim_text"],
                status=CitationStatus(d["status"]),
                reason=d["reason"],
                article_id=d.get("article_id"),
            )
            for d in json.loads(row["details"])
        ]
        return CitationAccuracyResult(
            result_id=row["result_id"],
            run_id=row["run_id"],
            example_id=row["example_id"],
            position=row["position"],
            question=row["question"],
            status=ResultStatus(row["status"]),
            total_citations=row["total_citations"],
            valid=row["valid"],
            misused=row["misused"],
            hallucinated=row["hallucinated"],
            accuracy_score=row["accuracy_score"],
            details=details,
            answer=row["answer"] or "",
            error=row["error"],
        )
