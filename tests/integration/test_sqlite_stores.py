"""Integration tests for SQLite archive and eval stores."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

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
from archive_rag.storage.sqlite_archive_store import SQLiteArchiveStore
from archive_rag.storage.sqlite_eval_store import RunClosedError, SQLiteEvalStore


@pytest.fixture
async def archive_store(settings, articles, distillations, chunks):
    store = SQLiteArchiveStore(settings.sqlite_archive_db_path)
    await store.initialize()
    for article in articles:
        await store.save_article(article)
    for distillation in distillations:
        await store.save_distillation(distillation)
    await store.save_chunks(list(reversed(chunks)))
    return store


@pytest.fixture
async def eval_store(settings):
    store = SQLiteEvalStore(settings.sqlite_eval_db_path)
    await store.initialize()
    return store


def _eval_result(run_id: str, position: int, avg: float | None) -> EvalResult:
    return EvalResult(
        result_id=f"{run_id}-r{position}",
        run_id=run_id,
        example_id=f"ex-{position}",
        question=f"Question {position}?",
        status=ResultStatus.SCORED if avg is not None else ResultStatus.EXCLUDED,
        position=position,
        retrieval_tier=RetrievalTier.DISTILLATIONS,
        relevance_score=avg,
        faithfulness_score=avg,
        completeness_score=avg,
        avg_score=avg,
        error=None if avg is not None else "GenerationError: timed out",
    )


async def _open_run(store: SQLiteEvalStore, run_id: str = "run-1", total: int = 3) -> EvalRun:
    return await store.create_eval_run(
        EvalRun(run_id=run_id, started_at=datetime.now(timezone.utc), total_examples=total)
    )


# Archive store


async def test_article_roundtrip(archive_store):
    article = await archive_store.get_article("agg")
    assert article.title == "Aggregation Theory"
    assert article.publication_date == date(2015, 7, 21)
    assert await archive_store.get_article("missing") is None


async def test_get_articles_skips_unknown_ids(archive_store):
    found = await archive_store.get_articles(["agg", "missing", "agg", "smile"])
    assert set(found) == {"agg", "smile"}


async def test_find_articles_is_case_insensitive(archive_store):
    found = await archive_store.find_articles("  aggregation THEORY ")
    assert [a.article_id for a in found] == ["agg"]


async def test_find_articles_narrows_by_date(archive_store):
    assert len(await archive_store.find_articles("Weekly Notes")) == 2
    found = await archive_store.find_articles("Weekly Notes", date(2021, 6, 7))
    assert [a.article_id for a in found] == ["notes-b"]
    assert await archive_store.find_articles("Weekly Notes", date(1999, 1, 1)) == []


async def test_distillation_roundtrip(archive_store, distillations):
    stored = await archive_store.get_distillation_for_article("agg")
    assert stored.key_claims == distillations[0].key_claims
    assert stored.entities == {"companies": ["Google", "Facebook"]}
    assert await archive_store.get_distillation_for_article("notes-a") is None


async def test_chunks_come_back_in_order(archive_store):
    chunks = await archive_store.get_chunks_by_article("agg")
    assert [c.chunk_index for c in chunks] == [0, 1]
    by_id = await archive_store.get_chunks_by_ids(["smile-c0"])
    assert by_id["smile-c0"].article_id == "smile"


async def test_counts(archive_store):
    assert await archive_store.count_articles() == 4
    assert await archive_store.count_distillations() == 2
    assert await archive_store.count_chunks() == 3


# Eval store


async def test_examples_roundtrip(eval_store):
    await eval_store.add_example(EvalExample(example_id="e1", question="What is it?"))
    await eval_store.add_example(
        EvalExample(example_id="e2", question="Why?", category="concepts", difficulty="easy")
    )
    examples = await eval_store.list_examples()
    assert [e.example_id for e in examples] == ["e1", "e2"]
    assert examples[1].category == "concepts"


async def test_new_run_is_running(eval_store):
    await _open_run(eval_store)
    run = await eval_store.get_eval_run("run-1")
    assert run.status == RunStatus.RUNNING
    assert run.completed_at is None


async def test_finalize_computes_aggregates_from_results(eval_store):
    await _open_run(eval_store)
    for position, avg in [(2, 3.0), (0, 5.0), (1, None)]:
        await eval_store.add_eval_result(_eval_result("run-1", position, avg))

    run = await eval_store.finalize_eval_run("run-1")

    assert run.status == RunStatus.COMPLETE
    assert run.scored_examples == 2
    assert run.excluded_examples == 1
    assert run.avg_score == pytest.approx(4.0)
    assert run.completed_at is not None
    results = await eval_store.get_eval_results("run-1")
    assert [r.position for r in results] == [0, 1, 2]
    assert results[1].status == ResultStatus.EXCLUDED


async def test_finalize_incomplete(eval_store):
    await _open_run(eval_store)
    run = await eval_store.finalize_eval_run("run-1", incomplete=True)
    assert run.status == RunStatus.INCOMPLETE
    assert run.incomplete is True
    assert run.avg_score is None


async def test_closed_run_rejects_writes(eval_store):
    await _open_run(eval_store)
    await eval_store.finalize_eval_run("run-1")

    with pytest.raises(RunClosedError):
        await eval_store.add_eval_result(_eval_result("run-1", 0, 4.0))
    with pytest.raises(RunClosedError):
        await eval_store.finalize_eval_run("run-1")


async def test_list_runs_newest_first(eval_store):
    await eval_store.create_eval_run(
        EvalRun(
            run_id="old",
            started_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            total_examples=1,
        )
    )
    await eval_store.create_eval_run(
        EvalRun(
            run_id="new",
            started_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
            total_examples=1,
        )
    )
    runs = await eval_store.list_eval_runs()
    assert [r.run_id for r in runs] == ["new", "old"]
    assert [r.run_id for r in await eval_store.list_eval_runs(limit=1)] == ["new"]


async def test_citation_run_pools_citations(eval_store):
    await eval_store.create_citation_run(
        CitationAccuracyRun(run_id="c1", started_at=datetime.now(timezone.utc), total_examples=2)
    )
    details = [
        Citation("[[Aggregation Theory]]", "claim", CitationStatus.VALID, "ok", "agg"),
        Citation("[[The Platform Paradox]]", "claim", CitationStatus.HALLUCINATED, "missing"),
    ]
    await eval_store.add_citation_result(
        CitationAccuracyResult(
            question="q1",
            total_citations=2,
            valid=1,
            misused=0,
            hallucinated=1,
            accuracy_score=0.5,
            details=details,
            answer="text",
            example_id="e1",
            result_id="c1-r0",
            run_id="c1",
            position=0,
        )
    )
    await eval_store.add_citation_result(
        CitationAccuracyResult(
            question="q2",
            total_citations=0,
            valid=0,
            misused=0,
            hallucinated=0,
            accuracy_score=0.0,
            details=[],
            example_id="e2",
            result_id="c1-r1",
            run_id="c1",
            position=1,
            status=ResultStatus.EXCLUDED,
            error="GenerationError: timed out",
        )
    )

    run = await eval_store.finalize_citation_run("c1")

    assert run.total_citations == 2
    assert run.valid_citations == 1
    assert run.hallucinated_citations == 1
    assert run.overall_accuracy == 0.5
    assert (run.scored_examples, run.excluded_examples) == (1, 1)
    results = await eval_store.get_citation_results("c1")
    assert results[0].details == details
    assert results[1].error == "GenerationError: timed out"


async def test_citation_result_requires_ids(eval_store):
    with pytest.raises(ValueError):
        await eval_store.add_citation_result(
            CitationAccuracyResult("q", 0, 0, 0, 0, 0.0, [])
        )
