"""Integration tests for the evaluation harness against a real SQLite eval store."""

from __future__ import annotations

import asyncio

import pytest

from archive_rag.evaluation.harness import EvaluationHarness
from archive_rag.evaluation.judge import JudgeScores, LLMJudge
from archive_rag.exceptions import GenerationError, ValidationError
from archive_rag.generation.answer_generator import AnswerGenerator
from archive_rag.generation.reasoning import ReasoningPipeline
from archive_rag.models.domain import (
    EvalExample,
    IndexTier,
    QueryMode,
    ResultStatus,
    RetrievalTier,
    RunStatus,
)
from archive_rag.pipeline.query_pipeline import QueryPipeline
from archive_rag.retrieval.content_policy import CopyrightPolicy
from archive_rag.retrieval.router import RetrievalRouter
from archive_rag.storage.sqlite_eval_store import SQLiteEvalStore
from archive_rag.verification.citation_verifier import CitationVerifier

SUPPORTED = "Aggregators commoditize suppliers by controlling demand."
DRAFT = (
    f"{SUPPORTED}\n"
    "Platforms always lose to aggregators over the long run "
    "[[The Platform Paradox | 2019-04-01]]."
)


@pytest.fixture
async def eval_store(settings):
    store = SQLiteEvalStore(settings.sqlite_eval_db_path)
    await store.initialize()
    return store


@pytest.fixture
def examples():
    return [
        EvalExample(example_id=f"ex-{i}", question=f"Question number {i} about aggregation?")
        for i in range(1, 6)
    ]


@pytest.fixture
def harness(query_pipeline, fake_llm, eval_store):
    fake_llm.structured = JudgeScores(
        relevance=4, faithfulness=4.5, completeness=3.5, reasoning="fine"
    )
    return EvaluationHarness(query_pipeline, LLMJudge(fake_llm), eval_store)


async def test_failed_example_is_excluded_not_fatal(
    harness, eval_store, fake_llm, fake_index, distillations, examples
):
    fake_index.results[IndexTier.DISTILLATIONS] = [(distillations[0], 0.42)]

    def answer(prompt, system):
        if "Question number 3" in prompt:
            return GenerationError("LLM call timed out after 60s")
        return "Aggregators own demand [1]."

    fake_llm.handler = answer

    run = await harness.run_rag_eval(examples)

    assert run.status == RunStatus.COMPLETE
    assert run.total_examples == 5
    assert run.scored_examples == 4
    assert run.excluded_examples == 1
    assert run.avg_score == pytest.approx(4.0)

    results = await eval_store.get_eval_results(run.run_id)
    assert [r.example_id for r in results] == ["ex-1", "ex-2", "ex-3", "ex-4", "ex-5"]
    failed = results[2]
    assert failed.status == ResultStatus.EXCLUDED
    assert failed.avg_score is None
    assert failed.error.startswith("GenerationError")
    assert failed.retrieval_tier == RetrievalTier.DISTILLATIONS
    assert all(r.retrieval_tier == RetrievalTier.DISTILLATIONS for r in results)


async def test_judge_failure_is_excluded(harness, eval_store, fake_llm, examples):
    fake_llm.structured = None
    fake_llm.handler = lambda prompt, system: (
        "not json at all" if system and "strict evaluator" in system else "An answer."
    )

    run = await harness.run_rag_eval(examples[:2])

    assert run.scored_examples == 0
    assert run.excluded_examples == 2
    assert run.avg_score is None
    results = await eval_store.get_eval_results(run.run_id)
    assert all(r.error.startswith("JudgeError") for r in results)


async def test_run_parameters_are_recorded(harness, examples):
    run = await harness.run_rag_eval(
        examples[:1], mode=QueryMode.REASONING, limit=3, threshold=0.4
    )
    assert (run.mode, run.limit, run.threshold) == ("reasoning", 3, 0.4)


async def test_invalid_parameters_create_no_run(harness, eval_store, examples):
    with pytest.raises(ValidationError):
        await harness.run_rag_eval(examples, threshold=2.0)
    assert await eval_store.list_eval_runs() == []


class SlowLLM:
    """Hangs on one question so the batch timeout fires."""

    def __init__(self, slow_marker: str) -> None:
        self.slow_marker = slow_marker

    async def generate(self, prompt, system=None, temperature=None, max_tokens=None):
        if self.slow_marker in prompt:
            await asyncio.sleep(30)
        return "An answer."

    async def generate_structured(self, prompt, response_schema, system=None, temperature=0.0):
        return JudgeScores(relevance=5, faithfulness=5, completeness=5)


async def test_batch_timeout_marks_run_incomplete(
    fake_index, archive, eval_store, examples
):
    llm = SlowLLM("Question number 2")
    router = RetrievalRouter(index=fake_index, archive=archive)
    pipeline = QueryPipeline(
        policy=CopyrightPolicy(),
        router=router,
        answer_generator=AnswerGenerator(llm),
        reasoning=ReasoningPipeline(llm, router),
        verifier=CitationVerifier(archive),
    )
    harness = EvaluationHarness(
        pipeline, LLMJudge(llm), eval_store, concurrency=5, batch_timeout_s=0.5
    )

    run = await harness.run_rag_eval(examples)

    assert run.status == RunStatus.INCOMPLETE
    assert run.total_examples == 5
    assert run.scored_examples == 4
    assert run.avg_score == pytest.approx(5.0)
    results = await eval_store.get_eval_results(run.run_id)
    assert "ex-2" not in {r.example_id for r in results}


async def test_citation_batch_pools_results(
    harness, eval_store, fake_llm, fake_index, distillations, examples
):
    def draft(prompt, system):
        if "Question number 4" in prompt:
            return GenerationError("LLM call timed out after 60s")
        return DRAFT

    fake_llm.handler = draft
    fake_index.by_query[SUPPORTED] = {IndexTier.DISTILLATIONS: [(distillations[0], 0.5)]}

    run = await harness.run_citation_eval(examples)

    assert run.status == RunStatus.COMPLETE
    assert run.scored_examples == 4
    assert run.excluded_examples == 1
    assert run.total_citations == 8
    assert run.valid_citations == 4
    assert run.hallucinated_citations == 4
    assert run.overall_accuracy == 0.5

    results = await eval_store.get_citation_results(run.run_id)
    assert [r.position for r in results] == [0, 1, 2, 3, 4]
    assert results[3].status == ResultStatus.EXCLUDED
    assert results[0].details[0].article_id == "agg"


async def test_single_citation_check_is_not_persisted(
    harness, eval_store, fake_llm, fake_index, distillations
):
    fake_llm.responses = [DRAFT]
    fake_index.by_query[SUPPORTED] = {IndexTier.DISTILLATIONS: [(distillations[0], 0.5)]}

    result = await harness.run_citation_eval_single("Why do aggregators win?")

    assert result.total_citations == 2
    assert result.accuracy_score == 0.5
    assert result.run_id is None
    assert await eval_store.list_citation_runs() == []
