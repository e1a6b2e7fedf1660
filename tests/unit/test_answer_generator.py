"""Tests for tier-routed RAG answer generation."""

import pytest

from archive_rag.config.constants import REFUSAL_ANSWER, UNGROUNDED_NOTICE
from archive_rag.exceptions import GenerationError
from archive_rag.generation.answer_generator import AnswerGenerator, select_context
from archive_rag.models.domain import (
    RetrievalResult,
    RetrievalTier,
    RouteOutcome,
    RoutingDecision,
    SourceType,
)
from archive_rag.retrieval.content_policy import refused_outcome


@pytest.fixture
def make_outcome(articles):
    by_id = {a.article_id: a for a in articles}

    def make(tier, distillations, chunks, threshold=0.3, needs_precision=False):
        def wrap(items):
            return [
                RetrievalResult(
                    item=item,
                    similarity=score,
                    above_threshold=score >= threshold,
                    article=by_id.get(item.article_id),
                )
                for item, score in items
            ]

        return RouteOutcome(
            decision=RoutingDecision(
                distillation_max_score=max((s for _, s in distillations), default=None),
                chunk_max_score=max((s for _, s in chunks), default=None),
                tier_used=tier,
                needs_precision=needs_precision,
                reasoning="test",
            ),
            distillations=wrap(distillations),
            chunks=wrap(chunks),
        )

    return make


def test_select_context_distillations_only(make_outcome, distillations, chunks):
    outcome = make_outcome(
        RetrievalTier.DISTILLATIONS,
        [(distillations[0], 0.5), (distillations[1], 0.2)],
        [(chunks[0], 0.1)],
    )
    context = select_context(outcome, limit=5)
    assert [r.item for r in context] == [distillations[0]]


def test_select_context_hybrid_respects_limit(make_outcome, distillations, chunks):
    outcome = make_outcome(
        RetrievalTier.HYBRID,
        [(distillations[0], 0.5), (distillations[1], 0.4)],
        [(chunks[0], 0.6), (chunks[1], 0.5), (chunks[2], 0.4)],
    )
    context = select_context(outcome, limit=1)
    assert [r.source_type for r in context] == [SourceType.DISTILLATION, SourceType.CHUNK]


def test_select_context_hybrid_leads_with_chunks_for_precision(
    make_outcome, distillations, chunks
):
    outcome = make_outcome(
        RetrievalTier.HYBRID,
        [(distillations[0], 0.5)],
        [(chunks[0], 0.6)],
        needs_precision=True,
    )
    assert select_context(outcome, limit=5)[0].source_type == SourceType.CHUNK


def test_select_context_none_is_empty(make_outcome, distillations):
    outcome = make_outcome(RetrievalTier.NONE, [(distillations[0], 0.1)], [])
    assert select_context(outcome, limit=5) == []


def test_select_context_rejects_reasoning_tier(make_outcome):
    outcome = make_outcome(RetrievalTier.REASONING_FIRST, [], [])
    with pytest.raises(ValueError):
        select_context(outcome, limit=5)


async def test_generate_attaches_sources_with_similarity(
    make_outcome, fake_llm, distillations, chunks
):
    outcome = make_outcome(
        RetrievalTier.HYBRID, [(distillations[0], 0.5)], [(chunks[0], 0.45)]
    )
    fake_llm.responses = ["Aggregators own demand [1]."]

    response = await AnswerGenerator(fake_llm).generate("What is aggregation?", outcome, 5)

    assert response.answer == "Aggregators own demand [1]."
    assert response.retrieval_tier == RetrievalTier.HYBRID
    assert [(s.type, s.similarity) for s in response.sources] == [
        (SourceType.DISTILLATION, 0.5),
        (SourceType.CHUNK, 0.45),
    ]
    assert response.sources[0].title == "Aggregation Theory"
    assert response.sources[0].date == "2015-07-21"
    assert response.sources[0].thesis_statement == distillations[0].thesis_statement
    assert response.sources[1].content == chunks[0].content
    assert response.decision is outcome.decision
    prompt, _ = fake_llm.calls[0]
    assert "Aggregation Theory" in prompt
    assert chunks[0].content in prompt


async def test_refused_tier_never_calls_llm(fake_llm):
    outcome = refused_outcome("full text please", "request for verbatim reproduction")
    response = await AnswerGenerator(fake_llm).generate("full text please", outcome, 5)
    assert response.answer == REFUSAL_ANSWER
    assert response.retrieval_tier == RetrievalTier.REFUSED
    assert response.sources == []
    assert fake_llm.calls == []


async def test_none_tier_answers_with_no_grounding_instruction(make_outcome, fake_llm):
    outcome = make_outcome(RetrievalTier.NONE, [], [])
    fake_llm.responses = ["The archive does not cover this."]
    response = await AnswerGenerator(fake_llm).generate("Who won?", outcome, 5)

    assert response.answer == "The archive does not cover this."
    assert response.retrieval_tier == RetrievalTier.NONE
    assert response.sources == []
    _, system = fake_llm.calls[0]
    assert "No relevant archive content" in system


async def test_none_tier_can_skip_generation(make_outcome, fake_llm):
    outcome = make_outcome(RetrievalTier.NONE, [], [])
    generator = AnswerGenerator(fake_llm, answer_when_ungrounded=False)
    response = await generator.generate("Who won?", outcome, 5)
    assert response.answer == UNGROUNDED_NOTICE
    assert fake_llm.calls == []


async def test_generation_failure_carries_decision(make_outcome, fake_llm, distillations):
    outcome = make_outcome(RetrievalTier.DISTILLATIONS, [(distillations[0], 0.5)], [])
    fake_llm.responses = [GenerationError("LLM call timed out after 60s")]

    with pytest.raises(GenerationError) as exc_info:
        await AnswerGenerator(fake_llm).generate("What is aggregation?", outcome, 5)
    assert exc_info.value.decision is outcome.decision
