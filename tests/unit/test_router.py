"""Tests for the two-tier retrieval router."""

import pytest

from archive_rag.exceptions import RetrievalError
from archive_rag.models.domain import IndexTier, RetrievalTier
from archive_rag.retrieval.router import RetrievalRouter


@pytest.fixture
def router(fake_index, archive):
    return RetrievalRouter(index=fake_index, archive=archive)


def _script(fake_index, distillations, d_score, chunks, c_score):
    fake_index.results[IndexTier.DISTILLATIONS] = [(d, d_score) for d in distillations]
    fake_index.results[IndexTier.CHUNKS] = [(c, c_score) for c in chunks]


async def test_distillation_match_selects_tier_one(router, fake_index, distillations, chunks):
    _script(fake_index, distillations[:1], 0.42, chunks[:1], 0.18)
    outcome = await router.route("What is aggregation theory?", 0.30, 5)

    assert outcome.decision.tier_used == RetrievalTier.DISTILLATIONS
    assert outcome.decision.distillation_max_score == 0.42
    assert outcome.decision.chunk_max_score == 0.18
    assert outcome.decision.needs_precision is False
    assert [r.above_threshold for r in outcome.distillations] == [True]
    assert [r.above_threshold for r in outcome.chunks] == [False]


async def test_both_tiers_above_threshold_is_hybrid(router, fake_index, distillations, chunks):
    _script(fake_index, distillations[:1], 0.42, chunks[:1], 0.35)
    outcome = await router.route("What is aggregation theory?", 0.30, 5)
    assert outcome.decision.tier_used == RetrievalTier.HYBRID


async def test_nothing_above_threshold_is_none(router, fake_index, distillations, chunks):
    _script(fake_index, distillations[:1], 0.10, chunks[:1], 0.05)
    outcome = await router.route("Who won the 1998 world cup?", 0.30, 5)
    assert outcome.decision.tier_used == RetrievalTier.NONE
    assert outcome.above_threshold() == []


async def test_empty_index_leaves_scores_unset(router):
    outcome = await router.route("anything at all", 0.30, 5)
    assert outcome.decision.distillation_max_score is None
    assert outcome.decision.chunk_max_score is None
    assert outcome.decision.tier_used == RetrievalTier.NONE


async def test_route_is_deterministic(router, fake_index, distillations, chunks):
    _script(fake_index, distillations, 0.42, chunks, 0.35)
    first = await router.route("How do aggregators work?", 0.30, 5)
    second = await router.route("How do aggregators work?", 0.30, 5)
    assert first.decision == second.decision


async def test_results_are_hydrated_with_articles(router, fake_index, distillations, chunks):
    _script(fake_index, distillations[:1], 0.6, chunks[:1], 0.2)
    outcome = await router.route("aggregators", 0.30, 5)
    assert outcome.distillations[0].article.title == "Aggregation Theory"


async def test_limit_is_passed_to_both_tiers(router, fake_index):
    await router.route("aggregators", 0.30, 3)
    assert {limit for _, _, limit in fake_index.calls} == {3}


async def test_index_failure_degrades_to_none(router, fake_index):
    fake_index.error = RetrievalError("index timed out")
    outcome = await router.route("aggregators", 0.30, 5)

    assert outcome.decision.tier_used == RetrievalTier.NONE
    assert "index timed out" in outcome.decision.reasoning
    assert "0.30" in outcome.decision.reasoning
    assert outcome.distillations == [] and outcome.chunks == []


async def test_programming_errors_are_not_masked_as_degraded(router, fake_index):
    fake_index.error = TypeError("search() got an unexpected keyword argument")
    with pytest.raises(TypeError):
        await router.route("aggregators", 0.30, 5)


async def test_chunks_skipped_when_distillation_suffices(fake_index, archive, distillations):
    router = RetrievalRouter(index=fake_index, archive=archive, confirm_with_chunks=False)
    fake_index.results[IndexTier.DISTILLATIONS] = [(distillations[0], 0.5)]

    outcome = await router.route("What is aggregation theory?", 0.30, 5)

    assert fake_index.searched(IndexTier.CHUNKS) == 0
    assert outcome.decision.chunk_max_score is None
    assert outcome.decision.tier_used == RetrievalTier.DISTILLATIONS
    assert "chunk not searched" in outcome.decision.reasoning


async def test_precision_query_always_searches_chunks(fake_index, archive, distillations, chunks):
    router = RetrievalRouter(index=fake_index, archive=archive, confirm_with_chunks=False)
    _script(fake_index, distillations[:1], 0.5, chunks[:1], 0.4)

    outcome = await router.route('Quote the line "distribution of digital goods"', 0.30, 5)

    assert fake_index.searched(IndexTier.CHUNKS) == 1
    assert outcome.decision.needs_precision is True
    assert outcome.decision.tier_used == RetrievalTier.HYBRID


async def test_low_distillation_score_falls_through_to_chunks(
    fake_index, archive, distillations, chunks
):
    router = RetrievalRouter(index=fake_index, archive=archive, confirm_with_chunks=False)
    _script(fake_index, distillations[:1], 0.1, chunks[:1], 0.6)
    outcome = await router.route("distribution of digital goods", 0.30, 5)
    assert outcome.decision.tier_used == RetrievalTier.CHUNKS
