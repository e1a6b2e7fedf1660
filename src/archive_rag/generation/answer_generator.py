"""Tier-routed RAG answer generation."""

from __future__ import annotations

from archive_rag.config.constants import REFUSAL_ANSWER, UNGROUNDED_NOTICE
from archive_rag.exceptions import GenerationError
from archive_rag.generation.prompt_templates import (
    RAG_ANSWER_PROMPT,
    RAG_ANSWER_SYSTEM,
    UNGROUNDED_ANSWER_PROMPT,
    UNGROUNDED_ANSWER_SYSTEM,
    format_context_block,
)
from archive_rag.generation.sources import to_source
from archive_rag.models.domain import (
    AnswerResponse,
    RetrievalResult,
    RetrievalTier,
    RouteOutcome,
)
from archive_rag.observability.logger import get_logger
from archive_rag.observability.metrics import log_generation_metrics
from archive_rag.protocols.llm import LLMProvider

logger = get_logger("generation")


def select_context(outcome: RouteOutcome, limit: int) -> list[RetrievalResult]:
    """Above-threshold items of the tier(s) the router selected, at most ``limit`` per tier.

    Chunks lead when the query needs precise text.
    """
    tier = outcome.decision.tier_used
    distillations = [r for r in outcome.distillations if r.above_threshold][:limit]
    chunks = [r for r in outcome.chunks if r.above_threshold][:limit]

    if tier == RetrievalTier.DISTILLATIONS:
        return distillations
    if tier == RetrievalTier.CHUNKS:
        return chunks
    if tier == RetrievalTier.HYBRID:
        if outcome.decision.needs_precision:
            return chunks + distillations
        return distillations + chunks
    if tier in (RetrievalTier.NONE, RetrievalTier.REFUSED):
        return []
    raise ValueError(f"RAG generation cannot use tier {tier.value!r}")


class AnswerGenerator:
    def __init__(self, llm: LLMProvider, answer_when_ungrounded: bool = True) -> None:
        self._llm = llm
        self._answer_when_ungrounded = answer_when_ungrounded

    async def generate(self, question: str, outcome: RouteOutcome, limit: int) -> AnswerResponse:
        decision = outcome.decision
        tier = decision.tier_used

        if tier == RetrievalTier.REFUSED:
            return AnswerResponse(
                answer=REFUSAL_ANSWER, retrieval_tier=tier, sources=[], decision=decision
            )

        context = select_context(outcome, limit)
        try:
            if tier == RetrievalTier.NONE:
                answer = await self._ungrounded(question)
            else:
                prompt = RAG_ANSWER_PROMPT.format(
                    question=question, context_block=format_context_block(context)
                )
                answer = await self._llm.generate(prompt, system=RAG_ANSWER_SYSTEM)
        except GenerationError as e:
            raise GenerationError(str(e), decision=decision) from e

        log_generation_metrics(tier=tier.value, sources=len(context), answer_len=len(answer))
        return AnswerResponse(
            answer=answer,
            retrieval_tier=tier,
            sources=[to_source(r) for r in context],
            decision=decision,
        )

    async def _ungrounded(self, question: str) -> str:
        if not self._answer_when_ungrounded:
            return UNGROUNDED_NOTICE
        prompt = UNGROUNDED_ANSWER_PROMPT.format(question=question)
        return await self._llm.generate(prompt, system=UNGROUNDED_ANSWER_SYSTEM)
