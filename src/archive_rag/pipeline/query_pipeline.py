"""Query pipeline orchestrator: validation, content policy, routing, generation, verification."""

from __future__ import annotations

from archive_rag.exceptions import GenerationError, ValidationError
from archive_rag.generation.answer_generator import AnswerGenerator
from archive_rag.generation.reasoning import ReasoningPipeline
from archive_rag.models.domain import (
    AnswerResponse,
    CitationAccuracyResult,
    QueryMode,
    RetrievalTier,
    RouteOutcome,
    RoutingDecision,
)
from archive_rag.observability.logger import get_logger
from archive_rag.observability.metrics import log_generation_metrics
from archive_rag.observability.tracing import TraceContext
from archive_rag.protocols.content_policy import ContentPolicy
from archive_rag.retrieval.content_policy import refused_outcome
from archive_rag.retrieval.precision import precision_signals
from archive_rag.retrieval.router import RetrievalRouter
from archive_rag.verification.citation_verifier import CitationVerifier, build_accuracy_result
from archive_rag.verification.markers import extract_citations

logger = get_logger("query_pipeline")


def validate_question(question: str | None) -> str:
    if question is None or not question.strip():
        raise ValidationError("Question must not be empty")
    return question.strip()


def validate_parameters(limit: int, threshold: float) -> None:
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    if not 0.0 <= threshold <= 1.0:
        raise ValidationError("threshold must be between 0 and 1")


def reasoning_decision(question: str, claims_cited: int, sources: int) -> RoutingDecision:
    signals = precision_signals(question)
    return RoutingDecision(
        distillation_max_score=None,
        chunk_max_score=None,
        tier_used=RetrievalTier.REASONING_FIRST,
        needs_precision=bool(signals),
        reasoning=(
            f"Answered reasoning-first: drafted without retrieval, then cited "
            f"{claims_cited} claim(s) against {sources} archive article(s)."
        ),
    )


class QueryPipeline:
    def __init__(
        self,
        policy: ContentPolicy,
        router: RetrievalRouter,
        answer_generator: AnswerGenerator,
        reasoning: ReasoningPipeline,
        verifier: CitationVerifier,
    ) -> None:
        self._policy = policy
        self._router = router
        self._generator = answer_generator
        self._reasoning = reasoning
        self._verifier = verifier

    async def route(self, question: str, threshold: float, limit: int) -> RouteOutcome:
        """Content policy first; refused queries never reach retrieval."""
        question = validate_question(question)
        validate_parameters(limit, threshold)
        reason = self._policy.check(question)
        if reason is not None:
            logger.info("query_refused", reason=reason)
            return refused_outcome(question, reason)
        return await self._router.route(question, threshold, limit)

    async def inspect(self, question: str, threshold: float, limit: int) -> RouteOutcome:
        return await self.route(question, threshold, limit)

    async def answer(
        self,
        question: str,
        limit: int,
        threshold: float,
        mode: QueryMode = QueryMode.AUTO,
    ) -> AnswerResponse:
        trace = TraceContext()
        question = validate_question(question)
        validate_parameters(limit, threshold)

        if mode == QueryMode.REASONING:
            with trace.span("policy"):
                reason = self._policy.check(question)
            if reason is not None:
                logger.info("query_refused", reason=reason)
                return await self._generator.generate(
                    question, refused_outcome(question, reason), limit
                )
            response = await self._answer_reasoning(question, limit, threshold, trace)
        elif mode == QueryMode.AUTO:
            with trace.span("routing"):
                outcome = await self.route(question, threshold, limit)
            with trace.span("generation", tier=outcome.decision.tier_used.value):
                response = await self._generator.generate(question, outcome, limit)
        else:
            raise ValidationError(f"Unknown mode: {mode!r}")

        logger.info(
            "query_completed",
            trace_id=trace.trace_id,
            mode=mode.value,
            tier=response.retrieval_tier.value,
            spans=trace.summary(),
            latency_ms=round(trace.elapsed_ms, 2),
        )
        return response

    async def check_citations(
        self, question: str, threshold: float, limit: int
    ) -> CitationAccuracyResult:
        """Reasoning-mode answer plus verified citations, summarized for one question."""
        response = await self.answer(question, limit, threshold, QueryMode.REASONING)
        return build_accuracy_result(question, response.answer, response.citations or [])

    async def _answer_reasoning(
        self, question: str, limit: int, threshold: float, trace: TraceContext
    ) -> AnswerResponse:
        try:
            with trace.span("reasoning"):
                cited = await self._reasoning.run(question, threshold, limit)
        except GenerationError as e:
            raise GenerationError(
                str(e), decision=reasoning_decision(question, 0, 0)
            ) from e

        with trace.span("verification"):
            citations = await self._verifier.verify(extract_citations(cited.text))

        log_generation_metrics(
            tier=RetrievalTier.REASONING_FIRST.value,
            sources=len(cited.sources),
            answer_len=len(cited.text),
            citations=len(citations),
        )
        return AnswerResponse(
            answer=cited.text,
            retrieval_tier=RetrievalTier.REASONING_FIRST,
            sources=cited.sources,
            decision=reasoning_decision(question, cited.inserted_markers, len(cited.sources)),
            citations=citations,
        )
