"""Two-tier retrieval router: decide whether distillations, chunks or both answer a query."""

from __future__ import annotations

from archive_rag.exceptions import RetrievalError
from archive_rag.models.domain import (
    IndexTier,
    RetrievalResult,
    RetrievalTier,
    RouteOutcome,
    RoutingDecision,
)
from archive_rag.observability.logger import get_logger
from archive_rag.observability.metrics import log_routing_metrics
from archive_rag.protocols.archive import ArchiveStore
from archive_rag.protocols.index import EmbeddingIndex
from archive_rag.retrieval.precision import precision_signals
from archive_rag.retrieval.tiers import explain, resolve_tier

logger = get_logger("router")


class RetrievalRouter:
    def __init__(
        self,
        index: EmbeddingIndex,
        archive: ArchiveStore,
        confirm_with_chunks: bool = True,
    ) -> None:
        self._index = index
        self._archive = archive
        self._confirm_with_chunks = confirm_with_chunks

    async def route(self, query: str, threshold: float, limit: int) -> RouteOutcome:
        signals = precision_signals(query)
        needs_precision = bool(signals)

        try:
            distillation_hits = await self._index.search(IndexTier.DISTILLATIONS, query, limit)
            d_max = max((s for _, s in distillation_hits), default=None)

            search_chunks = (
                self._confirm_with_chunks
                or needs_precision
                or d_max is None
                or d_max < threshold
            )
            chunk_hits = []
            if search_chunks:
                chunk_hits = await self._index.search(IndexTier.CHUNKS, query, limit)
            c_max = max((s for _, s in chunk_hits), default=None)

            article_ids = [item.article_id for item, _ in distillation_hits + chunk_hits]
            articles = await self._archive.get_articles(article_ids)
        except RetrievalError as e:
            return self._degraded(needs_precision, threshold, e)

        tier = resolve_tier(d_max, c_max, threshold)
        decision = RoutingDecision(
            distillation_max_score=d_max,
            chunk_max_score=c_max,
            tier_used=tier,
            needs_precision=needs_precision,
            reasoning=explain(tier, d_max, c_max, threshold, signals, search_chunks),
        )
        distillations = [
            RetrievalResult(
                item=item,
                similarity=score,
                above_threshold=score >= threshold,
                article=articles.get(item.article_id),
            )
            for item, score in distillation_hits
        ]
        chunks = [
            RetrievalResult(
                item=item,
                similarity=score,
                above_threshold=score >= threshold,
                article=articles.get(item.article_id),
            )
            for item, score in chunk_hits
        ]

        log_routing_metrics(
            tier=tier.value,
            distillation_max=d_max,
            chunk_max=c_max,
            threshold=threshold,
            needs_precision=needs_precision,
            distillation_hits=len(distillations),
            chunk_hits=len(chunks),
        )
        return RouteOutcome(decision=decision, distillations=distillations, chunks=chunks)

    @staticmethod
    def _degraded(needs_precision: bool, threshold: float, error: RetrievalError) -> RouteOutcome:
        logger.warning("retrieval_degraded", error=str(error))
        return RouteOutcome(
            decision=RoutingDecision(
                distillation_max_score=None,
                chunk_max_score=None,
                tier_used=RetrievalTier.NONE,
                needs_precision=needs_precision,
                reasoning=(
                    f"Retrieval unavailable ({error}); no tier could be searched "
                    f"at threshold {threshold:.2f}."
                ),
            ),
            distillations=[],
            chunks=[],
        )
