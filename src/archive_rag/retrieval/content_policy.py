"""Content policies checked before any retrieval happens."""

from __future__ import annotations

import re

from archive_rag.config.constants import REFUSAL_PATTERNS
from archive_rag.models.domain import RetrievalTier, RouteOutcome, RoutingDecision
from archive_rag.retrieval.precision import needs_precision


class CopyrightPolicy:
    """Declines requests to reproduce whole articles verbatim."""

    def __init__(self, patterns: tuple[str, ...] = REFUSAL_PATTERNS) -> None:
        self._patterns = [re.compile(p, re.I) for p in patterns]

    def check(self, query: str) -> str | None:
        for pattern in self._patterns:
            match = pattern.search(query)
            if match:
                return f"request for verbatim reproduction ('{match.group(0)}')"
        return None


class AllowAllPolicy:
    def check(self, query: str) -> str | None:
        return None


def refused_outcome(query: str, reason: str) -> RouteOutcome:
    """Routing outcome for a query declined before any retrieval."""
    return RouteOutcome(
        decision=RoutingDecision(
            distillation_max_score=None,
            chunk_max_score=None,
            tier_used=RetrievalTier.REFUSED,
            needs_precision=needs_precision(query),
            reasoning=f"Declined before retrieval: {reason}.",
        ),
        distillations=[],
        chunks=[],
    )
