"""Aggregate metrics for evaluation runs.

Every aggregate stored on a run is produced by these functions from the
run's stored results, so a run can always be recomputed from its rows.
"""

from __future__ import annotations

from dataclasses import dataclass

from archive_rag.config.constants import NO_CITATIONS_ACCURACY
from archive_rag.models.domain import (
    Citation,
    CitationAccuracyResult,
    CitationStatus,
    EvalResult,
    ResultStatus,
)


@dataclass
class EvalSummary:
    scored_examples: int
    excluded_examples: int
    avg_score: float | None


@dataclass
class CitationCounts:
    total: int
    valid: int
    misused: int
    hallucinated: int


@dataclass
class CitationSummary:
    scored_examples: int
    excluded_examples: int
    total_citations: int
    valid_citations: int
    misused_citations: int
    hallucinated_citations: int
    overall_accuracy: float


def rubric_average(relevance: float, faithfulness: float, completeness: float) -> float:
    return (relevance + faithfulness + completeness) / 3


def summarize_eval_results(results: list[EvalResult]) -> EvalSummary:
    """Mean of per-result averages over scored results only.

    Excluded results count towards neither the numerator nor the
    denominator. With nothing scored the run average is None.
    """
    scored = [
        r for r in results if r.status == ResultStatus.SCORED and r.avg_score is not None
    ]
    excluded = len(results) - len(scored)
    avg = sum(r.avg_score for r in scored) / len(scored) if scored else None
    return EvalSummary(
        scored_examples=len(scored),
        excluded_examples=excluded,
        avg_score=avg,
    )


def citation_accuracy(valid: int, total: int) -> float:
    if total == 0:
        return NO_CITATIONS_ACCURACY
    return valid / total


def count_citations(citations: list[Citation]) -> CitationCounts:
    valid = misused = hallucinated = 0
    for c in citations:
        if c.status == CitationStatus.VALID:
            valid += 1
        elif c.status == CitationStatus.EXISTS_BUT_MISUSED:
            misused += 1
        elif c.status == CitationStatus.HALLUCINATED:
            hallucinated += 1
        else:
            raise ValueError(f"Unknown citation status: {c.status!r}")
    return CitationCounts(
        total=len(citations), valid=valid, misused=misused, hallucinated=hallucinated
    )


def summarize_citation_results(results: list[CitationAccuracyResult]) -> CitationSummary:
    scored = [r for r in results if r.status == ResultStatus.SCORED]
    total = sum(r.total_citations for r in scored)
    valid = sum(r.valid for r in scored)
    return CitationSummary(
        scored_examples=len(scored),
        excluded_examples=len(results) - len(scored),
        total_citations=total,
        valid_citations=valid,
        misused_citations=sum(r.misused for r in scored),
        hallucinated_citations=sum(r.hallucinated for r in scored),
        overall_accuracy=citation_accuracy(valid, total),
    )
