"""Metric logging helpers for routing, generation and evaluation."""

from __future__ import annotations

from archive_rag.observability.logger import get_logger

logger = get_logger("metrics")


def _round(value: float | None) -> float | None:
    return None if value is None else round(value, 4)


def log_routing_metrics(
    tier: str,
    distillation_max: float | None,
    chunk_max: float | None,
    threshold: float,
    needs_precision: bool,
    distillation_hits: int,
    chunk_hits: int,
) -> None:
    logger.info(
        "routing_decision",
        tier=tier,
        distillation_max=_round(distillation_max),
        chunk_max=_round(chunk_max),
        threshold=threshold,
        needs_precision=needs_precision,
        distillation_hits=distillation_hits,
        chunk_hits=chunk_hits,
    )


def log_generation_metrics(
    tier: str,
    sources: int,
    answer_len: int,
    citations: int | None = None,
) -> None:
    logger.info(
        "generation_metrics",
        tier=tier,
        sources=sources,
        answer_len=answer_len,
        citations=citations,
    )


def log_eval_run_metrics(
    run_id: str,
    kind: str,
    total: int,
    scored: int,
    excluded: int,
    score: float | None,
    incomplete: bool,
) -> None:
    logger.info(
        "eval_run_finalized",
        run_id=run_id,
        kind=kind,
        total=total,
        scored=scored,
        excluded=excluded,
        score=_round(score),
        incomplete=incomplete,
    )


def log_latency(trace_id: str, stage: str, duration_ms: float) -> None:
    logger.info(
        "latency",
        trace_id=trace_id,
        stage=stage,
        duration_ms=round(duration_ms, 2),
    )
