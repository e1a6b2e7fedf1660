"""Pure tier resolution and its human-readable explanation."""

from __future__ import annotations

from archive_rag.models.domain import RetrievalTier


def _meets(score: float | None, threshold: float) -> bool:
    return score is not None and score >= threshold


def resolve_tier(
    distillation_max: float | None, chunk_max: float | None, threshold: float
) -> RetrievalTier:
    """Both tiers ≥ threshold → hybrid; chunks only → chunks;
    distillations only → distillations; neither → none. A missing score
    never meets the threshold."""
    d_ok = _meets(distillation_max, threshold)
    c_ok = _meets(chunk_max, threshold)
    if d_ok and c_ok:
        return RetrievalTier.HYBRID
    if c_ok:
        return RetrievalTier.CHUNKS
    if d_ok:
        return RetrievalTier.DISTILLATIONS
    return RetrievalTier.NONE


def _describe(label: str, score: float | None, threshold: float, searched: bool = True) -> str:
    if not searched:
        return f"{label} not searched"
    if score is None:
        return f"no {label} matches"
    relation = "meets" if score >= threshold else "is below"
    return f"best {label} match {score:.3f} {relation} threshold {threshold:.2f}"


_CONCLUSIONS = {
    RetrievalTier.HYBRID: "Using both tiers (distillations + chunks).",
    RetrievalTier.DISTILLATIONS: "Using Tier 1 distillations.",
    RetrievalTier.CHUNKS: "Using Tier 2 chunks.",
    RetrievalTier.NONE: "No tier met the threshold; answer is not grounded in the archive.",
}


def explain(
    tier: RetrievalTier,
    distillation_max: float | None,
    chunk_max: float | None,
    threshold: float,
    precision_signals: list[str],
    chunks_searched: bool = True,
) -> str:
    """Deterministic explanation built only from the routing inputs."""
    parts = [
        _describe("distillation", distillation_max, threshold).capitalize() + ";",
        _describe("chunk", chunk_max, threshold, chunks_searched) + ".",
    ]
    if precision_signals:
        parts.append(
            "Query needs precise source text (" + ", ".join(precision_signals) + ")."
        )
    parts.append(_CONCLUSIONS[tier])
    return " ".join(parts)
