"""Turn retrieval results into the Source records returned to clients."""

from __future__ import annotations

from archive_rag.config.constants import SOURCE_PREVIEW_CHARS
from archive_rag.models.domain import Distillation, RetrievalResult, Source, SourceType


def to_source(result: RetrievalResult) -> Source:
    article = result.article
    item = result.item
    published = (
        article.publication_date.isoformat() if article and article.publication_date else None
    )
    if isinstance(item, Distillation):
        return Source(
            type=SourceType.DISTILLATION,
            article_id=item.article_id,
            title=article.title if article else "",
            date=published,
            similarity=result.similarity,
            topics=list(item.topics),
            thesis_statement=item.thesis_statement,
        )
    return Source(
        type=SourceType.CHUNK,
        article_id=item.article_id,
        title=article.title if article else "",
        date=published,
        similarity=result.similarity,
        content=item.content[:SOURCE_PREVIEW_CHARS],
    )


def dedupe_by_article(results: list[RetrievalResult]) -> list[RetrievalResult]:
    """Keep the best-scoring result per article, in order of first appearance."""
    best: dict[str, RetrievalResult] = {}
    for r in results:
        current = best.get(r.article_id)
        if current is None or r.similarity > current.similarity:
            best[r.article_id] = r
    order = list(dict.fromkeys(r.article_id for r in results))
    return [best[article_id] for article_id in order]
