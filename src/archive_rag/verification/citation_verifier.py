"""Citation verification: is each inline citation real, and does it say what the claim says?"""

from __future__ import annotations

from archive_rag.config.constants import SOURCE_PREVIEW_CHARS
from archive_rag.evaluation.metrics import citation_accuracy, count_citations
from archive_rag.exceptions import VerificationError
from archive_rag.models.domain import (
    Article,
    Citation,
    CitationAccuracyResult,
    CitationCandidate,
    CitationStatus,
)
from archive_rag.observability.logger import get_logger
from archive_rag.protocols.archive import ArchiveStore
from archive_rag.verification.faithfulness import best_support
from archive_rag.verification.markers import ParsedMarker, parse_marker

logger = get_logger("citation_verifier")


class CitationVerifier:
    def __init__(self, archive: ArchiveStore, faithfulness_threshold: float = 0.5) -> None:
        self._archive = archive
        self._threshold = faithfulness_threshold

    async def verify(self, candidates: list[CitationCandidate]) -> list[Citation]:
        """Assign exactly one status to every candidate, in input order."""
        evidence_cache: dict[str, list[str]] = {}
        citations = []
        for candidate in candidates:
            citation = await self._verify_one(candidate, evidence_cache)
            logger.info(
                "citation_verified",
                marker=citation.marker,
                status=citation.status.value,
                article_id=citation.article_id,
            )
            citations.append(citation)
        return citations

    async def _verify_one(
        self, candidate: CitationCandidate, evidence_cache: dict[str, list[str]]
    ) -> Citation:
        parsed = parse_marker(candidate.marker)
        if parsed is None:
            return self._hallucinated(candidate, "Marker could not be parsed as a citation.")

        try:
            article = await self.resolve(parsed)
        except VerificationError as e:
            return self._hallucinated(candidate, f"Citation could not be resolved: {e}")
        except Exception as e:
            logger.warning("citation_resolution_failed", marker=candidate.marker, error=str(e))
            return self._hallucinated(candidate, f"Citation could not be resolved: {e}")

        if article is None:
            return self._hallucinated(
                candidate, f"No article titled {parsed.title!r} exists in the archive."
            )

        if article.article_id not in evidence_cache:
            evidence_cache[article.article_id] = await self._evidence(article)
        score, passage = best_support(candidate.claim_text, evidence_cache[article.article_id])

        if score >= self._threshold:
            preview = (passage or "")[:SOURCE_PREVIEW_CHARS]
            return Citation(
                marker=candidate.marker,
                claim_text=candidate.claim_text,
                status=CitationStatus.VALID,
                reason=f"Supported by {article.title!r} (support {score:.2f}): {preview}",
                article_id=article.article_id,
            )
        return Citation(
            marker=candidate.marker,
            claim_text=candidate.claim_text,
            status=CitationStatus.EXISTS_BUT_MISUSED,
            reason=(
                f"{article.title!r} exists but does not support the claim "
                f"(best support {score:.2f} < {self._threshold:.2f})."
            ),
            article_id=article.article_id,
        )

    async def resolve(self, parsed: ParsedMarker) -> Article | None:
        """Article by embedded id, else by title (and date, when given).

        Raises VerificationError when the title matches more than one article.
        """
        if parsed.article_id:
            article = await self._archive.get_article(parsed.article_id)
            if article is not None:
                return article

        matches = await self._archive.find_articles(parsed.title, parsed.publication_date)
        if not matches:
            return None
        if len(matches) > 1:
            raise VerificationError(
                f"{len(matches)} articles match {parsed.title!r}; add a date to disambiguate"
            )
        return matches[0]

    async def _evidence(self, article: Article) -> list[str]:
        passages: list[str] = []
        distillation = await self._archive.get_distillation_for_article(article.article_id)
        if distillation is not None:
            passages.append(distillation.thesis_statement)
            passages.extend(distillation.key_claims)
        chunks = await self._archive.get_chunks_by_article(article.article_id)
        passages.extend(c.content for c in chunks)
        return passages

    @staticmethod
    def _hallucinated(candidate: CitationCandidate, reason: str) -> Citation:
        return Citation(
            marker=candidate.marker,
            claim_text=candidate.claim_text,
            status=CitationStatus.HALLUCINATED,
            reason=reason,
        )


def build_accuracy_result(
    question: str, answer: str, citations: list[Citation]
) -> CitationAccuracyResult:
    counts = count_citations(citations)
    return CitationAccuracyResult(
        question=question,
        total_citations=counts.total,
        valid=counts.valid,
        misused=counts.misused,
        hallucinated=counts.hallucinated,
        accuracy_score=citation_accuracy(counts.valid, counts.total),
        details=citations,
        answer=answer,
    )
