"""Tests for citation verification against the archive."""

import pytest

from archive_rag.config.constants import NO_CITATIONS_ACCURACY
from archive_rag.models.domain import CitationCandidate, CitationStatus
from archive_rag.verification.citation_verifier import CitationVerifier, build_accuracy_result


@pytest.fixture
def verifier(archive):
    return CitationVerifier(archive=archive, faithfulness_threshold=0.5)


async def test_citation_of_missing_article_is_hallucinated(verifier):
    candidate = CitationCandidate(
        marker="[[The Platform Paradox | 2019-04-01]]",
        claim_text="Platforms always beat aggregators.",
    )
    citations = await verifier.verify([candidate])

    assert len(citations) == 1
    assert citations[0].status == CitationStatus.HALLUCINATED
    assert citations[0].marker == candidate.marker
    assert "The Platform Paradox" in citations[0].reason
    assert citations[0].article_id is None


async def test_supported_claim_is_valid(verifier):
    citations = await verifier.verify(
        [
            CitationCandidate(
                marker="[[Aggregation Theory | 2015-07-21]]",
                claim_text="Aggregators commoditize suppliers by controlling demand.",
            )
        ]
    )
    assert citations[0].status == CitationStatus.VALID
    assert citations[0].article_id == "agg"


async def test_claim_supported_by_chunk_is_valid(verifier):
    citations = await verifier.verify(
        [
            CitationCandidate(
                marker="[[Aggregation Theory | 2015-07-21]]",
                claim_text="The internet made distribution of digital goods free.",
            )
        ]
    )
    assert citations[0].status == CitationStatus.VALID


async def test_unsupported_claim_on_real_article_is_misused(verifier):
    citations = await verifier.verify(
        [
            CitationCandidate(
                marker="[[The Smiling Curve | 2014-01-15]]",
                claim_text="Railroad monopolies determined nineteenth century steel prices.",
            )
        ]
    )
    assert citations[0].status == CitationStatus.EXISTS_BUT_MISUSED
    assert citations[0].article_id == "smile"
    assert "does not support" in citations[0].reason


async def test_embedded_id_takes_precedence_over_title(verifier):
    citations = await verifier.verify(
        [
            CitationCandidate(
                marker="[[Renamed Title | 2015-07-21 | id:agg]]",
                claim_text="Aggregators commoditize suppliers by controlling demand.",
            )
        ]
    )
    assert citations[0].status == CitationStatus.VALID
    assert citations[0].article_id == "agg"


async def test_title_match_is_case_insensitive(verifier):
    citations = await verifier.verify(
        [
            CitationCandidate(
                marker="[[aggregation theory]]",
                claim_text="Aggregators commoditize suppliers by controlling demand.",
            )
        ]
    )
    assert citations[0].status == CitationStatus.VALID


async def test_ambiguous_title_degrades_to_hallucinated(verifier):
    citations = await verifier.verify(
        [CitationCandidate(marker="[[Weekly Notes]]", claim_text="Something was noted weekly.")]
    )
    assert citations[0].status == CitationStatus.HALLUCINATED
    assert citations[0].reason.startswith("Citation could not be resolved")


async def test_date_disambiguates_title(verifier):
    citations = await verifier.verify(
        [
            CitationCandidate(
                marker="[[Weekly Notes | 2021-06-07]]",
                claim_text="Something was noted weekly.",
            )
        ]
    )
    assert citations[0].status == CitationStatus.EXISTS_BUT_MISUSED
    assert citations[0].article_id == "notes-b"


async def test_wrong_date_is_hallucinated(verifier):
    citations = await verifier.verify(
        [
            CitationCandidate(
                marker="[[Aggregation Theory | 1999-01-01]]",
                claim_text="Aggregators commoditize suppliers.",
            )
        ]
    )
    assert citations[0].status == CitationStatus.HALLUCINATED


async def test_store_failure_degrades_single_citation(verifier, archive):
    archive.error = RuntimeError("database is locked")
    citations = await verifier.verify(
        [CitationCandidate(marker="[[Aggregation Theory]]", claim_text="Aggregators win.")]
    )
    assert citations[0].status == CitationStatus.HALLUCINATED
    assert "database is locked" in citations[0].reason


async def test_every_citation_gets_exactly_one_status(verifier):
    candidates = [
        CitationCandidate("[[Aggregation Theory]]", "Aggregators commoditize suppliers by controlling demand."),
        CitationCandidate("[[The Smiling Curve]]", "Railroads set steel prices."),
        CitationCandidate("[[No Such Piece]]", "Anything."),
        CitationCandidate("[[Weekly Notes]]", "Ambiguous."),
        CitationCandidate("not a marker", "Unparseable."),
    ]
    citations = await verifier.verify(candidates)

    assert len(citations) == len(candidates)
    for citation in citations:
        assert isinstance(citation.status, CitationStatus)
    assert [c.status for c in citations] == [
        CitationStatus.VALID,
        CitationStatus.EXISTS_BUT_MISUSED,
        CitationStatus.HALLUCINATED,
        CitationStatus.HALLUCINATED,
        CitationStatus.HALLUCINATED,
    ]


async def test_accuracy_result_counts(verifier):
    citations = await verifier.verify(
        [
            CitationCandidate("[[Aggregation Theory]]", "Aggregators commoditize suppliers by controlling demand."),
            CitationCandidate("[[The Smiling Curve]]", "Railroads set steel prices."),
            CitationCandidate("[[No Such Piece]]", "Anything."),
            CitationCandidate("[[The Smiling Curve]]", "The smiling curve was coined by Stan Shih of Acer."),
        ]
    )
    result = build_accuracy_result("q", "answer", citations)
    assert (result.total_citations, result.valid, result.misused, result.hallucinated) == (4, 2, 1, 1)
    assert result.accuracy_score == 0.5


def test_accuracy_result_without_citations_uses_sentinel():
    result = build_accuracy_result("q", "An answer with no markers.", [])
    assert result.total_citations == 0
    assert result.accuracy_score == NO_CITATIONS_ACCURACY == 0.0
