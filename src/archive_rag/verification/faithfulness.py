"""Lexical faithfulness: does a claim restate something the cited article says?"""

from __future__ import annotations

import re

from archive_rag.config.constants import STOPWORDS


def tokenize(text: str) -> list[str]:
    """Lowercase, strip punctuation, remove stopwords and single characters."""
    text = text.lower()
    text = re.sub(r"[^\w\s]", " ", text)
    return [t for t in text.split() if t not in STOPWORDS and len(t) > 1]


def _normalize(text: str) -> str:
    return " ".join(re.sub(r"[^\w\s]", " ", text.lower()).split())


def support_score(claim: str, passage: str) -> float:
    """Share of the claim's content words found in the passage, 1.0 for a verbatim match."""
    normalized_claim = _normalize(claim)
    if normalized_claim and normalized_claim in _normalize(passage):
        return 1.0
    claim_terms = set(tokenize(claim))
    if not claim_terms:
        return 0.0
    passage_terms = set(tokenize(passage))
    return len(claim_terms & passage_terms) / len(claim_terms)


def best_support(claim: str, passages: list[str]) -> tuple[float, str | None]:
    """Highest-scoring passage for the claim, and its score."""
    best_score, best_passage = 0.0, None
    for passage in passages:
        score = support_score(claim, passage)
        if score > best_score:
            best_score, best_passage = score, passage
            if score == 1.0:
                break
    return best_score, best_passage
