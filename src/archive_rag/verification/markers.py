"""Inline citation markers: formatting, parsing and extraction from answer text.

Format: ``[[Title | YYYY-MM-DD]]`` or ``[[Title | YYYY-MM-DD | id:<article_id>]]``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from archive_rag.config.constants import CITATION_MARKER_PATTERN
from archive_rag.models.domain import Article, CitationCandidate

MARKER_RE = re.compile(CITATION_MARKER_PATTERN)
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


@dataclass(frozen=True)
class ParsedMarker:
    title: str
    publication_date: date | None
    article_id: str | None


def format_marker(article: Article) -> str:
    parts = [article.title.replace("|", "/").replace("]", ")")]
    if article.publication_date:
        parts.append(article.publication_date.isoformat())
    parts.append(f"id:{article.article_id}")
    return "[[" + " | ".join(parts) + "]]"


def parse_marker(marker: str) -> ParsedMarker | None:
    match = MARKER_RE.fullmatch(marker.strip())
    if match is None:
        return None
    raw_date = match.group("date")
    try:
        published = date.fromisoformat(raw_date) if raw_date else None
    except ValueError:
        published = None
    return ParsedMarker(
        title=match.group("title").strip(),
        publication_date=published,
        article_id=match.group("article_id"),
    )


def split_sentences_outside_markers(text: str) -> list[str]:
    """Split on sentence-ending punctuation, never inside a ``[[...]]`` marker."""
    spans = [m.span() for m in MARKER_RE.finditer(text)]
    sentences: list[str] = []
    start = 0
    for gap in _SENTENCE_END.finditer(text):
        if any(lo < gap.start() < hi for lo, hi in spans):
            continue
        sentences.append(text[start : gap.start()])
        start = gap.end()
    sentences.append(text[start:])
    return sentences


def strip_markers(text: str) -> str:
    return re.sub(r"\s{2,}", " ", MARKER_RE.sub("", text)).strip()


def extract_citations(text: str) -> list[CitationCandidate]:
    """One candidate per marker occurrence; the claim is the sentence it closes."""
    candidates: list[CitationCandidate] = []
    for paragraph in text.split("\n"):
        for sentence in split_sentences_outside_markers(paragraph):
            markers = [m.group(0) for m in MARKER_RE.finditer(sentence)]
            if not markers:
                continue
            claim = strip_markers(sentence)
            for marker in markers:
                candidates.append(CitationCandidate(marker=marker, claim_text=claim))
    return candidates
