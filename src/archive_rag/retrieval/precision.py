"""Heuristic for queries that need raw text rather than article summaries."""

from __future__ import annotations

import re

from archive_rag.config.constants import ARTIFACT_PATTERNS, DATE_PATTERNS, QUOTE_PATTERNS

_QUOTE = [re.compile(p, re.I) for p in QUOTE_PATTERNS]
_DATE = [re.compile(p, re.I) for p in DATE_PATTERNS]
_ARTIFACT = [re.compile(p, re.I) for p in ARTIFACT_PATTERNS]


def precision_signals(query: str) -> list[str]:
    """Names of the precision signals present in the query, in fixed order."""
    signals = []
    if any(p.search(query) for p in _QUOTE):
        signals.append("quote")
    if any(p.search(query) for p in _DATE):
        signals.append("exact date")
    if any(p.search(query) for p in _ARTIFACT):
        signals.append("named piece")
    return signals


def needs_precision(query: str) -> bool:
    return bool(precision_signals(query))
