"""Protocol for pre-retrieval content policy checks."""

from __future__ import annotations

from typing import Protocol


class ContentPolicy(Protocol):
    def check(self, query: str) -> str | None:
        """Return a refusal reason, or None when the query may proceed."""
        ...
