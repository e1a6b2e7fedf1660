"""Fixed values that are not worth exposing as settings."""

from __future__ import annotations

# Precision heuristic: queries that need verbatim text, exact dates or a
# specific named piece rather than an article-level summary.
QUOTE_PATTERNS = (
    r"\bquote[sd]?\b",
    r"\bverbatim\b",
    r"\bword[- ]for[- ]word\b",
    r"\bexact (?:words|wording|phrase|phrasing|sentence)\b",
    r"\bexactly what\b.*\b(?:said|wrote|write|say)\b",
)
DATE_PATTERNS = (
    r"\b\d{4}-\d{2}-\d{2}\b",
    r"\b(?:january|february|march|april|may|june|july|august|september|october|november|december)"
    r"\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}\b",
    r"\b\d{1,2}/\d{1,2}/\d{2,4}\b",
)
ARTIFACT_PATTERNS = (
    r"\"[^\"]{3,}\"",
    r"“[^”]{3,}”",
    r"\b(?:article|post|piece|essay|update|interview) (?:titled|called|named)\b",
    r"\bwhich (?:article|post|piece|essay)\b",
    r"\bin the (?:article|post|piece|essay|update) (?:about|on|from)\b",
)

# Default content policy: requests to reproduce whole articles.
REFUSAL_PATTERNS = (
    r"\b(?:full|entire|complete|whole) (?:text|article|post|essay|transcript)\b",
    r"\b(?:reproduce|copy|paste|dump)\b.*\b(?:article|post|essay)s?\b",
    r"\bverbatim (?:copy|reproduction|text) of\b",
    r"\bwithout (?:summari[sz]ing|paraphrasing)\b",
)
REFUSAL_ANSWER = (
    "I can't reproduce articles in full. I can summarize the argument, "
    "quote short passages, or point you to the relevant pieces instead."
)
UNGROUNDED_NOTICE = "No relevant content was found in the archive for this question."

# Citation marker: [[Title | 2021-03-04]] or [[Title | 2021-03-04 | id:abc]]
CITATION_MARKER_PATTERN = (
    r"\[\[\s*(?P<title>[^\]|]+?)\s*"
    r"(?:\|\s*(?P<date>\d{4}-\d{2}-\d{2})\s*)?"
    r"(?:\|\s*id:(?P<article_id>[^\]\s|]+)\s*)?\]\]"
)

# Zero citations score 0.0, the same convention as run-level overall_accuracy.
NO_CITATIONS_ACCURACY = 0.0

# LLM judge rubric bounds
JUDGE_MIN_SCORE = 1.0
JUDGE_MAX_SCORE = 5.0

MAX_CONTEXT_CHARS_PER_ITEM = 2000
SOURCE_PREVIEW_CHARS = 500

STOPWORDS = frozenset({
    "a", "an", "the", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "can", "shall", "to", "of", "in", "for",
    "on", "with", "at", "by", "from", "as", "into", "about", "between",
    "through", "after", "before", "and", "but", "or", "nor", "not", "so",
    "yet", "both", "either", "neither", "each", "every", "all", "any",
    "few", "more", "most", "other", "some", "such", "no", "only", "own",
    "same", "than", "too", "very", "just", "because", "if", "when",
    "where", "how", "what", "which", "who", "whom", "this", "that",
    "these", "those", "it", "its", "i", "me", "my", "we", "our", "you",
    "your", "he", "him", "his", "she", "her", "they", "them", "their",
    "there", "then", "also", "while", "which", "s", "t",
})
