"""All prompt templates for answering and judging."""

from __future__ import annotations

from archive_rag.config.constants import MAX_CONTEXT_CHARS_PER_ITEM
from archive_rag.models.domain import Distillation, RetrievalResult, Source

RAG_ANSWER_SYSTEM = """You answer questions about an archive of analytical articles.
Rules:
- Answer ONLY from the supplied context. Do not use outside knowledge.
- Refer to sources by their number, e.g. [1], [2].
- If the context does not contain enough information, say so plainly and stop.
- When the question asks for exact wording or dates, use chunk excerpts, not summaries.
- Be concise and direct."""

RAG_ANSWER_PROMPT = """Question: {question}

Context:
{context_block}

Answer the question using only the context above."""

UNGROUNDED_ANSWER_SYSTEM = """You answer questions about an archive of analytical articles.
No relevant archive content was found for this question.
Rules:
- Say clearly that the archive does not cover this question.
- You may give brief general orientation, but label it as not grounded in the archive.
- Never invent article titles, dates or quotations."""

UNGROUNDED_ANSWER_PROMPT = """Question: {question}

No grounding found in the archive. Respond accordingly."""

REASONING_DRAFT_SYSTEM = """You are an analyst writing in the style of the archive's author.
Reason through the question using named analytical frameworks where they apply:
{frameworks}.
Rules:
- Name the framework you are applying and explain the mechanism, not just the conclusion.
- Write in short paragraphs, one idea per paragraph.
- If you refer to a specific past article, write it as [[Article Title | YYYY-MM-DD]].
- Do not add any other citation format."""

REASONING_DRAFT_PROMPT = """Question: {question}

Write your analysis."""

ANALYTICAL_FRAMEWORKS = (
    "Aggregation Theory",
    "the Smiling Curve",
    "Disruption Theory",
    "Platforms vs. Aggregators",
    "Incentives and business-model alignment",
    "Integration vs. modularization",
)

JUDGE_SYSTEM = """You are a strict evaluator of answers produced by a retrieval-augmented system.
Score each dimension from 1 (worst) to 5 (best); half points are allowed.
- relevance: does the answer address the question that was asked?
- faithfulness: is every claim supported by the supplied sources? Unsupported claims lower the score.
- completeness: does the answer cover the important aspects the sources make available?
Return JSON with keys relevance, faithfulness, completeness, reasoning."""

JUDGE_PROMPT = """Question: {question}

Retrieval tier used: {tier}

Sources given to the system:
{context_block}

Answer to evaluate:
{answer}

Score the answer."""


def format_result_text(result: RetrievalResult) -> str:
    item = result.item
    if isinstance(item, Distillation):
        lines = [f"Thesis: {item.thesis_statement}"]
        lines.extend(f"- {claim}" for claim in item.key_claims)
        text = "\n".join(lines)
    else:
        text = item.content
    return text[:MAX_CONTEXT_CHARS_PER_ITEM]


def format_context_block(results: list[RetrievalResult]) -> str:
    """Number each retrieved item with its tier, title and date."""
    if not results:
        return "(no sources)"
    blocks = []
    for i, result in enumerate(results, 1):
        article = result.article
        title = article.title if article else "Unknown article"
        published = (
            article.publication_date.isoformat()
            if article and article.publication_date
            else "undated"
        )
        blocks.append(
            f"[{i}] ({result.source_type.value}) {title}, {published}\n{format_result_text(result)}"
        )
    return "\n\n".join(blocks)


def format_frameworks(frameworks: tuple[str, ...] = ANALYTICAL_FRAMEWORKS) -> str:
    return ", ".join(frameworks)


def format_sources_block(sources: list[Source]) -> str:
    """Sources as returned to the client, numbered for the judge."""
    if not sources:
        return "(no sources)"
    blocks = []
    for i, source in enumerate(sources, 1):
        body = source.thesis_statement or source.content or ""
        blocks.append(
            f"[{i}] ({source.type.value}) {source.title or 'Unknown article'}, "
            f"{source.date or 'undated'}\n{body}"
        )
    return "\n\n".join(blocks)
