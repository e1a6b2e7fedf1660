"""Reasoning-first answering: draft → claims → evidence → cited answer.

Each stage takes the previous stage's artifact and returns the next one.
Only ``draft`` and ``gather_evidence`` call out to the LLM or the index;
``extract_claims`` and ``merge`` are pure.
"""

from __future__ import annotations

import asyncio
import re

from archive_rag.exceptions import GenerationError
from archive_rag.generation.prompt_templates import (
    REASONING_DRAFT_PROMPT,
    REASONING_DRAFT_SYSTEM,
    format_frameworks,
)
from archive_rag.generation.sources import dedupe_by_article, to_source
from archive_rag.models.domain import (
    CitedAnswer,
    Claim,
    ClaimSet,
    DraftAnswer,
    EvidenceMap,
    RetrievalResult,
)
from archive_rag.observability.logger import get_logger
from archive_rag.protocols.llm import LLMProvider
from archive_rag.retrieval.router import RetrievalRouter
from archive_rag.verification.markers import (
    MARKER_RE,
    format_marker,
    split_sentences_outside_markers,
    strip_markers,
)

logger = get_logger("reasoning")

_TRAILING_PUNCT = re.compile(r"^(?P<body>.*?)(?P<punct>[.!?][\"')\]]*)$", re.S)


def split_sentences(text: str) -> list[list[str]]:
    """Paragraphs (one per line) of sentences. Blank lines become empty paragraphs."""
    paragraphs = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped:
            paragraphs.append([])
            continue
        paragraphs.append([s for s in split_sentences_outside_markers(stripped) if s])
    return paragraphs


def join_sentences(paragraphs: list[list[str]]) -> str:
    return "\n".join(" ".join(sentences) for sentences in paragraphs)


def insert_marker(sentence: str, marker: str) -> str:
    """Place the marker just before the sentence's closing punctuation."""
    stripped = sentence.rstrip()
    match = _TRAILING_PUNCT.match(stripped)
    if match and match.group("body"):
        return f"{match.group('body').rstrip()} {marker}{match.group('punct')}"
    return f"{stripped} {marker}"


class ReasoningPipeline:
    def __init__(
        self,
        llm: LLMProvider,
        router: RetrievalRouter,
        max_claims: int = 12,
        claim_min_words: int = 6,
        concurrency: int = 4,
    ) -> None:
        self._llm = llm
        self._router = router
        self._max_claims = max_claims
        self._claim_min_words = claim_min_words
        self._concurrency = max(1, concurrency)

    async def run(self, question: str, threshold: float, limit: int) -> CitedAnswer:
        draft = await self.draft(question)
        claim_set = self.extract_claims(draft)
        evidence = await self.gather_evidence(claim_set, threshold, limit)
        return self.merge(evidence)

    async def draft(self, question: str) -> DraftAnswer:
        system = REASONING_DRAFT_SYSTEM.format(frameworks=format_frameworks())
        prompt = REASONING_DRAFT_PROMPT.format(question=question)
        text = await self._llm.generate(prompt, system=system)
        if not text.strip():
            raise GenerationError("Reasoning draft came back empty")
        logger.info("reasoning_draft", answer_len=len(text))
        return DraftAnswer(question=question, text=text.strip())

    def extract_claims(self, draft: DraftAnswer) -> ClaimSet:
        """Declarative sentences long enough to be checkable, in reading order."""
        claims: list[Claim] = []
        for p_idx, sentences in enumerate(split_sentences(draft.text)):
            for s_idx, sentence in enumerate(sentences):
                text = strip_markers(sentence).lstrip("#>-*• ").strip()
                if text.endswith("?") or len(text.split()) < self._claim_min_words:
                    continue
                claims.append(
                    Claim(
                        claim_id=len(claims),
                        paragraph_index=p_idx,
                        sentence_index=s_idx,
                        text=text,
                    )
                )
                if len(claims) >= self._max_claims:
                    return ClaimSet(draft=draft, claims=claims)
        return ClaimSet(draft=draft, claims=claims)

    async def gather_evidence(
        self, claim_set: ClaimSet, threshold: float, limit: int
    ) -> EvidenceMap:
        """Route every claim independently, at most ``concurrency`` at a time."""
        semaphore = asyncio.Semaphore(self._concurrency)

        async def lookup(claim: Claim) -> tuple[int, list[RetrievalResult]]:
            async with semaphore:
                outcome = await self._router.route(claim.text, threshold, limit)
            return claim.claim_id, outcome.above_threshold()

        pairs = await asyncio.gather(*(lookup(c) for c in claim_set.claims))
        evidence = dict(pairs)
        logger.info(
            "claim_evidence",
            claims=len(claim_set.claims),
            supported=sum(1 for hits in evidence.values() if hits),
        )
        return EvidenceMap(claim_set=claim_set, evidence=evidence)

    @staticmethod
    def merge(evidence_map: EvidenceMap) -> CitedAnswer:
        """Cite each supported claim with its best article; collect distinct sources."""
        claim_set = evidence_map.claim_set
        paragraphs = split_sentences(claim_set.draft.text)
        inserted = 0
        touched: list[RetrievalResult] = []

        for claim in claim_set.claims:
            best = evidence_map.best(claim.claim_id)
            if best is None or best.article is None:
                continue
            touched.extend(r for r in evidence_map.evidence[claim.claim_id] if r.above_threshold)
            sentence = paragraphs[claim.paragraph_index][claim.sentence_index]
            already_cited = any(
                m.group("article_id") == best.article_id for m in MARKER_RE.finditer(sentence)
            )
            if already_cited:
                continue
            paragraphs[claim.paragraph_index][claim.sentence_index] = insert_marker(
                sentence, format_marker(best.article)
            )
            inserted += 1

        sources = [to_source(r) for r in dedupe_by_article(touched) if r.article is not None]
        return CitedAnswer(
            question=claim_set.draft.question,
            text=join_sentences(paragraphs),
            sources=sources,
            inserted_markers=inserted,
        )
