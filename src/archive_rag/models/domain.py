"""Core domain objects used throughout the system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum


class RetrievalTier(str, Enum):
    DISTILLATIONS = "distillations"
    CHUNKS = "chunks"
    HYBRID = "hybrid"
    REASONING_FIRST = "reasoning-first"
    NONE = "none"
    REFUSED = "refused"


class IndexTier(str, Enum):
    """The two searchable content tiers."""

    DISTILLATIONS = "distillations"
    CHUNKS = "chunks"


class SourceType(str, Enum):
    DISTILLATION = "distillation"
    CHUNK = "chunk"


class QueryMode(str, Enum):
    AUTO = "auto"
    REASONING = "reasoning"


class CitationStatus(str, Enum):
    VALID = "valid"
    EXISTS_BUT_MISUSED = "exists_but_misused"
    HALLUCINATED = "hallucinated"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"


class ResultStatus(str, Enum):
    SCORED = "scored"
    EXCLUDED = "excluded"


# Archive (owned by ingestion, read-only here)


@dataclass(frozen=True)
class Article:
    article_id: str
    title: str
    publication_date: date | None
    word_count: int = 0


@dataclass
class Distillation:
    distillation_id: str
    article_id: str
    thesis_statement: str
    key_claims: list[str]
    topics: list[str]
    entities: dict[str, list[str]]
    confidence_score: float
    embedding: list[float] | None = None


@dataclass
class Chunk:
    chunk_id: str
    article_id: str
    chunk_index: int
    content: str
    token_count: int
    embedding: list[float] | None = None


# Retrieval


@dataclass
class RetrievalResult:
    item: Distillation | Chunk
    similarity: float
    above_threshold: bool
    article: Article | None = None

    @property
    def source_type(self) -> SourceType:
        if isinstance(self.item, Distillation):
            return SourceType.DISTILLATION
        return SourceType.CHUNK

    @property
    def article_id(self) -> str:
        return self.item.article_id


@dataclass
class RoutingDecision:
    distillation_max_score: float | None
    chunk_max_score: float | None
    tier_used: RetrievalTier
    needs_precision: bool
    reasoning: str


@dataclass
class RouteOutcome:
    decision: RoutingDecision
    distillations: list[RetrievalResult]
    chunks: list[RetrievalResult]

    def above_threshold(self) -> list[RetrievalResult]:
        return [r for r in self.distillations + self.chunks if r.above_threshold]


# Answers


@dataclass
class Source:
    type: SourceType
    article_id: str
    title: str
    date: str | None
    similarity: float
    topics: list[str] = field(default_factory=list)
    thesis_statement: str | None = None
    content: str | None = None


@dataclass
class Citation:
    marker: str
    claim_text: str
    status: CitationStatus
    reason: str
    article_id: str | None = None


@dataclass
class CitationCandidate:
    """A marker found in an answer, before verification."""

    marker: str
    claim_text: str


@dataclass
class AnswerResponse:
    answer: str
    retrieval_tier: RetrievalTier
    sources: list[Source]
    decision: RoutingDecision | None = None
    citations: list[Citation] | None = None


# Reasoning-first pipeline artifacts


@dataclass
class DraftAnswer:
    question: str
    text: str


@dataclass
class Claim:
    claim_id: int
    paragraph_index: int
    sentence_index: int
    text: str


@dataclass
class ClaimSet:
    draft: DraftAnswer
    claims: list[Claim]


@dataclass
class EvidenceMap:
    claim_set: ClaimSet
    evidence: dict[int, list[RetrievalResult]]

    def best(self, claim_id: int) -> RetrievalResult | None:
        hits = [r for r in self.evidence.get(claim_id, []) if r.above_threshold]
        if not hits:
            return None
        return max(hits, key=lambda r: r.similarity)


@dataclass
class CitedAnswer:
    question: str
    text: str
    sources: list[Source]
    inserted_markers: int


# Evaluation


@dataclass
class EvalExample:
    example_id: str
    question: str
    category: str | None = None
    difficulty: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class EvalResult:
    result_id: str
    run_id: str
    example_id: str
    question: str
    status: ResultStatus
    position: int = 0
    retrieval_tier: RetrievalTier | None = None
    relevance_score: float | None = None
    faithfulness_score: float | None = None
    completeness_score: float | None = None
    avg_score: float | None = None
    judge_reasoning: str | None = None
    answer: str | None = None
    error: str | None = None


@dataclass
class EvalRun:
    run_id: str
    started_at: datetime
    total_examples: int
    status: RunStatus = RunStatus.RUNNING
    mode: str = QueryMode.AUTO.value
    limit: int = 5
    threshold: float = 0.3
    scored_examples: int = 0
    excluded_examples: int = 0
    avg_score: float | None = None
    completed_at: datetime | None = None

    @property
    def incomplete(self) -> bool:
        return self.status == RunStatus.INCOMPLETE


@dataclass
class CitationAccuracyResult:
    question: str
    total_citations: int
    valid: int
    misused: int
    hallucinated: int
    accuracy_score: float
    details: list[Citation]
    answer: str = ""
    example_id: str | None = None
    result_id: str | None = None
    run_id: str | None = None
    position: int = 0
    status: ResultStatus = ResultStatus.SCORED
    error: str | None = None


@dataclass
class CitationAccuracyRun:
    run_id: str
    started_at: datetime
    total_examples: int
    status: RunStatus = RunStatus.RUNNING
    total_citations: int = 0
    valid_citations: int = 0
    misused_citations: int = 0
    hallucinated_citations: int = 0
    overall_accuracy: float = 0.0
    scored_examples: int = 0
    excluded_examples: int = 0
    completed_at: datetime | None = None

    @property
    def incomplete(self) -> bool:
        return self.status == RunStatus.INCOMPLETE
