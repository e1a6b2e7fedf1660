"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from archive_rag.models.domain import (
    AnswerResponse,
    Article,
    Chunk,
    Citation,
    CitationAccuracyResult,
    CitationAccuracyRun,
    CitationStatus,
    Distillation,
    EvalExample,
    EvalResult,
    EvalRun,
    QueryMode,
    ResultStatus,
    RetrievalResult,
    RetrievalTier,
    RoutingDecision,
    RunStatus,
    Source,
    SourceType,
)

# Requests


class QueryRequest(BaseModel):
    question: str
    limit: int = Field(default=5, ge=1, le=50)
    threshold: float = Field(default=0.30, ge=0.0, le=1.0)
    mode: QueryMode = QueryMode.AUTO


class InspectRequest(BaseModel):
    query: str
    limit: int = Field(default=5, ge=1, le=50)
    threshold: float = Field(default=0.30, ge=0.0, le=1.0)


class EvalExampleCreate(BaseModel):
    question: str
    category: str | None = None
    difficulty: str | None = None


class EvalRunRequest(BaseModel):
    mode: QueryMode = QueryMode.AUTO
    limit: int = Field(default=5, ge=1, le=50)
    threshold: float = Field(default=0.30, ge=0.0, le=1.0)


class CitationAccuracyRequest(BaseModel):
    question: str
    limit: int = Field(default=5, ge=1, le=50)
    threshold: float = Field(default=0.30, ge=0.0, le=1.0)


class CitationBatchRequest(BaseModel):
    limit: int = Field(default=5, ge=1, le=50)
    threshold: float = Field(default=0.30, ge=0.0, le=1.0)


# Retrieval


class RoutingDecisionOut(BaseModel):
    distillation_max_score: float | None
    chunk_max_score: float | None
    tier_used: RetrievalTier
    needs_precision: bool
    reasoning: str

    @classmethod
    def from_domain(cls, decision: RoutingDecision) -> RoutingDecisionOut:
        return cls(
            distillation_max_score=decision.distillation_max_score,
            chunk_max_score=decision.chunk_max_score,
            tier_used=decision.tier_used,
            needs_precision=decision.needs_precision,
            reasoning=decision.reasoning,
        )


class KeyClaim(BaseModel):
    claim: str


class ArticleOut(BaseModel):
    article_id: str
    title: str
    publication_date: date | None
    word_count: int

    @classmethod
    def from_domain(cls, article: Article) -> ArticleOut:
        return cls(
            article_id=article.article_id,
            title=article.title,
            publication_date=article.publication_date,
            word_count=article.word_count,
        )


class DistillationOut(BaseModel):
    distillation_id: str
    article_id: str
    thesis_statement: str
    key_claims: list[KeyClaim]
    topics: list[str]
    entities: dict[str, list[str]]
    confidence_score: float

    @classmethod
    def from_domain(cls, d: Distillation) -> DistillationOut:
        return cls(
            distillation_id=d.distillation_id,
            article_id=d.article_id,
            thesis_statement=d.thesis_statement,
            key_claims=[KeyClaim(claim=c) for c in d.key_claims],
            topics=list(d.topics),
            entities=d.entities,
            confidence_score=d.confidence_score,
        )


class ChunkOut(BaseModel):
    chunk_id: str
    article_id: str
    chunk_index: int
    content: str
    token_count: int

    @classmethod
    def from_domain(cls, c: Chunk) -> ChunkOut:
        return cls(
            chunk_id=c.chunk_id,
            article_id=c.article_id,
            chunk_index=c.chunk_index,
            content=c.content,
            token_count=c.token_count,
        )


class RetrievalResultOut(BaseModel):
    """A ranked hit, flattened with its article's title and date."""

    type: SourceType
    article_id: str
    title: str | None
    publication_date: date | None
    similarity: float
    above_threshold: bool
    # Distillation hits
    distillation_id: str | None = None
    thesis_statement: str | None = None
    key_claims: list[KeyClaim] | None = None
    topics: list[str] | None = None
    confidence_score: float | None = None
    # Chunk hits
    chunk_id: str | None = None
    chunk_index: int | None = None
    content: str | None = None
    token_count: int | None = None

    @classmethod
    def from_domain(cls, r: RetrievalResult) -> RetrievalResultOut:
        article = r.article
        fields = dict(
            type=r.source_type,
            article_id=r.article_id,
            title=article.title if article else None,
            publication_date=article.publication_date if article else None,
            similarity=r.similarity,
            above_threshold=r.above_threshold,
        )
        item = r.item
        if isinstance(item, Distillation):
            fields.update(
                distillation_id=item.distillation_id,
                thesis_statement=item.thesis_statement,
                key_claims=[KeyClaim(claim=c) for c in item.key_claims],
                topics=list(item.topics),
                confidence_score=item.confidence_score,
            )
        else:
            fields.update(
                chunk_id=item.chunk_id,
                chunk_index=item.chunk_index,
                content=item.content,
                token_count=item.token_count,
            )
        return cls(**fields)


class InspectResponse(BaseModel):
    decision: RoutingDecisionOut
    distillations: list[RetrievalResultOut]
    chunks: list[RetrievalResultOut]
    distillation_count: int
    distillations_above_threshold: int
    chunk_count: int
    chunks_above_threshold: int


class ComparisonStats(BaseModel):
    total_chunks: int


class ArticleComparisonResponse(BaseModel):
    article: ArticleOut
    distillation: DistillationOut | None
    chunks: list[ChunkOut]
    stats: ComparisonStats


class EmbeddingStatsResponse(BaseModel):
    total_articles: int
    total_distillations: int
    total_distillation_embeddings: int
    total_chunks: int
    total_chunk_embeddings: int


class DistillationSearchHit(BaseModel):
    distillation_id: str
    article_id: str
    title: str | None
    publication_date: date | None
    thesis_statement: str
    key_claims: list[KeyClaim]
    topics: list[str]
    similarity: float


class DistillationSearchResponse(BaseModel):
    query: str
    threshold: float
    results: list[DistillationSearchHit]


# Answers


class SourceOut(BaseModel):
    type: SourceType
    article_id: str
    title: str
    date: str | None
    similarity: float
    topics: list[str] = Field(default_factory=list)
    thesis_statement: str | None = None
    content: str | None = None

    @classmethod
    def from_domain(cls, s: Source) -> SourceOut:
        return cls(
            type=s.type,
            article_id=s.article_id,
            title=s.title,
            date=s.date,
            similarity=s.similarity,
            topics=s.topics,
            thesis_statement=s.thesis_statement,
            content=s.content,
        )


class CitationOut(BaseModel):
    marker: str
    claim_text: str
    status: CitationStatus
    reason: str
    article_id: str | None = None

    @classmethod
    def from_domain(cls, c: Citation) -> CitationOut:
        return cls(
            marker=c.marker,
            claim_text=c.claim_text,
            status=c.status,
            reason=c.reason,
            article_id=c.article_id,
        )


class AnswerResponseOut(BaseModel):
    answer: str
    retrieval_tier: RetrievalTier
    sources: list[SourceOut]
    decision: RoutingDecisionOut | None = None
    citations: list[CitationOut] | None = None

    @classmethod
    def from_domain(cls, r: AnswerResponse) -> AnswerResponseOut:
        return cls(
            answer=r.answer,
            retrieval_tier=r.retrieval_tier,
            sources=[SourceOut.from_domain(s) for s in r.sources],
            decision=RoutingDecisionOut.from_domain(r.decision) if r.decision else None,
            citations=(
                [CitationOut.from_domain(c) for c in r.citations]
                if r.citations is not None
                else None
            ),
        )


# Evaluation


class EvalExampleOut(BaseModel):
    example_id: str
    question: str
    category: str | None
    difficulty: str | None
    created_at: datetime

    @classmethod
    def from_domain(cls, e: EvalExample) -> EvalExampleOut:
        return cls(
            example_id=e.example_id,
            question=e.question,
            category=e.category,
            difficulty=e.difficulty,
            created_at=e.created_at,
        )


class EvalRunOut(BaseModel):
    run_id: str
    started_at: datetime
    completed_at: datetime | None
    status: RunStatus
    incomplete: bool
    mode: str
    limit: int
    threshold: float
    total_examples: int
    scored_examples: int
    excluded_examples: int
    avg_score: float | None

    @classmethod
    def from_domain(cls, run: EvalRun) -> EvalRunOut:
        return cls(
            run_id=run.run_id,
            started_at=run.started_at,
            completed_at=run.completed_at,
            status=run.status,
            incomplete=run.incomplete,
            mode=run.mode,
            limit=run.limit,
            threshold=run.threshold,
            total_examples=run.total_examples,
            scored_examples=run.scored_examples,
            excluded_examples=run.excluded_examples,
            avg_score=run.avg_score,
        )


class EvalResultOut(BaseModel):
    result_id: str
    run_id: str
    example_id: str
    question: str
    status: ResultStatus
    retrieval_tier: RetrievalTier | None
    relevance_score: float | None
    faithfulness_score: float | None
    completeness_score: float | None
    avg_score: float | None
    judge_reasoning: str | None
    answer: str | None
    error: str | None

    @classmethod
    def from_domain(cls, r: EvalResult) -> EvalResultOut:
        return cls(
            result_id=r.result_id,
            run_id=r.run_id,
            example_id=r.example_id,
            question=r.question,
            status=r.status,
            retrieval_tier=r.retrieval_tier,
            relevance_score=r.relevance_score,
            faithfulness_score=r.faithfulness_score,
            completeness_score=r.completeness_score,
            avg_score=r.avg_score,
            judge_reasoning=r.judge_reasoning,
            answer=r.answer,
            error=r.error,
        )


class EvalRunDetail(BaseModel):
    run: EvalRunOut
    results: list[EvalResultOut]


class CitationAccuracyResultOut(BaseModel):
    result_id: str | None = None
    run_id: str | None = None
    example_id: str | None = None
    question: str
    status: ResultStatus
    total_citations: int
    valid: int
    misused: int
    hallucinated: int
    accuracy_score: float
    details: list[CitationOut]
    answer: str
    error: str | None = None

    @classmethod
    def from_domain(cls, r: CitationAccuracyResult) -> CitationAccuracyResultOut:
        return cls(
            result_id=r.result_id,
            run_id=r.run_id,
            example_id=r.example_id,
            question=r.question,
            status=r.status,
            total_citations=r.total_citations,
            valid=r.valid,
            misused=r.misused,
            hallucinated=r.hallucinated,
            accuracy_score=r.accuracy_score,
            details=[CitationOut.from_domain(c) for c in r.details],
            answer=r.answer,
            error=r.error,
        )


class CitationAccuracyRunOut(BaseModel):
    run_id: str
    started_at: datetime
    completed_at: datetime | None
    status: RunStatus
    incomplete: bool
    total_examples: int
    scored_examples: int
    excluded_examples: int
    total_citations: int
    valid_citations: int
    misused_citations: int
    hallucinated_citations: int
    overall_accuracy: float

    @classmethod
    def from_domain(cls, run: CitationAccuracyRun) -> CitationAccuracyRunOut:
        return cls(
            run_id=run.run_id,
            started_at=run.started_at,
            completed_at=run.completed_at,
            status=run.status,
            incomplete=run.incomplete,
            total_examples=run.total_examples,
            scored_examples=run.scored_examples,
            excluded_examples=run.excluded_examples,
            total_citations=run.total_citations,
            valid_citations=run.valid_citations,
            misused_citations=run.misused_citations,
            hallucinated_citations=run.hallucinated_citations,
            overall_accuracy=run.overall_accuracy,
        )


class CitationAccuracyRunDetail(BaseModel):
    run: CitationAccuracyRunOut
    results: list[CitationAccuracyResultOut]


# Health / errors


class HealthResponse(BaseModel):
    status: str
    article_count: int
    distillation_index_size: int
    chunk_index_size: int


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorBody
    decision: RoutingDecisionOut | None = None
