"""Shared test fixtures: settings, a sample archive and in-memory fakes for the external collaborators."""

from __future__ import annotations

import tempfile
from datetime import date
from pathlib import Path

import pytest

from archive_rag.config.settings import Settings
from archive_rag.exceptions import GenerationError
from archive_rag.generation.answer_generator import AnswerGenerator
from archive_rag.generation.reasoning import ReasoningPipeline
from archive_rag.models.domain import Article, Chunk, Distillation, IndexTier
from archive_rag.pipeline.query_pipeline import QueryPipeline
from archive_rag.retrieval.content_policy import CopyrightPolicy
from archive_rag.retrieval.router import RetrievalRouter
from archive_rag.verification.citation_verifier import CitationVerifier


class FakeIndex:
    """Scripted two-tier index. ``results`` applies to every query unless ``by_query`` has it."""

    def __init__(self) -> None:
        self.results: dict[IndexTier, list[tuple]] = {
            IndexTier.DISTILLATIONS: [],
            IndexTier.CHUNKS: [],
        }
        self.by_query: dict[str, dict[IndexTier, list[tuple]]] = {}
        self.error: Exception | None = None
        self.calls: list[tuple[IndexTier, str, int]] = []

    async def search(self, tier, query, limit):
        self.calls.append((tier, query, limit))
        if self.error is not None:
            raise self.error
        hits = self.by_query.get(query, self.results).get(tier, [])
        return sorted(hits, key=lambda hit: -hit[1])[:limit]

    def size(self, tier) -> int:
        return len(self.results[tier])

    def searched(self, tier) -> int:
        return sum(1 for t, _, _ in self.calls if t == tier)


class FakeArchive:
    """In-memory archive store with the read interface the core uses."""

    def __init__(self, articles=(), distillations=(), chunks=()) -> None:
        self.articles = {a.article_id: a for a in articles}
        self.distillations = {d.article_id: d for d in distillations}
        self.chunks = list(chunks)
        self.error: Exception | None = None

    async def get_article(self, article_id):
        if self.error is not None:
            raise self.error
        return self.articles.get(article_id)

    async def get_articles(self, article_ids):
        return {i: self.articles[i] for i in article_ids if i in self.articles}

    async def find_articles(self, title, publication_date=None):
        if self.error is not None:
            raise self.error
        return [
            a
            for a in self.articles.values()
            if a.title.lower() == title.strip().lower()
            and (publication_date is None or a.publication_date == publication_date)
        ]

    async def get_distillation_for_article(self, article_id):
        return self.distillations.get(article_id)

    async def get_chunks_by_article(self, article_id):
        return sorted(
            (c for c in self.chunks if c.article_id == article_id), key=lambda c: c.chunk_index
        )

    async def count_articles(self):
        return len(self.articles)

    async def count_distillations(self):
        return len(self.distillations)

    async def count_chunks(self):
        return len(self.chunks)


class FakeLLM:
    """Scripted LLM. ``handler(prompt, system)`` wins over the ``responses`` queue.

    Returned exceptions are raised. ``generate_structured`` returns
    ``structured`` or raises when it is unset.
    """

    def __init__(self, responses=None, handler=None, structured=None) -> None:
        self.responses = list(responses or [])
        self.handler = handler
        self.structured = structured
        self.calls: list[tuple[str, str | None]] = []

    async def generate(self, prompt, system=None, temperature=None, max_tokens=None):
        self.calls.append((prompt, system))
        if self.handler is not None:
            result = self.handler(prompt, system)
        elif self.responses:
            result = self.responses.pop(0)
        else:
            result = "A grounded answer."
        if isinstance(result, Exception):
            raise result
        return result

    async def generate_structured(self, prompt, response_schema, system=None, temperature=0.0):
        self.calls.append((prompt, system))
        if self.structured is None:
            raise GenerationError("structured output unavailable")
        if isinstance(self.structured, Exception):
            raise self.structured
        return self.structured


@pytest.fixture
def settings():
    """Test settings with temp paths."""
    tmp = tempfile.mkdtemp()
    return Settings(
        openai_api_key="test-key",
        google_api_key="test-key",
        sqlite_archive_db_path=str(Path(tmp) / "archive.db"),
        sqlite_eval_db_path=str(Path(tmp) / "eval.db"),
        embedding_cache_db_path=str(Path(tmp) / "cache.db"),
        distillation_index_path=str(Path(tmp) / "faiss_distillations"),
        chunk_index_path=str(Path(tmp) / "faiss_chunks"),
    )


@pytest.fixture
def tmp_dir():
    """Create a temporary directory."""
    return tempfile.mkdtemp()


@pytest.fixture
def articles():
    return [
        Article("agg", "Aggregation Theory", date(2015, 7, 21), 3100),
        Article("smile", "The Smiling Curve", date(2014, 1, 15), 2400),
        Article("notes-a", "Weekly Notes", date(2020, 3, 2), 800),
        Article("notes-b", "Weekly Notes", date(2021, 6, 7), 900),
    ]


@pytest.fixture
def distillations():
    return [
        Distillation(
            distillation_id="d-agg",
            article_id="agg",
            thesis_statement=(
                "Aggregators win by owning the user relationship once distribution is free."
            ),
            key_claims=[
                "Zero distribution costs let aggregators serve users at scale.",
                "Aggregators commoditize suppliers by controlling demand.",
            ],
            topics=["aggregation theory", "platforms"],
            entities={"companies": ["Google", "Facebook"]},
            confidence_score=0.9,
        ),
        Distillation(
            distillation_id="d-smile",
            article_id="smile",
            thesis_statement="Value in publishing moves to the two ends of the smiling curve.",
            key_claims=["Focused writers build direct subscription relationships."],
            topics=["media"],
            entities={},
            confidence_score=0.8,
        ),
    ]


@pytest.fixture
def chunks():
    return [
        Chunk("agg-c0", "agg", 0, "The internet has made distribution of digital goods free.", 10),
        Chunk(
            "agg-c1",
            "agg",
            1,
            "Transaction costs are zero, so a distributor can integrate forward with users.",
            14,
        ),
        Chunk("smile-c0", "smile", 0, "The smiling curve was coined by Stan Shih of Acer.", 11),
    ]


@pytest.fixture
def archive(articles, distillations, chunks):
    return FakeArchive(articles, distillations, chunks)


@pytest.fixture
def fake_index():
    return FakeIndex()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def query_pipeline(fake_index, archive, fake_llm):
    """The full query pipeline wired to the fakes above."""
    router = RetrievalRouter(index=fake_index, archive=archive)
    return QueryPipeline(
        policy=CopyrightPolicy(),
        router=router,
        answer_generator=AnswerGenerator(fake_llm),
        reasoning=ReasoningPipeline(fake_llm, router),
        verifier=CitationVerifier(archive),
    )
