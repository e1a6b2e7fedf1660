"""Idempotent database schema creation."""

from __future__ import annotations

import aiosqlite

ARTICLES_TABLE = """
CREATE TABLE IF NOT EXISTS articles (
    article_id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    publication_date TEXT,
    word_count INTEGER NOT NULL DEFAULT 0
)
"""

ARTICLES_TITLE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_articles_title ON articles(title COLLATE NOCASE)
"""

DISTILLATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS distillations (
    distillation_id TEXT PRIMARY KEY,
    article_id TEXT NOT NULL UNIQUE,
    thesis_statement TEXT NOT NULL,
    key_claims TEXT NOT NULL DEFAULT '[]',
    topics TEXT NOT NULL DEFAULT '[]',
    entities TEXT NOT NULL DEFAULT '{}',
    confidence_score REAL NOT NULL,
    FOREIGN KEY (article_id) REFERENCES articles(article_id)
)
"""

CHUNKS_TABLE = """
CREATE TABLE IF NOT EXISTS chunks (
    chunk_id TEXT PRIMARY KEY,
    article_id TEXT NOT NULL,
    chunk_index INTEGER NOT NULL,
    content TEXT NOT NULL,
    token_count INTEGER NOT NULL,
    FOREIGN KEY (article_id) REFERENCES articles(article_id)
)
"""

CHUNKS_ARTICLE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_chunks_article_id ON chunks(article_id, chunk_index)
"""

EVAL_EXAMPLES_TABLE = """
CREATE TABLE IF NOT EXISTS eval_examples (
    example_id TEXT PRIMARY KEY,
    question TEXT NOT NULL,
    category TEXT,
    difficulty TEXT,
    created_at TEXT NOT NULL
)
"""

EVAL_RUNS_TABLE = """
CREATE TABLE IF NOT EXISTS eval_runs (
    run_id TEXT PRIMARY KEY,
    started_at TEXT NOT NULL,
    completed_at TEXT,
    status TEXT NOT NULL,
    mode TEXT NOT NULL,
    limit_k INTEGER NOT NULL,
    threshold REAL NOT NULL,
    total_examples INTEGER NOT NULL,
    scored_examples INTEGER NOT NULL DEFAULT 0,
    excluded_examples INTEGER NOT NULL DEFAULT 0,
    avg_score REAL
)
"""

EVAL_RESULTS_TABLE = """
CREATE TABLE IF NOT EXISTS eval_results (
    result_id TEXT PRIMARY KEY,
    run_id TEXT NOT NULL,
    example_id TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0,
    question TEXT NOT NULL,
    status TEXT NOT NULL,
    retrieval_tier TEXT,
    relevance_score REAL,
    faithfulness_score REAL,
    completeness_score REAL,
    avg_score REAL,
    judge_reasoning TEXT,
    answer TEXT,
    error TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (run_id) REFERENCES eval_runs(run_id)
)
"""

CITATION_RUNS_TABLE = """
CREATE TABLE IF NOT EXISTS citation_runs (
    run_id TEXT PRIMARY KEY,
    started_at TEXT NOT NULL,
    completed_at TEXT,
    status TEXT NOT NULL,
    total_examples INTEGER NOT NULL,
    scored_examples INTEGER NOT NULL DEFAULT 0,
    excluded_examples INTEGER NOT NULL DEFAULT 0,
    total_citations INTEGER NOT NULL DEFAULT 0,
    valid_citations INTEGER NOT NULL DEFAULT 0,
    misused_citations INTEGER NOT NULL DEFAULT 0,
    hallucinated_citations INTEGER NOT NULL DEFAULT 0,
    overall_accuracy REAL NOT NULL DEFAULT 0
)
"""

CITATION_RESULTS_TABLE = """
CREATE TABLE IF NOT EXISTS citation_results (
    result_id TEXT PRIMARY KEY,
    run_id TEXT NOT NULL,
    example_id TEXT,
    position INTEGER NOT NULL DEFAULT 0,
    question TEXT NOT NULL,
    status TEXT NOT NULL,
    total_citations INTEGER NOT NULL DEFAULT 0,
    valid INTEGER NOT NULL DEFAULT 0,
    misused INTEGER NOT NULL DEFAULT 0,
    hallucinated INTEGER NOT NULL DEFAULT 0,
    accuracy_score REAL NOT NULL DEFAULT 0,
    details TEXT NOT NULL DEFAULT '[]',
    answer TEXT,
    error TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (run_id) REFERENCES citation_runs(run_id)
)
"""

RESULTS_RUN_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_eval_results_run ON eval_results(run_id, position)",
    "CREATE INDEX IF NOT EXISTS idx_citation_results_run ON citation_results(run_id, position)",
)


async def initialize_archive_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(ARTICLES_TABLE)
        await db.execute(ARTICLES_TITLE_INDEX)
        await db.execute(DISTILLATIONS_TABLE)
        await db.execute(CHUNKS_TABLE)
        await db.execute(CHUNKS_ARTICLE_INDEX)
        await db.commit()


async def initialize_eval_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(EVAL_EXAMPLES_TABLE)
        await db.execute(EVAL_RUNS_TABLE)
        await db.execute(EVAL_RESULTS_TABLE)
        await db.execute(CITATION_RUNS_TABLE)
        await db.execute(CITATION_RESULTS_TABLE)
        for stmt in RESULTS_RUN_INDEXES:
            await db.execute(stmt)
        await db.commit()
