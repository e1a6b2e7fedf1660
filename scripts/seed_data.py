"""Seed a small sample archive and eval examples for development, then build the indexes."""

from __future__ import annotations

import asyncio
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from archive_rag.config.settings import Settings
from archive_rag.models.domain import Article, Chunk, Distillation, EvalExample
from archive_rag.observability.logger import setup_logging
from archive_rag.storage.sqlite_archive_store import SQLiteArchiveStore
from archive_rag.storage.sqlite_eval_store import SQLiteEvalStore
from rebuild_indexes import rebuild

SAMPLE_ARTICLES = [
    {
        "article": Article("agg-001", "Aggregation Theory", date(2015, 7, 21), 3100),
        "thesis": (
            "The internet made distribution free, so value shifts to companies that own "
            "the user relationship and aggregate demand rather than supply."
        ),
        "claims": [
            "Zero distribution costs let aggregators serve users at scale.",
            "Aggregators commoditize suppliers by controlling demand.",
            "Winner-take-all dynamics follow from better user experience attracting more suppliers.",
        ],
        "topics": ["aggregation theory", "platforms", "distribution"],
        "entities": {"companies": ["Google", "Facebook", "Netflix"]},
        "chunks": [
            "The value chain for any given consumer market is divided into three parts: "
            "suppliers, distributors, and consumers. The best way to make outsize profits "
            "in any of these markets is to either gain a horizontal monopoly in one of the "
            "three parts or to integrate two of the parts.",
            "The internet has made distribution of digital goods free, neutralizing the "
            "advantage that pre-internet distributors leveraged to integrate with suppliers. "
            "Instead, the internet has made transaction costs zero, making it viable for a "
            "distributor to integrate forward with end users at scale.",
        ],
    },
    {
        "article": Article("smile-002", "The Smiling Curve", date(2014, 1, 15), 2400),
        "thesis": (
            "In publishing, value accrues at the two ends of the curve: aggregators that "
            "own distribution and focused creators with direct audiences."
        ),
        "claims": [
            "Integrated newspapers lose value as distribution is unbundled.",
            "Focused writers can build direct subscription relationships.",
        ],
        "topics": ["media", "smiling curve", "subscriptions"],
        "entities": {"companies": ["The New York Times", "BuzzFeed"]},
        "chunks": [
            "The smiling curve was coined by Acer founder Stan Shih to describe the PC "
            "industry: the ends of the value chain, brand and components, earned the "
            "profits, while assembly in the middle was commoditized.",
            "Publishing is undergoing the same shift. Aggregators capture value on one end "
            "while focused, direct-to-reader publications capture it on the other.",
        ],
    },
    {
        "article": Article("disrupt-003", "Disruption and Integration", date(2013, 5, 20), 2800),
        "thesis": (
            "Integrated products win when the user experience matters more than price, "
            "so low-end disruption theory does not explain consumer markets well."
        ),
        "claims": [
            "Consumers pay for experience rather than specifications.",
            "Integration across hardware and software produces a superior experience.",
        ],
        "topics": ["disruption theory", "integration", "consumer technology"],
        "entities": {"companies": ["Apple", "Microsoft"], "people": ["Clayton Christensen"]},
        "chunks": [
            "Clayton Christensen's theory of low-end disruption holds that integrated "
            "incumbents overshoot customer needs and are displaced by modular challengers.",
            "In consumer markets the experience is never good enough, which is why an "
            "integrated approach can sustain premium pricing for a very long time.",
        ],
    },
]

SAMPLE_QUESTIONS = [
    ("What is Aggregation Theory?", "concepts", "easy"),
    ("Why do aggregators commoditize suppliers?", "concepts", "medium"),
    ("How does the smiling curve apply to publishing?", "media", "medium"),
    ("When does integration beat modularization in consumer technology?", "strategy", "hard"),
    ("What did the 2015-07-21 article say about distribution costs?", "precision", "hard"),
]


async def seed_archive(archive: SQLiteArchiveStore) -> None:
    for entry in SAMPLE_ARTICLES:
        article = entry["article"]
        await archive.save_article(article)
        await archive.save_distillation(
            Distillation(
                distillation_id=f"dist-{article.article_id}",
                article_id=article.article_id,
                thesis_statement=entry["thesis"],
                key_claims=entry["claims"],
                topics=entry["topics"],
                entities=entry["entities"],
                confidence_score=0.9,
            )
        )
        await archive.save_chunks(
            [
                Chunk(
                    chunk_id=f"{article.article_id}-c{i}",
                    article_id=article.article_id,
                    chunk_index=i,
                    content=content,
                    token_count=len(content.split()),
                )
                for i, content in enumerate(entry["chunks"])
            ]
        )
        print(f"  Seeded: {article.title} ({len(entry['chunks'])} chunks)")


async def seed_examples(store: SQLiteEvalStore) -> None:
    existing = {e.question for e in await store.list_examples()}
    for i, (question, category, difficulty) in enumerate(SAMPLE_QUESTIONS, 1):
        if question in existing:
            continue
        await store.add_example(
            EvalExample(
                example_id=f"example-{i:02d}",
                question=question,
                category=category,
                difficulty=difficulty,
            )
        )
    print(f"  Eval examples: {len(SAMPLE_QUESTIONS)}")


async def main():
    settings = Settings()
    setup_logging(settings.log_level, "console")

    for path in [
        settings.sqlite_archive_db_path,
        settings.sqlite_eval_db_path,
        settings.embedding_cache_db_path,
    ]:
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    archive = SQLiteArchiveStore(settings.sqlite_archive_db_path)
    await archive.initialize()
    eval_store = SQLiteEvalStore(settings.sqlite_eval_db_path)
    await eval_store.initialize()

    print("Seeding archive...")
    await seed_archive(archive)
    print("Seeding eval examples...")
    await seed_examples(eval_store)

    print("Building indexes...")
    await rebuild(settings)
    print("Done!")


if __name__ == "__main__":
    asyncio.run(main())
