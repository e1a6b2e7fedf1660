"""Re-embed both tiers (distillations and chunks) from the archive store."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from archive_rag.api.app import build_embedding_index
from archive_rag.config.settings import Settings
from archive_rag.embeddings.cache import EmbeddingCache
from archive_rag.models.domain import IndexTier
from archive_rag.observability.logger import setup_logging
from archive_rag.storage.sqlite_archive_store import SQLiteArchiveStore


async def rebuild(settings: Settings) -> None:
    archive = SQLiteArchiveStore(settings.sqlite_archive_db_path)
    await archive.initialize()
    cache = EmbeddingCache(settings.embedding_cache_db_path, model=settings.embedding_model)
    await cache.initialize()
    index = build_embedding_index(settings, archive, cache)

    distillations = await archive.get_all_distillations()
    chunks = await archive.get_all_chunks()
    print(f"Found {len(distillations)} distillations and {len(chunks)} chunks")

    if distillations:
        print("Embedding distillations...")
        await index.add_distillations(distillations)
    if chunks:
        print("Embedding chunks...")
        await index.add_chunks(chunks)
    index.save()

    print(
        f"Indexes built: {index.size(IndexTier.DISTILLATIONS)} distillation vectors, "
        f"{index.size(IndexTier.CHUNKS)} chunk vectors"
    )


async def main():
    settings = Settings()
    setup_logging(settings.log_level, "console")
    for path in [settings.sqlite_archive_db_path, settings.embedding_cache_db_path]:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    await rebuild(settings)
    print("Done!")


if __name__ == "__main__":
    asyncio.run(main())
