"""FAISS inner-product store over L2-normalised vectors, with id mapping and persistence."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

import faiss
import numpy as np

from archive_rag.observability.logger import get_logger

logger = get_logger("faiss_store")


class FAISSVectorStore:
    """Maps string item ids onto a FAISS IndexIDMap; scores are cosine similarity."""

    def __init__(self, dimensions: int, index_path: str | None = None, name: str = "vectors") -> None:
        self._dimensions = dimensions
        self._index_path = index_path
        self._name = name
        self._index = faiss.IndexIDMap(faiss.IndexFlatIP(dimensions))
        self._int_to_item: dict[int, str] = {}
        self._item_to_int: dict[str, int] = {}
        self._next_id = 0
        self._write_lock = asyncio.Lock()

        if index_path:
            self._try_load(index_path)

    def _try_load(self, path: str) -> None:
        index_file = os.path.join(path, "index.faiss")
        mapping_file = os.path.join(path, "id_mapping.json")
        if os.path.exists(index_file) and os.path.exists(mapping_file):
            self._index = faiss.read_index(index_file)
            with open(mapping_file) as f:
                data = json.load(f)
            self._int_to_item = {int(k): v for k, v in data["int_to_item"].items()}
            self._item_to_int = data["item_to_int"]
            self._next_id = data["next_id"]
            logger.info("faiss_loaded", store=self._name, size=self._index.ntotal, path=path)

    def add(self, item_ids: list[str], embeddings: np.ndarray) -> None:
        if len(item_ids) == 0:
            return
        embeddings = np.ascontiguousarray(embeddings, dtype=np.float32)
        faiss.normalize_L2(embeddings)
        int_ids = np.array(self._assign_int_ids(item_ids), dtype=np.int64)
        # Re-adding an id replaces its vector
        self._index.remove_ids(int_ids)
        self._index.add_with_ids(embeddings, int_ids)
        logger.info("faiss_added", store=self._name, count=len(item_ids), total=self._index.ntotal)

    async def add_safe(self, item_ids: list[str], embeddings: np.ndarray) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self.add, item_ids, embeddings)

    def search(self, query_embedding: np.ndarray, top_k: int) -> list[tuple[str, float]]:
        if self._index.ntotal == 0 or top_k <= 0:
            return []
        query = np.ascontiguousarray(query_embedding, dtype=np.float32).reshape(1, -1)
        faiss.normalize_L2(query)
        scores, indices = self._index.search(query, min(top_k, self._index.ntotal))
        results = []
        for idx, score in zip(indices[0], scores[0]):
            idx = int(idx)
            if idx == -1:
                continue
            item_id = self._int_to_item.get(idx)
            if item_id:
                results.append((item_id, float(score)))
        return results

    def save(self, path: str | None = None) -> None:
        path = path or self._index_path
        if not path:
            return
        Path(path).mkdir(parents=True, exist_ok=True)
        faiss.write_index(self._index, os.path.join(path, "index.faiss"))
        with open(os.path.join(path, "id_mapping.json"), "w") as f:
            json.dump(
                {
                    "int_to_item": self._int_to_item,
                    "item_to_int": self._item_to_int,
                    "next_id": self._next_id,
                },
                f,
            )
        logger.info("faiss_saved", store=self._name, path=path, size=self._index.ntotal)

    @property
    def size(self) -> int:
        return self._index.ntotal

    def _assign_int_ids(self, item_ids: list[str]) -> list[int]:
        int_ids = []
        for item_id in item_ids:
            if item_id not in self._item_to_int:
                self._int_to_item[self._next_id] = item_id
                self._item_to_int[item_id] = self._next_id
                self._next_id += 1
            int_ids.append(self._item_to_int[item_id])
        return int_ids
