"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str = ""
    google_api_key: str = ""

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 100

    # LLM / Gemini
    gemini_model: str = "gemini-2.0-flash"
    gemini_temperature: float = 0.2
    gemini_max_tokens: int = 4096
    llm_timeout_s: float = 60.0

    # Retrieval routing
    default_limit: int = 5
    default_threshold: float = 0.30
    index_timeout_s: float = 10.0
    confirm_with_chunks: bool = True
    answer_when_ungrounded: bool = True
    copyright_policy_enabled: bool = True

    # Reasoning-first mode
    max_claims: int = 12
    claim_min_words: int = 6
    claim_retrieval_concurrency: int = 4

    # Citation verification
    faithfulness_threshold: float = 0.5

    # Evaluation harness
    eval_concurrency: int = 3
    eval_batch_timeout_s: float = 900.0
    judge_temperature: float = 0.0

    # Storage paths
    sqlite_archive_db_path: str = "data/archive.db"
    sqlite_eval_db_path: str = "data/eval.db"
    embedding_cache_db_path: str = "data/embedding_cache.db"
    distillation_index_path: str = "data/faiss_distillations"
    chunk_index_path: str = "data/faiss_chunks"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_format: str = "json"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_prefix": "ARCHIVE_RAG_"}
