"""Typed settings configuration - single source of truth."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (in-memory stores when unset)
    database_url: str | None = None

    # Cache
    redis_url: str | None = None

    # Logging
    log_level: str = "INFO"

    # Language model provider (OpenAI-compatible API)
    openai_api_key: SecretStr | None = None
    openai_base_url: str = "https://openrouter.ai/api/v1"
    chat_model: str = "google/gemma-3-27b-it:free"
    quiz_model: str = "deepseek-chat"
    tutor_temperature: float = 0.3

    # Embeddings (OpenAI API when embedding_base_url is unset)
    embedding_base_url: str | None = None
    embedding_model: str = "text-embedding-3-small"
    embedding_batch_size: int = 64
    embedding_dimensions: int = 256
    embedding_max_chars: int = 8000

    # Retrieval
    retrieval_mode: Literal["lexical", "vector"] = "lexical"
    retrieval_top_k: int = 6
    lexical_floor: float = 0.0
    vector_floor: float = 0.4

    # Chunking (words for prose, lines for source code)
    chunk_size_words: int = 900
    chunk_overlap_words: int = 120
    code_chunk_lines: int = 60
    code_chunk_overlap_lines: int = 5
    code_min_chunk_lines: int = 10

    # Context assembly
    context_chunk_char_cap: int = 1000
    context_title_cap: int = 40
    quiz_history_limit: int = 2

    # Uploads
    max_upload_bytes: int = 10 * 1024 * 1024
    material_retention_minutes: int = 120
    admin_token: SecretStr | None = None

    # Quiz generation
    quiz_max_attempts: int = 5
    quiz_base_temperature: float = 0.7
    quiz_temperature_step: float = 0.1
    quiz_max_temperature: float = 1.2
    quiz_hash_includes_choices: bool = False
    quiz_hash_retention_minutes: int = 120

    # Background sweep (seconds)
    sweep_interval_seconds: int = 15 * 60

    # Code runner
    python_executable: str = "python3"
    code_max_chars: int = 10_000
    code_timeout_seconds: float = 10.0
    code_output_max_bytes: int = 1024 * 1024

    # Rate limiting for the code runner
    run_code_max_requests: int = 100
    run_code_window_seconds: int = 15 * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
