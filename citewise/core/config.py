"""
CITEWISE Configuration

Centralized settings for the retrieval and answer pipeline.
All values are loaded from environment variables or a ``.env`` file.

Note:
    There is no module-level settings instance. The host process builds
    ``Settings()`` once and hands it to ``build_context()``; tests build
    their own instances.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RerankWeights(BaseModel):
    """
    Fixed weights of the final ranking score.

    ``final = vector * vector_score + lexical * lexical_signal
    + recency * recency_score``. The three weights must sum to 1.
    """

    vector: float = Field(default=0.6, ge=0.0, le=1.0)
    lexical: float = Field(default=0.3, ge=0.0, le=1.0)
    recency: float = Field(default=0.1, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_sum(self) -> RerankWeights:
        total = self.vector + self.lexical + self.recency
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Rerank weights must sum to 1.0 (got {total:.4f})")
        return self


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars (no defaults):
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB

    Provider credentials (``OPENAI_API_KEY``) are optional here; the
    provider factories raise ``ConfigurationError`` when a backend that
    needs them is selected without them.
    """

    PROJECT_NAME: str = "Citewise"
    ENVIRONMENT: str = "local"

    # Database
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str
    DATABASE_POOL_SIZE: int = 5

    # Providers
    OPENAI_API_KEY: str | None = None
    MODEL_NAME: str = "gpt-4o-mini"
    EMBED_MODEL: str = "text-embedding-3-small"
    EMBED_DIMENSION: int = 1536
    EMBED_BACKEND: Literal["openai", "local"] = "openai"
    LOCAL_EMBED_MODEL: str | None = None  # must produce EMBED_DIMENSION vectors
    GENERATOR_BACKEND: Literal["openai", "ollama"] = "openai"
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "mistral"
    OLLAMA_TIMEOUT: float = 30.0

    # Embedding cache
    REDIS_URL: str | None = None
    EMBED_CACHE_TTL: int = 86400

    # Retrieval tuning
    SHORTLIST_SIZE: int = 100
    LEXICAL_FLOOR: float = 0.1
    SUBSTRING_SCORE: float = 0.8
    RERANK_VECTOR_WEIGHT: float = 0.6
    RERANK_LEXICAL_WEIGHT: float = 0.3
    RERANK_RECENCY_WEIGHT: float = 0.1
    LEXICAL_SIGNAL_MODE: Literal["score", "constant"] = "score"
    LEXICAL_SIGNAL_CONSTANT: float = 0.3
    RECENCY_HALF_LIFE_DAYS: float = 30.0
    MMR_LAMBDA: float = 0.5
    MMR_DOCUMENT_PENALTY: float = 0.9
    DEFAULT_RESULT_LIMIT: int = 12

    # Answer synthesis
    EXCERPT_LENGTH: int = 500
    ANSWER_TEMPERATURE: float = 0.3
    ANSWER_MAX_TOKENS: int = 300
    CHECK_TEMPERATURE: float = 0.0
    CHECK_MAX_TOKENS: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"
    PIPELINE_LOG_LEVEL: str | None = None  # overrides LOG_LEVEL for pipeline stages

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL connection string using asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def rerank_weights(self) -> RerankWeights:
        """Validated rerank weights (raises ``ValueError`` if they don't sum to 1)."""
        return RerankWeights(
            vector=self.RERANK_VECTOR_WEIGHT,
            lexical=self.RERANK_LEXICAL_WEIGHT,
            recency=self.RERANK_RECENCY_WEIGHT,
        )
