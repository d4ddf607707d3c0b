"""
Pipeline Context

Explicit bundle of the long-lived resources the pipeline needs: settings,
the pooled database, the optional Redis client, the embedding provider and
the generator. The host process builds it once at startup
(``build_context``) and closes it at shutdown (``aclose``); nothing is
created as an import side effect.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from citewise.core.config import Settings
from citewise.core.database import Database
from citewise.core.exceptions import ConfigurationError, UpstreamError
from citewise.models.orm import EMBEDDING_DIMENSION
from citewise.services.embeddings import (
    CachedEmbeddingProvider,
    LocalEmbeddingProvider,
    OpenAIEmbeddingProvider,
)
from citewise.services.interfaces import EmbeddingProvider, Generator
from citewise.services.llm import OllamaGenerator, OpenAIGenerator

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Long-lived resources shared by every query of one process."""

    settings: Settings
    database: Database
    embedder: EmbeddingProvider
    generator: Generator
    redis: Redis | None = None

    async def aclose(self) -> None:
        """Release pooled connections and clients."""
        if self.redis is not None:
            await self.redis.aclose()
        await self.database.dispose()
        logger.info("Pipeline context closed")


def build_generator(settings: Settings) -> Generator:
    """
    Instantiate the configured generator backend.

    Raises:
        ConfigurationError: The OpenAI backend is selected without a key.
    """
    if settings.GENERATOR_BACKEND == "ollama":
        return OllamaGenerator(
            settings.OLLAMA_BASE_URL,
            model=settings.OLLAMA_MODEL,
            timeout=settings.OLLAMA_TIMEOUT,
        )
    return OpenAIGenerator(settings.OPENAI_API_KEY, model=settings.MODEL_NAME)


def build_embedder(settings: Settings) -> EmbeddingProvider:
    """
    Instantiate the configured embedding backend (uncached).

    Raises:
        ConfigurationError: Missing OpenAI key, or the configured dimension
            differs from the schema's vector dimension.
    """
    if settings.EMBED_DIMENSION != EMBEDDING_DIMENSION:
        raise ConfigurationError(
            f"EMBED_DIMENSION={settings.EMBED_DIMENSION} does not match the "
            f"chunk schema dimension ({EMBEDDING_DIMENSION})"
        )

    if settings.EMBED_BACKEND == "local":
        if not settings.LOCAL_EMBED_MODEL:
            raise ConfigurationError("EMBED_BACKEND=local requires LOCAL_EMBED_MODEL")
        return LocalEmbeddingProvider(
            settings.LOCAL_EMBED_MODEL,
            dimension=settings.EMBED_DIMENSION,
        )
    return OpenAIEmbeddingProvider(
        settings.OPENAI_API_KEY,
        model=settings.EMBED_MODEL,
        dimension=settings.EMBED_DIMENSION,
    )


async def connect_redis(url: str) -> Redis | None:
    """
    Connect to Redis for the embedding cache.

    Non-blocking check: returns None (no cache) if Redis is unreachable.
    """
    client = Redis.from_url(url)
    try:
        await client.ping()
    except RedisError as e:
        logger.warning("Redis not reachable, continuing without cache: %s", e)
        await client.aclose()
        return None
    logger.info("Redis connection established (embedding cache enabled)")
    return client


async def build_context(settings: Settings, *, verify: bool = True) -> PipelineContext:
    """
    Build the process-wide pipeline context.

    Provider configuration is validated before any connection is opened,
    so a missing credential fails fast with ``ConfigurationError``.

    Args:
        settings: Loaded application settings.
        verify: Ping the database (and warm up local models) before returning.
    """
    generator = build_generator(settings)
    provider = build_embedder(settings)

    redis = await connect_redis(settings.REDIS_URL) if settings.REDIS_URL else None
    embedder: EmbeddingProvider = provider
    if redis is not None:
        embedder = CachedEmbeddingProvider(
            provider,
            redis,
            model=getattr(provider, "model", settings.EMBED_MODEL),
            ttl=settings.EMBED_CACHE_TTL,
        )
    database = Database(settings.DATABASE_URL, pool_size=settings.DATABASE_POOL_SIZE)

    context = PipelineContext(
        settings=settings,
        database=database,
        embedder=embedder,
        generator=generator,
        redis=redis,
    )

    if verify:
        try:
            await database.ping()
        except (SQLAlchemyError, OSError) as e:
            logger.error("Database connection failed: %s", e)
            await context.aclose()
            raise UpstreamError("postgres", f"database unreachable: {e}") from e

        if isinstance(generator, OllamaGenerator) and not await generator.health_check():
            logger.warning("Ollama not reachable at %s", settings.OLLAMA_BASE_URL)

        if isinstance(provider, LocalEmbeddingProvider):
            try:
                await provider.warm_up()
            except ConfigurationError:
                await context.aclose()
                raise

    return context
