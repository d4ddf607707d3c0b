"""
Embedding Providers

Text → fixed-length vector, behind the ``EmbeddingProvider`` interface.

Providers:
    - OpenAIEmbeddingProvider: ``text-embedding-3-small`` via the async
      OpenAI SDK (1536 dims, explicitly requested to match the schema).
    - LocalEmbeddingProvider: sentence-transformers model loaded lazily and
      run in a worker thread (CPU-bound inference must not block the loop).
    - CachedEmbeddingProvider: Redis read-through cache around any provider.
      Cache failures degrade to a miss; results are identical on hit or miss.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from collections.abc import Sequence
from typing import Any

import openai
from openai import AsyncOpenAI
from redis.asyncio import Redis
from redis.exceptions import RedisError

from citewise.core.exceptions import (
    ConfigurationError,
    EmbeddingDimensionError,
    UpstreamError,
)
from citewise.services.interfaces import EmbeddingProvider

logger = logging.getLogger(__name__)

# OpenAI input limit, in characters (conservative for 8191 tokens)
MAX_INPUT_CHARS: int = 8000
DEFAULT_CACHE_TTL: int = 86400


def _check_dimension(vector: list[float], expected: int) -> list[float]:
    if len(vector) != expected:
        raise EmbeddingDimensionError(expected=expected, actual=len(vector))
    return vector


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """
    Embeddings from the OpenAI API.

    Raises:
        ConfigurationError: At construction, if no API key is provided.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "text-embedding-3-small",
        dimension: int = 1536,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise ConfigurationError("OpenAI API key not configured")
            client = AsyncOpenAI(api_key=api_key)
        self._client = client
        self._model = model
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model(self) -> str:
        return self._model

    async def embed(self, text: str) -> list[float]:
        results = await self.embed_batch([text])
        return results[0]

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed ``texts`` in a single API call; order is preserved."""
        if not texts:
            return []

        inputs = [t[:MAX_INPUT_CHARS] for t in texts]
        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=inputs,
                dimensions=self._dimension,
            )
        except openai.OpenAIError as e:
            raise UpstreamError("openai-embeddings", str(e)) from e

        # The API tags each item with its input index
        items = sorted(response.data, key=lambda item: item.index)
        vectors = [
            _check_dimension(list(item.embedding), self._dimension) for item in items
        ]
        logger.debug("Embedded %d texts (model=%s)", len(vectors), self._model)
        return vectors


class LocalEmbeddingProvider(EmbeddingProvider):
    """
    Embeddings from a local sentence-transformers model.

    The model is loaded lazily on first use (or eagerly via ``warm_up``)
    and inference is offloaded with ``asyncio.to_thread``.

    Usage::

        provider = LocalEmbeddingProvider("all-MiniLM-L6-v2", dimension=384)
        await provider.warm_up()
        vector = await provider.embed("hello")
    """

    def __init__(
        self,
        model_name: str,
        *,
        dimension: int,
    ) -> None:
        self._model_name = model_name
        self._dimension = dimension
        self._model: Any = None

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model(self) -> str:
        return self._model_name

    def _get_model(self) -> Any:
        """
        Get or lazily initialize the sentence-transformers model.

        The import is deferred so that ``sentence_transformers`` is only
        required when this provider is selected.
        """
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info("Loading embedding model: %s ...", self._model_name)
            self._model = SentenceTransformer(self._model_name)
            logger.info("Model loaded (dim=%d)", self._dimension)
        return self._model

    def _encode_sync(self, texts: list[str]) -> list[list[float]]:
        """Synchronous batch encoding. Always call via ``asyncio.to_thread``."""
        model = self._get_model()
        embeddings = model.encode(texts, normalize_embeddings=True)
        # numpy ndarray → native Python lists for pgvector compatibility
        result: list[list[float]] = embeddings.tolist()
        return [_check_dimension(v, self._dimension) for v in result]

    async def warm_up(self) -> None:
        """
        Load the model and check it produces ``dimension``-length vectors.

        Raises:
            ConfigurationError: The model's output dimension differs.
        """
        model = await asyncio.to_thread(self._get_model)
        actual = model.get_sentence_embedding_dimension()
        if actual != self._dimension:
            raise ConfigurationError(
                f"Local model {self._model_name!r} produces {actual}-dimension "
                f"vectors, expected {self._dimension}"
            )

    async def embed(self, text: str) -> list[float]:
        results = await self.embed_batch([text])
        return results[0]

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        return await asyncio.to_thread(self._encode_sync, list(texts))

    def release(self) -> None:
        """Release the model from memory."""
        self._model = None
        logger.info("Local embedding model released")


class CachedEmbeddingProvider(EmbeddingProvider):
    """
    Redis read-through cache around another provider.

    Keys are ``embed:{model}:{sha256(text)}``; values are JSON arrays with
    a TTL. Any Redis error is logged and treated as a miss.
    """

    def __init__(
        self,
        inner: EmbeddingProvider,
        redis: Redis,
        *,
        model: str,
        ttl: int = DEFAULT_CACHE_TTL,
    ) -> None:
        self._inner = inner
        self._redis = redis
        self._model = model
        self._ttl = ttl

    @property
    def dimension(self) -> int:
        return self._inner.dimension

    def cache_key(self, text: str) -> str:
        digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
        return f"embed:{self._model}:{digest}"

    async def embed(self, text: str) -> list[float]:
        results = await self.embed_batch([text])
        return results[0]

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []

        keys = [self.cache_key(t) for t in texts]
        cached = await self._read(keys)

        results: list[list[float] | None] = [self._decode(raw) for raw in cached]
        missing = [i for i, vector in enumerate(results) if vector is None]

        if missing:
            fresh = await self._inner.embed_batch([texts[i] for i in missing])
            for i, vector in zip(missing, fresh, strict=True):
                results[i] = vector
            await self._write({keys[i]: results[i] for i in missing})

        logger.debug(
            "Embedding cache: %d hit(s), %d miss(es)",
            len(texts) - len(missing),
            len(missing),
        )
        return [v for v in results if v is not None]

    def _decode(self, raw: Any) -> list[float] | None:
        if raw is None:
            return None
        try:
            vector = [float(x) for x in json.loads(raw)]
        except (TypeError, ValueError):
            return None
        if len(vector) != self.dimension:
            return None
        return vector

    async def _read(self, keys: list[str]) -> list[Any]:
        try:
            return list(await self._redis.mget(keys))
        except RedisError as e:
            logger.warning("Embedding cache read failed, treating as miss: %s", e)
            return [None] * len(keys)

    async def _write(self, entries: dict[str, list[float] | None]) -> None:
        try:
            for key, vector in entries.items():
                await self._redis.set(key, json.dumps(vector), ex=self._ttl)
        except RedisError as e:
            logger.warning("Embedding cache write failed: %s", e)
