"""
Collaborator Interfaces

Abstract contracts the retrieval core consumes. Concrete implementations
live next to their backend (Postgres repositories, OpenAI / Ollama /
sentence-transformers clients); tests provide in-process fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from uuid import UUID

from citewise.models.schemas import Principal, RetrievalCandidate


class PermissionResolver(ABC):
    @abstractmethod
    async def get_permitted_document_ids(self, principal: Principal) -> list[UUID]:
        """Return every document id visible to ``principal`` (no duplicates)."""


class CandidateStore(ABC):
    @abstractmethod
    async def query_lexical_candidates(
        self,
        query: str,
        permitted_ids: Sequence[UUID],
        limit: int,
    ) -> list[RetrievalCandidate]:
        """
        Return chunks of permitted documents that match ``query`` lexically.

        Each candidate carries its ``lex_score``. Implementations must only
        return chunks whose document id is in ``permitted_ids``.
        """


class EmbeddingProvider(ABC):
    """Text to fixed-length vector."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector this provider returns."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        pass

    @abstractmethod
    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed several texts; output order matches input order."""


class Generator(ABC):
    """Chat-style text generation."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """
        Return the generated text.

        Raises:
            UpstreamError: The backend call failed.
        """
