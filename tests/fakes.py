"""
In-process fakes for the retrieval core's collaborators.

Each fake mirrors the contract of its Postgres / provider counterpart
and counts its calls so tests can assert what was (not) touched.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from citewise.models.schemas import Principal, RetrievalCandidate
from citewise.repositories.permissions import principal_grants
from citewise.services.interfaces import (
    CandidateStore,
    EmbeddingProvider,
    Generator,
    PermissionResolver,
)
from citewise.services.lexical import DEFAULT_SUBSTRING_SCORE, lexical_score

FIXED_NOW = datetime(2024, 2, 1, tzinfo=UTC)

# Vocabulary of the keyword embedder: one dimension per term
VOCABULARY: tuple[str, ...] = (
    "commission",
    "reconciliation",
    "excel",
    "automated",
    "tracking",
    "customers",
    "agency",
    "pricing",
)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


@dataclass
class FakeChunk:
    text: str
    ordinal: int = 0
    chunk_id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class FakeDocument:
    title: str
    searchable: str
    chunks: list[FakeChunk]
    grants: list[tuple[str, str]]
    updated_at: datetime = FIXED_NOW
    url: str = "https://example.com/doc"
    author: str | None = None
    document_id: uuid.UUID = field(default_factory=uuid.uuid4)


def keyword_vector(text: str) -> list[float]:
    """Count of each vocabulary term in ``text`` (case-insensitive)."""
    lowered = text.lower()
    return [float(lowered.count(term)) for term in VOCABULARY]


class FakePermissionResolver(PermissionResolver):
    """Resolves grants exactly like the Postgres repository, in memory."""

    def __init__(self, documents: Sequence[FakeDocument]) -> None:
        self._documents = list(documents)
        self.calls = 0

    async def get_permitted_document_ids(self, principal: Principal) -> list[uuid.UUID]:
        self.calls += 1
        wanted = set(principal_grants(principal))
        return [
            doc.document_id
            for doc in self._documents
            if any(grant in wanted for grant in doc.grants)
        ]


class InMemoryCandidateStore(CandidateStore):
    """Trigram / substring scoring over fake documents."""

    def __init__(
        self,
        documents: Sequence[FakeDocument],
        substring_score: float = DEFAULT_SUBSTRING_SCORE,
    ) -> None:
        self._documents = list(documents)
        self._substring_score = substring_score
        self.calls = 0

    async def query_lexical_candidates(
        self,
        query: str,
        permitted_ids: Sequence[uuid.UUID],
        limit: int,
    ) -> list[RetrievalCandidate]:
        self.calls += 1
        allowed = set(permitted_ids)
        results: list[RetrievalCandidate] = []
        for doc in self._documents:
            if doc.document_id not in allowed:
                continue
            for chunk in doc.chunks:
                score, _ = lexical_score(
                    query,
                    doc.searchable,
                    chunk.text,
                    substring_score=self._substring_score,
                )
                results.append(
                    RetrievalCandidate(
                        chunk_id=chunk.chunk_id,
                        document_id=doc.document_id,
                        ordinal=chunk.ordinal,
                        text=chunk.text,
                        embedding=keyword_vector(chunk.text),
                        title=doc.title,
                        url=doc.url,
                        author=doc.author,
                        updated_at=doc.updated_at,
                        lex_score=score,
                    )
                )
        results.sort(key=lambda c: c.lex_score, reverse=True)
        return results[:limit]


class KeywordEmbedder(EmbeddingProvider):
    """Deterministic bag-of-keywords embedder that counts its calls."""

    def __init__(self) -> None:
        self.calls = 0
        self.texts: list[str] = []

    @property
    def dimension(self) -> int:
        return len(VOCABULARY)

    async def embed(self, text: str) -> list[float]:
        results = await self.embed_batch([text])
        return results[0]

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls += 1
        self.texts.extend(texts)
        return [keyword_vector(t) for t in texts]


@dataclass
class GeneratorCall:
    system_prompt: str
    user_prompt: str
    temperature: float
    max_tokens: int


class ScriptedGenerator(Generator):
    """
    Replies from a script and records every call.

    A script entry that is an exception instance is raised instead of
    returned.
    """

    def __init__(self, replies: Sequence[str | Exception]) -> None:
        self._replies = list(replies)
        self.calls: list[GeneratorCall] = []

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        self.calls.append(GeneratorCall(system_prompt, user_prompt, temperature, max_tokens))
        reply = self._replies[len(self.calls) - 1]
        if isinstance(reply, Exception):
            raise reply
        return reply


