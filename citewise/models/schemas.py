"""
CITEWISE Domain Schemas

Core data structures flowing through the retrieval and answer pipeline.

Pydantic models describe values that cross the package boundary
(principals, grounding chunks, answers). ``RetrievalCandidate`` is a
plain frozen dataclass: it lives for one query and is copied with
``dataclasses.replace`` at each scoring stage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class Principal(BaseModel):
    """
    Identity a query runs as. Supplied per query, never persisted.

    Attributes:
        team_id: Workspace / team identifier.
        user_id: User identifier within the team.
        channel_id: Channel the question was asked in, if any.
    """

    team_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    channel_id: str | None = None


class PermissionGrant(BaseModel):
    """One (principal_type, principal_id) grant on a document."""

    principal_type: str = Field(min_length=1)
    principal_id: str = Field(min_length=1)


@dataclass(frozen=True)
class RetrievalCandidate:
    """
    A chunk joined with its document, plus per-stage scores.

    Attributes:
        chunk_id: Chunk identity (dedup key).
        document_id: Owning document (MMR redundancy key).
        ordinal: Chunk position within the document.
        text: Full chunk text.
        embedding: Chunk vector, corpus dimensionality.
        title / url / author / updated_at: Joined document fields.
        lex_score: Lexical shortlist score in [0, 1].
        vector_score: Cosine similarity to the query embedding.
        recency_score: ``exp(-age_days / half_life)``.
        final_score: Weighted combination used for ranking.
    """

    chunk_id: UUID
    document_id: UUID
    ordinal: int
    text: str
    embedding: list[float]
    title: str
    url: str
    updated_at: datetime
    author: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    lex_score: float = 0.0
    vector_score: float = 0.0
    recency_score: float = 0.0
    final_score: float = 0.0


class GroundingChunk(BaseModel):
    """Evidence supplied by a caller that did its own retrieval."""

    text: str
    title: str
    url: str
    author: str | None = None


class GroundingSnippet(BaseModel):
    """A numbered, truncated excerpt shown to the generator."""

    index: int = Field(ge=1, description="1-based citation index")
    title: str
    url: str
    excerpt: str


class SourceCitation(BaseModel):
    """Citation-ready source returned alongside an answer."""

    title: str
    url: str
    excerpt: str


class AnswerResult(BaseModel):
    """
    Grounded answer with validated citations.

    Attributes:
        answer_text: Final answer (possibly hedged after self-check).
        sources: One entry per retained citation, in first-citation order.
        citations: The retained 1-based indices, same order as ``sources``.
    """

    answer_text: str
    sources: list[SourceCitation] = Field(default_factory=list)
    citations: list[int] = Field(default_factory=list)


class ChunkDraft(BaseModel):
    """A chunk ready to be embedded and upserted."""

    document_id: UUID
    ordinal: int = Field(ge=0)
    text: str = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)


class CorpusDocument(BaseModel):
    """
    A normalised source item ready to load into the corpus.

    ``searchable`` defaults to the title followed by the body text.
    """

    source_kind: str = Field(min_length=1)
    source_external_id: str = Field(min_length=1)
    source_name: str = Field(min_length=1)
    source_visibility: dict[str, Any] = Field(default_factory=dict)
    external_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    url: str
    author: str | None = None
    created_at: datetime
    updated_at: datetime
    text: str = Field(min_length=1)
    searchable: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)
    grants: list[PermissionGrant] = Field(default_factory=list)

    def searchable_text(self) -> str:
        if self.searchable is not None:
            return self.searchable
        return f"{self.title}\n{self.text}"
