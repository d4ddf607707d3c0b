"""
Ask API Schemas

Pydantic models for the CITEWISE endpoint request/response cycle.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from citewise.models.schemas import Principal, RetrievalCandidate, SourceCitation


class PrincipalFields(BaseModel):
    """Identity fields shared by every request."""

    team_id: str = Field(..., min_length=1, description="Team / workspace id")
    user_id: str = Field(..., min_length=1, description="User id within the team")
    channel_id: str | None = Field(
        default=None,
        description="Channel the question was asked in, if any",
    )

    def to_principal(self) -> Principal:
        return Principal(
            team_id=self.team_id,
            user_id=self.user_id,
            channel_id=self.channel_id,
        )


class SearchRequest(PrincipalFields):
    """Request body for permission-scoped retrieval."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Natural language search query",
    )
    k: int = Field(
        default=12,
        ge=1,
        le=50,
        description="Number of chunks to return",
    )


class RankedChunk(BaseModel):
    """Single retrieval result returned to the client."""

    chunk_id: UUID
    document_id: UUID
    ordinal: int = Field(description="Position within source document (0-based)")
    title: str
    url: str
    author: str | None = None
    updated_at: datetime
    text: str = Field(description="Chunk text content")
    lex_score: float
    vector_score: float
    recency_score: float
    final_score: float = Field(description="Ranking score (higher = more relevant)")

    @classmethod
    def from_candidate(cls, candidate: RetrievalCandidate) -> RankedChunk:
        return cls(
            chunk_id=candidate.chunk_id,
            document_id=candidate.document_id,
            ordinal=candidate.ordinal,
            title=candidate.title,
            url=candidate.url,
            author=candidate.author,
            updated_at=candidate.updated_at,
            text=candidate.text,
            lex_score=candidate.lex_score,
            vector_score=candidate.vector_score,
            recency_score=candidate.recency_score,
            final_score=candidate.final_score,
        )


class AskRequest(PrincipalFields):
    """Request body for grounded question answering."""

    question: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Natural language question to answer",
    )
    k: int = Field(
        default=12,
        ge=1,
        le=20,
        description="Number of grounding chunks to retrieve",
    )
    self_check: bool = Field(
        default=True,
        description="Run the verification pass and hedge unsupported claims",
    )


class AskResponse(BaseModel):
    """Grounded answer with its cited sources."""

    answer: str = Field(description="Generated answer text with [n] citations")
    sources: list[SourceCitation] = Field(
        default_factory=list,
        description="Sources cited in the answer, in first-citation order",
    )
