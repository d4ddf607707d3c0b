"""Models package — domain schemas and SQLAlchemy ORM for the corpus."""

from citewise.models.orm import (
    EMBEDDING_DIMENSION,
    ChunkRecord,
    DocumentRecord,
    PermissionRecord,
    SourceRecord,
)
from citewise.models.schemas import (
    AnswerResult,
    ChunkDraft,
    CorpusDocument,
    GroundingChunk,
    GroundingSnippet,
    PermissionGrant,
    Principal,
    RetrievalCandidate,
    SourceCitation,
)

__all__ = [
    # Domain schemas
    "AnswerResult",
    "ChunkDraft",
    "CorpusDocument",
    "GroundingChunk",
    "GroundingSnippet",
    "PermissionGrant",
    "Principal",
    "RetrievalCandidate",
    "SourceCitation",
    # SQLAlchemy ORM (persistence layer)
    "ChunkRecord",
    "DocumentRecord",
    "PermissionRecord",
    "SourceRecord",
    "EMBEDDING_DIMENSION",
]
