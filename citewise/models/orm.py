"""
CITEWISE Corpus Database Models

SQLAlchemy 2.0 ORM models for the permission-scoped corpus.
Uses pgvector for chunk embeddings and pg_trgm for fuzzy document search.

Tables:
    sources     — Ingestion origins (a Slack channel, a Dovetail project).
    documents   — Source items with aggregated ``searchable`` text.
    chunks      — Document segments with fixed-dimension embeddings.
    permissions — (document, principal_type, principal_id) grants.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from citewise.models.base import Base, TimestampMixin

# Embedding dimension for text-embedding-3-small
EMBEDDING_DIMENSION: int = 1536

# Principal types understood by the permission resolver
PRINCIPAL_TEAM: str = "slack_team"
PRINCIPAL_USER: str = "slack_user"
PRINCIPAL_CHANNEL: str = "slack_channel"
WILDCARD_PRINCIPAL: str = "*"


class SourceRecord(Base, TimestampMixin):
    """
    Ingestion origin of documents.

    Attributes:
        id: UUID primary key.
        kind: Connector kind (``slack``, ``dovetail``...).
        external_id: Connector-side identifier, unique.
        name: Human-readable name.
        visibility: JSONB blob describing who can see the source.
    """

    __tablename__ = "sources"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    external_id: Mapped[str] = mapped_column(String(500), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    visibility: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
    )

    documents: Mapped[list[DocumentRecord]] = relationship(
        back_populates="source",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<SourceRecord(kind='{self.kind}', external_id='{self.external_id}')>"


class DocumentRecord(Base):
    """
    A source item (interview, message thread) visible to some principals.

    ``created_at``/``updated_at`` are the upstream timestamps, not row
    timestamps: recency scoring reads ``updated_at``.

    Attributes:
        id: UUID primary key.
        source_id: Owning source (CASCADE delete).
        external_id: Immutable natural key, unique.
        searchable: Aggregated text matched by trigram similarity.
        raw: Upstream payload, kept for re-chunking.
    """

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    source_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("sources.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    external_id: Mapped[str] = mapped_column(String(500), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(1000), nullable=False)
    url: Mapped[str] = mapped_column(String(2000), nullable=False)
    author: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    searchable: Mapped[str] = mapped_column(Text, nullable=False, default="")
    raw: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    source: Mapped[SourceRecord] = relationship(back_populates="documents")
    chunks: Mapped[list[ChunkRecord]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="ChunkRecord.ordinal",
    )

    def __repr__(self) -> str:
        return f"<DocumentRecord(id={self.id!s:.8}, title='{self.title[:30]}')>"


class ChunkRecord(Base):
    """
    A segment of a document with its embedding.

    Attributes:
        id: UUID primary key.
        document_id: Parent document (CASCADE delete).
        ordinal: Zero-based position, unique per document.
        text: Chunk text, matched by case-insensitive substring search.
        embedding: Fixed-dimension vector (nullable until embedded).
        meta: Connector-specific context (message ts, highlight type...).
    """

    __tablename__ = "chunks"
    __table_args__ = (
        UniqueConstraint("document_id", "ordinal", name="uq_chunks_document_ordinal"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ordinal: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSION),
        nullable=True,
    )
    meta: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    document: Mapped[DocumentRecord] = relationship(back_populates="chunks")

    def __repr__(self) -> str:
        return (
            f"<ChunkRecord(id={self.id!s:.8}, "
            f"doc={self.document_id!s:.8}, ord={self.ordinal})>"
        )


class PermissionRecord(Base):
    """
    Grants visibility of one document to one principal.

    ``principal_id == '*'`` matches every principal of ``principal_type``.
    """

    __tablename__ = "permissions"
    __table_args__ = (
        Index("ix_permissions_principal", "principal_type", "principal_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    principal_type: Mapped[str] = mapped_column(String(50), nullable=False)
    principal_id: Mapped[str] = mapped_column(String(200), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<PermissionRecord(doc={self.document_id!s:.8}, "
            f"{self.principal_type}={self.principal_id})>"
        )
