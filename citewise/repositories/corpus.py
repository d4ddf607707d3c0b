"""
Corpus Repository

Data access layer for the permission-scoped corpus.

Provides the lexical candidate query consumed by the retrieval core
(pg_trgm ``similarity()`` on documents + ``ILIKE`` on chunks) and the
idempotent upserts used to load sources, documents and chunks.

Every value, including the query text and embedding vectors, is a bound
parameter; vectors are bound through the pgvector column type.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import Float, case, delete, func, literal, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from citewise.core.exceptions import UpstreamError
from citewise.models.orm import ChunkRecord, DocumentRecord, SourceRecord
from citewise.models.schemas import ChunkDraft, RetrievalCandidate
from citewise.services.interfaces import CandidateStore
from citewise.services.lexical import DEFAULT_LEXICAL_FLOOR, DEFAULT_SUBSTRING_SCORE

logger = logging.getLogger(__name__)

LIKE_ESCAPE: str = "\\"


def escape_like(value: str) -> str:
    """Escape LIKE metacharacters so ``value`` matches literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class CorpusRepository(CandidateStore):
    """
    Postgres-backed candidate store and corpus writer.

    Opens one short-lived session per call from the injected, pooled
    session factory.

    Key guarantees:
        - ``query_lexical_candidates`` only returns chunks of permitted
          documents that have an embedding, best lexical score first.
        - ``upsert_chunks`` is idempotent on (document_id, ordinal) and
          deletes ordinals past the new chunk count.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        floor: float = DEFAULT_LEXICAL_FLOOR,
        substring_score: float = DEFAULT_SUBSTRING_SCORE,
    ) -> None:
        self._session_factory = session_factory
        self._floor = floor
        self._substring_score = substring_score

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def query_lexical_candidates(
        self,
        query: str,
        permitted_ids: Sequence[uuid.UUID],
        limit: int,
    ) -> list[RetrievalCandidate]:
        """
        Shortlist chunks of permitted documents by lexical score.

        ``lex_score = GREATEST(similarity(documents.searchable, :query),
        CASE WHEN chunks.text ILIKE :pattern THEN :substring ELSE 0 END)``
        """
        if not permitted_ids:
            return []

        doc_similarity = func.similarity(DocumentRecord.searchable, query)
        substring = ChunkRecord.text.ilike(f"%{escape_like(query)}%", escape=LIKE_ESCAPE)
        lex_score = func.greatest(
            doc_similarity,
            case((substring, literal(self._substring_score, Float)), else_=0.0),
        ).label("lex_score")

        stmt = (
            select(
                ChunkRecord.id,
                ChunkRecord.document_id,
                ChunkRecord.ordinal,
                ChunkRecord.text,
                ChunkRecord.embedding,
                ChunkRecord.meta,
                DocumentRecord.title,
                DocumentRecord.url,
                DocumentRecord.author,
                DocumentRecord.updated_at,
                lex_score,
            )
            .join(DocumentRecord, ChunkRecord.document_id == DocumentRecord.id)
            .where(
                DocumentRecord.id.in_(list(permitted_ids)),
                ChunkRecord.embedding.isnot(None),
                or_(doc_similarity > self._floor, substring),
            )
            .order_by(lex_score.desc(), ChunkRecord.document_id, ChunkRecord.ordinal)
            .limit(limit)
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as e:
            raise UpstreamError("postgres", f"lexical candidate query failed: {e}") from e

        logger.debug("Lexical query returned %d rows (limit=%d)", len(rows), limit)
        return [
            RetrievalCandidate(
                chunk_id=row.id,
                document_id=row.document_id,
                ordinal=row.ordinal,
                text=row.text,
                # pgvector returns a numpy array
                embedding=[float(x) for x in row.embedding],
                title=row.title,
                url=row.url,
                author=row.author,
                updated_at=row.updated_at,
                metadata=dict(row.meta or {}),
                lex_score=float(row.lex_score),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    async def upsert_source(
        self,
        *,
        kind: str,
        external_id: str,
        name: str,
        visibility: dict[str, Any] | None = None,
    ) -> uuid.UUID:
        """Insert or update a source by ``external_id``; returns its id."""
        stmt = pg_insert(SourceRecord).values(
            id=uuid.uuid4(),
            kind=kind,
            external_id=external_id,
            name=name,
            visibility=visibility or {},
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[SourceRecord.external_id],
            set_={
                "kind": stmt.excluded.kind,
                "name": stmt.excluded.name,
                "visibility": stmt.excluded.visibility,
                "updated_at": func.now(),
            },
        ).returning(SourceRecord.id)
        return await self._execute_returning_id(stmt, "upsert source")

    async def upsert_document(
        self,
        *,
        source_id: uuid.UUID,
        external_id: str,
        title: str,
        url: str,
        author: str | None,
        created_at: datetime,
        updated_at: datetime,
        searchable: str,
        raw: dict[str, Any] | None = None,
    ) -> uuid.UUID:
        """Insert or update a document by its immutable ``external_id``."""
        values = {
            "source_id": source_id,
            "title": title,
            "url": url,
            "author": author,
            "created_at": created_at,
            "updated_at": updated_at,
            "searchable": searchable,
            "raw": raw or {},
        }
        stmt = pg_insert(DocumentRecord).values(
            id=uuid.uuid4(),
            external_id=external_id,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DocumentRecord.external_id],
            set_={key: stmt.excluded[key] for key in values},
        ).returning(DocumentRecord.id)
        return await self._execute_returning_id(stmt, "upsert document")

    async def upsert_chunks(
        self,
        document_id: uuid.UUID,
        chunks: Sequence[ChunkDraft],
        embeddings: Sequence[Sequence[float]],
    ) -> int:
        """
        Replace a document's chunks, keyed by (document_id, ordinal).

        Rows at ordinals past the new chunk count are deleted in the same
        transaction, so a reload that splits into fewer chunks leaves no
        stale text behind.

        Args:
            document_id: Owning document; every draft must belong to it.
            chunks: Chunk drafts, ordinals ``0..n-1``.
            embeddings: One vector per chunk, same order.

        Returns:
            Number of chunks written.
        """
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"Got {len(chunks)} chunks but {len(embeddings)} embeddings"
            )
        if any(chunk.document_id != document_id for chunk in chunks):
            raise ValueError(f"All chunks must belong to document {document_id}")

        prune = delete(ChunkRecord).where(
            ChunkRecord.document_id == document_id,
            ChunkRecord.ordinal >= len(chunks),
        )
        upsert = None
        if chunks:
            rows = [
                {
                    "id": uuid.uuid4(),
                    "document_id": document_id,
                    "ordinal": chunk.ordinal,
                    "text": chunk.text,
                    "embedding": list(vector),
                    "meta": chunk.metadata,
                }
                for chunk, vector in zip(chunks, embeddings, strict=True)
            ]
            upsert = pg_insert(ChunkRecord).values(rows)
            upsert = upsert.on_conflict_do_update(
                constraint="uq_chunks_document_ordinal",
                set_={
                    "text": upsert.excluded.text,
                    "embedding": upsert.excluded.embedding,
                    "meta": upsert.excluded.meta,
                },
            )

        try:
            async with self._session_factory() as session:
                if upsert is not None:
                    await session.execute(upsert)
                pruned = await session.execute(prune)
                await session.commit()
        except SQLAlchemyError as e:
            raise UpstreamError("postgres", f"upsert chunks failed: {e}") from e

        if pruned.rowcount:
            logger.info("Removed %d stale chunk(s) for %s", pruned.rowcount, document_id)
        logger.info("Upserted %d chunks", len(chunks))
        return len(chunks)

    async def _execute_returning_id(self, stmt: Any, action: str) -> uuid.UUID:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                record_id = result.scalar_one()
                await session.commit()
        except SQLAlchemyError as e:
            raise UpstreamError("postgres", f"{action} failed: {e}") from e
        return record_id
