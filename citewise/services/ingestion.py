"""
Corpus Loading

Writes one normalised document into the corpus:
source upsert → document upsert → TextChunker → EmbeddingProvider →
chunk upsert → permission replacement.

Connector-specific normalisation (Slack threads, Dovetail highlights)
happens upstream; this module only sees ``CorpusDocument`` values.
Every write is an upsert keyed on natural ids and chunks past the new
count are pruned, so reloading a document is idempotent.
"""

from __future__ import annotations

import logging
from typing import NamedTuple
from uuid import UUID

from citewise.models.schemas import CorpusDocument
from citewise.repositories.corpus import CorpusRepository
from citewise.repositories.permissions import PermissionRepository
from citewise.services.chunking import TextChunker
from citewise.services.interfaces import EmbeddingProvider

logger = logging.getLogger(__name__)


class LoadResult(NamedTuple):
    """Return value of a successful load."""

    document_id: UUID
    chunks_count: int
    grants_count: int


class CorpusLoader:
    """
    Loads normalised documents into the corpus.

    Usage::

        loader = CorpusLoader(corpus, permissions, embedder)
        result = await loader.load(document)
        print(result.document_id, result.chunks_count)
    """

    def __init__(
        self,
        corpus: CorpusRepository,
        permissions: PermissionRepository,
        embedder: EmbeddingProvider,
        chunker: TextChunker | None = None,
    ) -> None:
        self._corpus = corpus
        self._permissions = permissions
        self._embedder = embedder
        self._chunker = chunker or TextChunker()

    async def load(self, document: CorpusDocument) -> LoadResult:
        """
        Upsert ``document`` with its chunks, embeddings and grants.

        Raises:
            UpstreamError: Storage or embedding provider failure.
        """
        source_id = await self._corpus.upsert_source(
            kind=document.source_kind,
            external_id=document.source_external_id,
            name=document.source_name,
            visibility=document.source_visibility,
        )
        document_id = await self._corpus.upsert_document(
            source_id=source_id,
            external_id=document.external_id,
            title=document.title,
            url=document.url,
            author=document.author,
            created_at=document.created_at,
            updated_at=document.updated_at,
            searchable=document.searchable_text(),
            raw=document.raw,
        )

        drafts = self._chunker.split(
            document.text,
            document_id,
            metadata={"source_kind": document.source_kind},
        )
        embeddings = await self._embedder.embed_batch([d.text for d in drafts])
        written = await self._corpus.upsert_chunks(document_id, drafts, embeddings)

        await self._permissions.set_document_permissions(document_id, document.grants)

        logger.info(
            "Loaded '%s' (%s): %d chunks, %d grant(s)",
            document.title[:50],
            document.external_id,
            written,
            len(document.grants),
        )
        return LoadResult(
            document_id=document_id,
            chunks_count=written,
            grants_count=len(document.grants),
        )
