"""
Corpus Loading Unit Tests

CorpusLoader wiring: upsert order, chunk/embedding alignment and grant
replacement, with the repositories mocked out.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from citewise.core.exceptions import UpstreamError
from citewise.models.schemas import CorpusDocument, PermissionGrant
from citewise.services.chunking import TextChunker
from citewise.services.ingestion import CorpusLoader
from tests.fakes import KeywordEmbedder

SOURCE_ID = uuid.UUID("00000000-0000-0000-0000-0000000000aa")
DOCUMENT_ID = uuid.UUID("00000000-0000-0000-0000-0000000000bb")


@pytest.fixture
def document() -> CorpusDocument:
    return CorpusDocument(
        source_kind="slack",
        source_external_id="slack-T001-C001",
        source_name="Slack #product-feedback",
        source_visibility={"team": "T001", "channel": "C001"},
        external_id="slack-C001-1704067200.000100",
        title="Discussion about commission features",
        url="https://slack.com/archives/C001/p1704067200000100",
        author="U12345",
        created_at=datetime(2024, 1, 1, 12, tzinfo=UTC),
        updated_at=datetime(2024, 1, 1, 12, tzinfo=UTC),
        text="Multiple customers have asked about automated commission tracking.",
        grants=[PermissionGrant(principal_type="slack_channel", principal_id="C001")],
    )


@pytest.fixture
def corpus() -> MagicMock:
    repo = MagicMock()
    repo.upsert_source = AsyncMock(return_value=SOURCE_ID)
    repo.upsert_document = AsyncMock(return_value=DOCUMENT_ID)
    repo.upsert_chunks = AsyncMock(
        side_effect=lambda document_id, drafts, embeddings: len(drafts)
    )
    return repo


@pytest.fixture
def permissions() -> MagicMock:
    repo = MagicMock()
    repo.set_document_permissions = AsyncMock()
    return repo


class TestCorpusLoader:
    @pytest.mark.asyncio
    async def test_load_writes_everything(self, document, corpus, permissions) -> None:
        embedder = KeywordEmbedder()
        loader = CorpusLoader(corpus, permissions, embedder)

        result = await loader.load(document)

        assert result.document_id == DOCUMENT_ID
        assert result.chunks_count == 1
        assert result.grants_count == 1

        corpus.upsert_source.assert_awaited_once_with(
            kind="slack",
            external_id="slack-T001-C001",
            name="Slack #product-feedback",
            visibility={"team": "T001", "channel": "C001"},
        )
        doc_kwargs = corpus.upsert_document.call_args.kwargs
        assert doc_kwargs["source_id"] == SOURCE_ID
        assert doc_kwargs["searchable"].startswith("Discussion about commission features\n")

        permissions.set_document_permissions.assert_awaited_once_with(
            DOCUMENT_ID, document.grants
        )

    @pytest.mark.asyncio
    async def test_one_embedding_per_chunk(self, document, corpus, permissions) -> None:
        document = document.model_copy(update={"text": "commission tracking. " * 100})
        embedder = KeywordEmbedder()
        loader = CorpusLoader(
            corpus,
            permissions,
            embedder,
            chunker=TextChunker(chunk_size=200, chunk_overlap=20),
        )

        result = await loader.load(document)

        document_id, drafts, embeddings = corpus.upsert_chunks.call_args.args
        assert len(drafts) == len(embeddings) == result.chunks_count
        assert result.chunks_count > 1
        assert embedder.calls == 1
        assert document_id == DOCUMENT_ID
        assert all(d.document_id == DOCUMENT_ID for d in drafts)

    @pytest.mark.asyncio
    async def test_reload_with_fewer_chunks(self, document, corpus, permissions) -> None:
        loader = CorpusLoader(
            corpus,
            permissions,
            KeywordEmbedder(),
            chunker=TextChunker(chunk_size=200, chunk_overlap=20),
        )

        await loader.load(document.model_copy(update={"text": "commission tracking. " * 100}))
        result = await loader.load(document)

        assert result.chunks_count == 1
        document_id, drafts, _ = corpus.upsert_chunks.call_args.args
        assert document_id == DOCUMENT_ID
        assert [d.ordinal for d in drafts] == [0]

    @pytest.mark.asyncio
    async def test_explicit_searchable_kept(self, document, corpus, permissions) -> None:
        document = document.model_copy(update={"searchable": "commission features"})
        loader = CorpusLoader(corpus, permissions, KeywordEmbedder())

        await loader.load(document)

        assert corpus.upsert_document.call_args.kwargs["searchable"] == "commission features"

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self, document, corpus, permissions) -> None:
        corpus.upsert_document = AsyncMock(side_effect=UpstreamError("postgres", "down"))
        embedder = KeywordEmbedder()
        loader = CorpusLoader(corpus, permissions, embedder)

        with pytest.raises(UpstreamError):
            await loader.load(document)

        assert embedder.calls == 0
        permissions.set_document_permissions.assert_not_called()
