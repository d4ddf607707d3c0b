"""
Chunking Service Unit Tests

Verifies TextChunker: ordinals, document ownership, sizing, overlap and
validation.

No external services required — runs entirely offline.
"""

from __future__ import annotations

import uuid

import pytest

from citewise.models.schemas import ChunkDraft
from citewise.services.chunking import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, TextChunker

DOCUMENT_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


@pytest.fixture
def chunker() -> TextChunker:
    return TextChunker()


@pytest.fixture
def interview_text() -> str:
    """Transcript long enough to require several chunks at 500/100."""
    paragraphs = [
        f"Question {i}. The agency owner described how commissions are "
        "reconciled each month against carrier statements. " * 4
        for i in range(7)
    ]
    return "\n\n".join(paragraphs)


class TestSplitting:
    def test_long_text_produces_ordered_drafts(
        self, chunker: TextChunker, interview_text: str
    ) -> None:
        drafts = chunker.split(interview_text, DOCUMENT_ID)

        assert len(drafts) > 1
        assert all(isinstance(d, ChunkDraft) for d in drafts)
        assert [d.ordinal for d in drafts] == list(range(len(drafts)))

    def test_short_text_is_single_draft(self, chunker: TextChunker) -> None:
        drafts = chunker.split("Commission tracking is manual.", DOCUMENT_ID)

        assert len(drafts) == 1
        assert drafts[0].ordinal == 0
        assert drafts[0].text == "Commission tracking is manual."

    def test_blank_text_yields_nothing(self, chunker: TextChunker) -> None:
        assert chunker.split("   \n\n  ", DOCUMENT_ID) == []

    def test_every_paragraph_survives(
        self, chunker: TextChunker, interview_text: str
    ) -> None:
        drafts = chunker.split(interview_text, DOCUMENT_ID)

        for paragraph in interview_text.split("\n\n"):
            head = paragraph.strip()[:40]
            assert any(head in d.text for d in drafts), f"Content lost: {head}..."


class TestDraftMetadata:
    def test_document_id_propagated(
        self, chunker: TextChunker, interview_text: str
    ) -> None:
        drafts = chunker.split(interview_text, DOCUMENT_ID)

        assert {d.document_id for d in drafts} == {DOCUMENT_ID}

    def test_caller_metadata_merged_with_chunk_size(
        self, chunker: TextChunker, interview_text: str
    ) -> None:
        drafts = chunker.split(
            interview_text,
            DOCUMENT_ID,
            metadata={"type": "interview_highlight"},
        )

        for draft in drafts:
            assert draft.metadata["type"] == "interview_highlight"
            assert draft.metadata["chunk_size"] == len(draft.text)


class TestSizing:
    def test_drafts_respect_max_size(
        self, chunker: TextChunker, interview_text: str
    ) -> None:
        for draft in chunker.split(interview_text, DOCUMENT_ID):
            # LangChain may slightly exceed chunk_size at separator boundaries
            assert len(draft.text) <= chunker.chunk_size + 50

    def test_smaller_size_means_more_drafts(self, interview_text: str) -> None:
        small = TextChunker(chunk_size=200, chunk_overlap=50)
        default = TextChunker()

        assert len(small.split(interview_text, DOCUMENT_ID)) > len(
            default.split(interview_text, DOCUMENT_ID)
        )

    def test_consecutive_drafts_overlap(self) -> None:
        chunker = TextChunker(chunk_size=50, chunk_overlap=10)
        text = " ".join(f"word{i}" for i in range(50))

        drafts = chunker.split(text, DOCUMENT_ID)

        assert len(drafts) >= 2
        for current, following in zip(drafts, drafts[1:]):
            shared = set(current.text.split()) & set(following.text.split())
            assert shared, f"No overlap between ordinals {current.ordinal} and {following.ordinal}"

    def test_defaults(self) -> None:
        assert DEFAULT_CHUNK_SIZE == 500
        assert DEFAULT_CHUNK_OVERLAP == 100

    def test_properties_match_config(self) -> None:
        chunker = TextChunker(chunk_size=300, chunk_overlap=75)

        assert chunker.chunk_size == 300
        assert chunker.chunk_overlap == 75


class TestValidation:
    @pytest.mark.parametrize("overlap", [100, 200])
    def test_overlap_must_be_less_than_size(self, overlap: int) -> None:
        with pytest.raises(ValueError, match="chunk_overlap"):
            TextChunker(chunk_size=100, chunk_overlap=overlap)
