"""
Chunking Service

Splits document text into ordered chunk drafts ready for embedding and
upsert. Uses LangChain's RecursiveCharacterTextSplitter for boundary
detection (paragraph > line > sentence > word).

Defaults:
    - chunk_size=500 chars: matches the excerpt length shown to the
      generator, so a cited snippet is a whole chunk
    - chunk_overlap=100 chars: preserves context across boundaries
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from langchain_text_splitters import RecursiveCharacterTextSplitter

from citewise.models.schemas import ChunkDraft

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE: int = 500
DEFAULT_CHUNK_OVERLAP: int = 100


class TextChunker:
    """
    Splits text into overlapping chunk drafts with sequential ordinals.

    Usage::

        chunker = TextChunker()
        drafts = chunker.split(text, document_id, metadata={"type": "interview"})
        # Each draft has: document_id, ordinal, text, metadata

    Args:
        chunk_size: Maximum characters per chunk.
        chunk_overlap: Characters shared between consecutive chunks.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    ) -> None:
        if chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap ({chunk_overlap}) must be less than "
                f"chunk_size ({chunk_size})"
            )

        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=len,
            separators=["\n\n", "\n", ". ", " ", ""],
        )
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

    @property
    def chunk_size(self) -> int:
        """Maximum characters per chunk."""
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        """Characters shared between consecutive chunks."""
        return self._chunk_overlap

    def split(
        self,
        text: str,
        document_id: UUID,
        metadata: dict[str, Any] | None = None,
    ) -> list[ChunkDraft]:
        """
        Split ``text`` into chunk drafts owned by ``document_id``.

        Returns:
            Drafts with ordinals 0..n-1. A blank text yields no drafts;
            text shorter than chunk_size yields a single draft.
        """
        texts = [t for t in self._splitter.split_text(text) if t.strip()]

        drafts = [
            ChunkDraft(
                document_id=document_id,
                ordinal=i,
                text=chunk_text,
                metadata={**(metadata or {}), "chunk_size": len(chunk_text)},
            )
            for i, chunk_text in enumerate(texts)
        ]

        logger.info(
            "Split document %s into %d chunks (size=%d, overlap=%d)",
            document_id,
            len(drafts),
            self._chunk_size,
            self._chunk_overlap,
        )
        return drafts
