"""
Ask API Router

HTTP endpoints over the retrieval pipeline. Callers (chat integrations,
internal tools) authenticate upstream and pass the principal explicitly.

Endpoints:
    POST /search  — Permission-scoped hybrid retrieval.
    POST /ask     — Retrieve, then generate a grounded, cited answer.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from citewise.core.exceptions import UpstreamError
from citewise.schemas.ask import (
    AskRequest,
    AskResponse,
    RankedChunk,
    SearchRequest,
)
from citewise.services.pipeline import RetrievalPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_pipeline(request: Request) -> RetrievalPipeline:
    """FastAPI dependency — returns the process-wide RetrievalPipeline."""
    return request.app.state.pipeline


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/search",
    response_model=list[RankedChunk],
    summary="Permission-scoped hybrid retrieval",
)
async def search(
    request: SearchRequest,
    pipeline: RetrievalPipeline = Depends(get_pipeline),
) -> list[RankedChunk]:
    """
    Retrieve the most relevant chunks the principal is allowed to see.

    Lexical shortlist → vector rerank with recency → MMR diversification.
    Returns an empty list when nothing is visible or nothing matches.
    """
    try:
        chunks = await pipeline.retrieve(
            request.query,
            request.to_principal(),
            request.k,
        )
    except UpstreamError as e:
        logger.error("Search failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e)) from e

    return [RankedChunk.from_candidate(c) for c in chunks]


@router.post(
    "/ask",
    response_model=AskResponse,
    summary="Ask a question grounded in permitted documents",
    responses={502: {"description": "Storage, embedding or generator failure"}},
)
async def ask(
    request: AskRequest,
    pipeline: RetrievalPipeline = Depends(get_pipeline),
) -> AskResponse:
    """
    Answer a question using the full pipeline.

    Every source in the response is cited as ``[n]`` in the answer text.
    When no permitted document matches, a fixed "nothing found" answer is
    returned without calling the generator.
    """
    logger.info(
        "/ask request: question='%s', k=%d, self_check=%s",
        request.question[:50],
        request.k,
        request.self_check,
    )

    try:
        result = await pipeline.ask(
            request.question,
            request.to_principal(),
            limit=request.k,
            self_check=request.self_check,
        )
    except UpstreamError as e:
        logger.error("Ask failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e)) from e

    return AskResponse(answer=result.answer_text, sources=result.sources)
