"""
Vector Reranking

Combines three signals into the final ranking score of each shortlisted
chunk:

    final = w_v * cosine(query, chunk) + w_l * lexical + w_r * recency

``lexical`` is either the candidate's own ``lex_score`` (mode ``score``)
or a fixed constant (mode ``constant``), in which case the lexical stage
acts purely as a shortlist filter. Recency decays exponentially with the
age of the parent document: ``exp(-age_days / half_life)``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import UTC, datetime
from typing import Literal

import numpy as np

from citewise.core.config import RerankWeights
from citewise.core.exceptions import EmbeddingDimensionError
from citewise.models.schemas import RetrievalCandidate

logger = logging.getLogger(__name__)

DEFAULT_HALF_LIFE_DAYS: float = 30.0
SECONDS_PER_DAY: float = 86400.0

LexicalSignalMode = Literal["score", "constant"]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Normalized dot product of two vectors.

    Returns 0.0 when either vector has zero norm.

    Raises:
        EmbeddingDimensionError: The vectors have different lengths.
    """
    if len(a) != len(b):
        raise EmbeddingDimensionError(expected=len(a), actual=len(b))

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def recency_score(
    updated_at: datetime,
    now: datetime,
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
) -> float:
    """
    Exponential recency decay.

    ``recency_score(age=0) == 1`` and ``recency_score(age=30d) ≈ 0.368``
    with the default half-life. Naive datetimes are read as UTC and
    timestamps in the future count as age 0.
    """
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    age_days = max((now - updated_at).total_seconds() / SECONDS_PER_DAY, 0.0)
    return math.exp(-age_days / half_life_days)


class VectorReranker:
    """
    Scores shortlisted candidates against the query embedding.

    Usage::

        reranker = VectorReranker(RerankWeights(), lexical_mode="score")
        ranked = reranker.rerank(candidates, query_embedding)
        # ranked[0].final_score >= ranked[1].final_score >= ...

    Args:
        weights: Validated vector / lexical / recency weights.
        lexical_mode: ``score`` uses each candidate's ``lex_score``;
            ``constant`` uses ``lexical_constant`` for every candidate.
        lexical_constant: Value used in ``constant`` mode.
        half_life_days: Recency decay constant.
        clock: Returns "now" (injectable for tests).
    """

    def __init__(
        self,
        weights: RerankWeights | None = None,
        *,
        lexical_mode: LexicalSignalMode = "score",
        lexical_constant: float = 0.3,
        half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if lexical_mode not in ("score", "constant"):
            raise ValueError(f"Unknown lexical mode: {lexical_mode!r}")
        if half_life_days <= 0:
            raise ValueError("half_life_days must be positive")

        self._weights = weights or RerankWeights()
        self._lexical_mode = lexical_mode
        self._lexical_constant = lexical_constant
        self._half_life_days = half_life_days
        self._clock = clock or (lambda: datetime.now(UTC))

    def _lexical_signal(self, candidate: RetrievalCandidate) -> float:
        if self._lexical_mode == "constant":
            return self._lexical_constant
        return candidate.lex_score

    def rerank(
        self,
        candidates: Sequence[RetrievalCandidate],
        query_embedding: Sequence[float],
    ) -> list[RetrievalCandidate]:
        """
        Return new candidates with scores filled in, best first.

        Raises:
            EmbeddingDimensionError: A chunk embedding does not match
                the query embedding length.
        """
        now = self._clock()
        w = self._weights

        scored: list[RetrievalCandidate] = []
        for candidate in candidates:
            vector = cosine_similarity(query_embedding, candidate.embedding)
            recency = recency_score(candidate.updated_at, now, self._half_life_days)
            final = (
                w.vector * vector
                + w.lexical * self._lexical_signal(candidate)
                + w.recency * recency
            )
            scored.append(
                replace(
                    candidate,
                    vector_score=vector,
                    recency_score=recency,
                    final_score=final,
                )
            )

        scored.sort(key=lambda c: c.final_score, reverse=True)
        if scored:
            logger.debug(
                "Reranked %d candidates (top=%.4f, mode=%s)",
                len(scored),
                scored[0].final_score,
                self._lexical_mode,
            )
        return scored
