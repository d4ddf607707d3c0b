"""
Diversity Selection (MMR)

Greedy maximal-marginal-relevance selection of the final top-K:

    pick argmax  λ · relevance(c) − (1 − λ) · redundancy(c, selected)

Relevance is the candidate's ``final_score``. The default redundancy is a
document-identity proxy: a fixed penalty when an already selected chunk
comes from the same document, 0 otherwise. It discourages repeats but
never forbids them, so a single-document pool still fills K slots.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from citewise.models.schemas import RetrievalCandidate

logger = logging.getLogger(__name__)

DEFAULT_LAMBDA: float = 0.5
DEFAULT_DOCUMENT_PENALTY: float = 0.9

RedundancyFn = Callable[[RetrievalCandidate, Sequence[RetrievalCandidate]], float]


def document_redundancy(penalty: float = DEFAULT_DOCUMENT_PENALTY) -> RedundancyFn:
    """Redundancy = ``penalty`` if a selected chunk shares the document, else 0."""

    def redundancy(
        candidate: RetrievalCandidate,
        selected: Sequence[RetrievalCandidate],
    ) -> float:
        if any(s.document_id == candidate.document_id for s in selected):
            return penalty
        return 0.0

    return redundancy


class DiversitySelector:
    """
    Greedy MMR over reranked candidates.

    Args:
        lambda_: Relevance/diversity tradeoff in [0, 1] (1 = pure relevance).
        redundancy: Redundancy function; defaults to
            ``document_redundancy(DEFAULT_DOCUMENT_PENALTY)``.
    """

    def __init__(
        self,
        lambda_: float = DEFAULT_LAMBDA,
        redundancy: RedundancyFn | None = None,
    ) -> None:
        if not 0.0 <= lambda_ <= 1.0:
            raise ValueError(f"lambda_ must be within [0, 1] (got {lambda_})")
        self._lambda = lambda_
        self._redundancy = redundancy or document_redundancy()

    def select(
        self,
        candidates: Sequence[RetrievalCandidate],
        k: int,
    ) -> list[RetrievalCandidate]:
        """
        Select up to ``k`` candidates.

        The first pick is always the highest ``final_score`` (earliest on
        ties). Output length is ``min(k, len(candidates))``.
        """
        if k <= 0 or not candidates:
            return []

        pool = list(candidates)
        first = max(range(len(pool)), key=lambda i: pool[i].final_score)
        selected = [pool.pop(first)]

        while len(selected) < k and pool:
            best_idx = 0
            best_score = float("-inf")
            for i, candidate in enumerate(pool):
                mmr = self._lambda * candidate.final_score - (
                    1.0 - self._lambda
                ) * self._redundancy(candidate, selected)
                if mmr > best_score:
                    best_score = mmr
                    best_idx = i
            selected.append(pool.pop(best_idx))

        logger.debug(
            "MMR selected %d/%d candidates from %d documents",
            len(selected),
            len(candidates),
            len({c.document_id for c in selected}),
        )
        return selected
