"""
Retrieval Pipeline Orchestrator

Single entry point for callers (HTTP handlers, chat integrations, scripts).
Composes the individual services into three workflows:

**Retrieve** (``retrieve``):
    principal → PermissionResolver → LexicalShortlister →
    EmbeddingProvider(query) → VectorReranker → DiversitySelector

**Answer** (``answer``):
    question + grounding chunks → AnswerSynthesizer

**Ask** (``ask``):
    retrieve, then answer; an empty retrieval returns a fixed
    "nothing found" answer without calling the generator.

Stages run strictly in sequence. The pipeline holds no per-query state,
so one instance serves concurrent queries.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from citewise.core.context import PipelineContext
from citewise.models.schemas import AnswerResult, Principal, RetrievalCandidate
from citewise.repositories.corpus import CorpusRepository
from citewise.repositories.permissions import PermissionRepository
from citewise.services.answer import AnswerSynthesizer, Groundable
from citewise.services.diversity import DiversitySelector, document_redundancy
from citewise.services.interfaces import EmbeddingProvider, PermissionResolver
from citewise.services.lexical import LexicalShortlister
from citewise.services.rerank import VectorReranker

logger = logging.getLogger(__name__)

DEFAULT_RESULT_LIMIT: int = 12
NO_RESULTS_ANSWER: str = "No relevant information found for your question."


class RetrievalPipeline:
    """
    Permission-scoped hybrid retrieval and grounded answers.

    Usage::

        pipeline = RetrievalPipeline.from_context(context)
        chunks = await pipeline.retrieve(query, principal, limit=12)
        result = await pipeline.answer(query, chunks, self_check=True)
    """

    def __init__(
        self,
        *,
        permissions: PermissionResolver,
        shortlister: LexicalShortlister,
        embedder: EmbeddingProvider,
        reranker: VectorReranker,
        selector: DiversitySelector,
        synthesizer: AnswerSynthesizer,
        default_limit: int = DEFAULT_RESULT_LIMIT,
    ) -> None:
        self._permissions = permissions
        self._shortlister = shortlister
        self._embedder = embedder
        self._reranker = reranker
        self._selector = selector
        self._synthesizer = synthesizer
        self._default_limit = default_limit

    @classmethod
    def from_context(cls, context: PipelineContext) -> RetrievalPipeline:
        """Wire the Postgres repositories and tuned services from settings."""
        settings = context.settings
        session_factory = context.database.session_factory

        store = CorpusRepository(
            session_factory,
            floor=settings.LEXICAL_FLOOR,
            substring_score=settings.SUBSTRING_SCORE,
        )
        return cls(
            permissions=PermissionRepository(session_factory),
            shortlister=LexicalShortlister(
                store,
                limit=settings.SHORTLIST_SIZE,
                floor=settings.LEXICAL_FLOOR,
                substring_score=settings.SUBSTRING_SCORE,
            ),
            embedder=context.embedder,
            reranker=VectorReranker(
                settings.rerank_weights,
                lexical_mode=settings.LEXICAL_SIGNAL_MODE,
                lexical_constant=settings.LEXICAL_SIGNAL_CONSTANT,
                half_life_days=settings.RECENCY_HALF_LIFE_DAYS,
            ),
            selector=DiversitySelector(
                settings.MMR_LAMBDA,
                document_redundancy(settings.MMR_DOCUMENT_PENALTY),
            ),
            synthesizer=AnswerSynthesizer(
                context.generator,
                excerpt_length=settings.EXCERPT_LENGTH,
                answer_temperature=settings.ANSWER_TEMPERATURE,
                answer_max_tokens=settings.ANSWER_MAX_TOKENS,
                check_temperature=settings.CHECK_TEMPERATURE,
                check_max_tokens=settings.CHECK_MAX_TOKENS,
            ),
            default_limit=settings.DEFAULT_RESULT_LIMIT,
        )

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    async def retrieve(
        self,
        query: str,
        principal: Principal,
        limit: int | None = None,
    ) -> list[RetrievalCandidate]:
        """
        Return up to ``limit`` diverse, ranked chunks visible to ``principal``.

        Returns ``[]`` (not an error) when the principal sees no document or
        nothing matches lexically; neither case reaches the embedder.

        Raises:
            UpstreamError: Storage or embedding provider failure.
        """
        limit = self._default_limit if limit is None else limit

        permitted = await self._permissions.get_permitted_document_ids(principal)
        if not permitted:
            logger.info("No permitted documents for user=%s", principal.user_id)
            return []

        shortlist = await self._shortlister.shortlist(query, permitted)
        if not shortlist:
            logger.info("No lexical matches for query '%s'", query[:50])
            return []

        query_embedding = await self._embedder.embed(query)
        ranked = self._reranker.rerank(shortlist, query_embedding)
        selected = self._selector.select(ranked, limit)

        logger.info(
            "Retrieved for '%s': permitted=%d shortlist=%d selected=%d",
            query[:50],
            len(permitted),
            len(shortlist),
            len(selected),
        )
        return selected

    # ------------------------------------------------------------------
    # Answer
    # ------------------------------------------------------------------

    async def answer(
        self,
        question: str,
        chunks: Sequence[Groundable],
        self_check: bool = False,
    ) -> AnswerResult:
        """
        Generate a grounded answer citing ``chunks``.

        Raises:
            UpstreamError: The generator call failed.
        """
        return await self._synthesizer.answer(question, chunks, self_check=self_check)

    async def ask(
        self,
        question: str,
        principal: Principal,
        limit: int | None = None,
        self_check: bool = True,
    ) -> AnswerResult:
        """Retrieve then answer; short-circuits when nothing is retrieved."""
        chunks = await self.retrieve(question, principal, limit)
        if not chunks:
            return AnswerResult(answer_text=NO_RESULTS_ANSWER)
        return await self.answer(question, chunks, self_check=self_check)
