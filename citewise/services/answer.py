"""
Answer Synthesis

Turns retrieved chunks into a grounded, citation-constrained answer.

Flow:
    1. Number the chunks as snippets ``[1]..[n]`` (excerpts truncated).
    2. One low-temperature generation call under a strict system prompt.
    3. Optional self-check call; if it reports unsupported claims, apply
       the hedging rewrite. Best effort: a failing check never fails
       the answer.
    4. Extract ``[n]`` citations in first-appearance order, drop indices
       outside ``1..n``, de-duplicate, and map them to sources.

Generator failures propagate (``UpstreamError``); nothing is cached and
no partial answer is returned.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Sequence
from typing import Final

from citewise.models.schemas import (
    AnswerResult,
    GroundingChunk,
    GroundingSnippet,
    RetrievalCandidate,
    SourceCitation,
)
from citewise.services.hedging import soften_assertions
from citewise.services.interfaces import Generator

logger = logging.getLogger(__name__)

DEFAULT_EXCERPT_LENGTH: int = 500

SYSTEM_PROMPT: Final[str] = (
    "You are a research assistant. Answer using ONLY the numbered snippets "
    "provided by the user.\n\n"
    "Strict rules:\n"
    "1. Every factual claim must cite its snippet number in square brackets, "
    "e.g. [1] or [2].\n"
    "2. Never state anything the snippets do not support.\n"
    "3. If the snippets do not contain enough evidence, say so explicitly "
    "and state what is missing.\n"
    "4. Answer in 120-180 words.\n"
    "5. Use **bold** for key phrases."
)

USER_PROMPT: Final[str] = """Question: {question}

Available snippets:
{snippets}

Write the answer using **bold** for key phrases. Cite all claims."""

SELF_CHECK_PROMPT: Final[str] = (
    "Check whether any statements in the answer lack a citation or are not "
    "supported by the snippets. Return only the unsupported claims, or "
    'exactly "None" if there are none.'
)

# Reports at or below this length are treated as "no issues"
MIN_ISSUE_REPORT_LENGTH: int = 10

_CITATION_RE = re.compile(r"\[(\d{1,6})\]")

Groundable = GroundingChunk | RetrievalCandidate


def build_snippets(
    chunks: Sequence[Groundable],
    excerpt_length: int = DEFAULT_EXCERPT_LENGTH,
) -> list[GroundingSnippet]:
    """Number chunks from 1 and truncate their text to ``excerpt_length``."""
    return [
        GroundingSnippet(
            index=i,
            title=chunk.title,
            url=chunk.url,
            excerpt=chunk.text[:excerpt_length],
        )
        for i, chunk in enumerate(chunks, 1)
    ]


def format_snippets(snippets: Sequence[GroundingSnippet]) -> str:
    return "\n\n".join(
        f"[{s.index}] {s.title}\nURL: {s.url}\nContent: {s.excerpt}" for s in snippets
    )


def extract_citations(text: str, snippet_count: int) -> list[int]:
    """
    Return valid citation indices in order of first appearance.

    Indices outside ``1..snippet_count`` are dropped silently. Never raises.
    """
    seen: list[int] = []
    for match in _CITATION_RE.finditer(text):
        index = int(match.group(1))
        if 1 <= index <= snippet_count and index not in seen:
            seen.append(index)
    return seen


def has_reported_issues(report: str) -> bool:
    """True when a self-check report names at least one real issue."""
    cleaned = report.strip()
    if cleaned.strip(" .\"'").lower() == "none":
        return False
    return len(cleaned) > MIN_ISSUE_REPORT_LENGTH


class AnswerSynthesizer:
    """
    Grounded answer generation with validated citations.

    Usage::

        synthesizer = AnswerSynthesizer(generator)
        result = await synthesizer.answer(question, chunks, self_check=True)
        for source in result.sources:
            print(source.title, source.url)

    Args:
        generator: Chat completion backend.
        excerpt_length: Max characters of each snippet shown to the model.
        hedge: Text transform applied when the self-check finds issues.
    """

    def __init__(
        self,
        generator: Generator,
        *,
        excerpt_length: int = DEFAULT_EXCERPT_LENGTH,
        answer_temperature: float = 0.3,
        answer_max_tokens: int = 300,
        check_temperature: float = 0.0,
        check_max_tokens: int = 100,
        hedge: Callable[[str], str] = soften_assertions,
    ) -> None:
        self._generator = generator
        self._excerpt_length = excerpt_length
        self._answer_temperature = answer_temperature
        self._answer_max_tokens = answer_max_tokens
        self._check_temperature = check_temperature
        self._check_max_tokens = check_max_tokens
        self._hedge = hedge

    async def answer(
        self,
        question: str,
        chunks: Sequence[Groundable],
        self_check: bool = False,
    ) -> AnswerResult:
        """
        Generate an answer grounded in ``chunks``.

        Issues one generator call, or two when ``self_check`` is set.

        Raises:
            UpstreamError: The primary generation call failed.
        """
        snippets = build_snippets(chunks, self._excerpt_length)
        user_prompt = USER_PROMPT.format(
            question=question,
            snippets=format_snippets(snippets),
        )

        answer_text = await self._generator.complete(
            SYSTEM_PROMPT,
            user_prompt,
            temperature=self._answer_temperature,
            max_tokens=self._answer_max_tokens,
        )

        if self_check:
            answer_text = await self._self_check(answer_text, snippets)

        citations = extract_citations(answer_text, len(snippets))
        sources = [
            SourceCitation(
                title=snippets[i - 1].title,
                url=snippets[i - 1].url,
                excerpt=snippets[i - 1].excerpt,
            )
            for i in citations
        ]

        logger.info(
            "Answer generated (snippets=%d, cited=%s, length=%d)",
            len(snippets),
            citations,
            len(answer_text),
        )
        return AnswerResult(answer_text=answer_text, sources=sources, citations=citations)

    async def _self_check(
        self,
        answer_text: str,
        snippets: Sequence[GroundingSnippet],
    ) -> str:
        """Return the answer, hedged if the verifier reports issues."""
        payload = json.dumps([s.model_dump() for s in snippets], ensure_ascii=False)
        try:
            report = await self._generator.complete(
                SELF_CHECK_PROMPT,
                f"Answer: {answer_text}\n\nSnippets: {payload}",
                temperature=self._check_temperature,
                max_tokens=self._check_max_tokens,
            )
        except Exception as e:
            logger.warning(
                "Self-check failed (%s), returning unverified answer: %s",
                type(e).__name__,
                str(e),
            )
            return answer_text

        if not has_reported_issues(report):
            return answer_text

        logger.info("Self-check reported issues, hedging answer: %s", report[:200])
        return self._hedge(answer_text)
