"""
Lexical Shortlisting Unit Tests

Trigram similarity, substring scoring, merge rules and the shortlister's
short-circuit on an empty permission set.
"""

from __future__ import annotations

import uuid

import pytest

from citewise.services.lexical import (
    LexicalShortlister,
    lexical_score,
    merge_candidates,
    substring_match,
    trigram_similarity,
)
from tests.fakes import FakeChunk, FakeDocument, InMemoryCandidateStore


class TestTrigramSimilarity:
    def test_identical_strings(self) -> None:
        assert trigram_similarity("commission", "commission") == pytest.approx(1.0)

    def test_case_insensitive(self) -> None:
        assert trigram_similarity("Commission", "COMMISSION") == pytest.approx(1.0)

    def test_disjoint_strings(self) -> None:
        assert trigram_similarity("abc", "xyz") == 0.0

    def test_empty_strings(self) -> None:
        assert trigram_similarity("", "") == 0.0
        assert trigram_similarity("", "commission") == 0.0

    def test_symmetric(self) -> None:
        a, b = "commission reconciliation", "automated commission tracking"
        assert trigram_similarity(a, b) == pytest.approx(trigram_similarity(b, a))

    def test_matches_pg_trgm_for_known_pair(self) -> None:
        # pg_trgm: similarity('word', 'two words') = 4/11
        assert trigram_similarity("word", "two words") == pytest.approx(4 / 11)

    def test_partial_overlap_is_between_bounds(self) -> None:
        score = trigram_similarity("reconcile", "reconciliation")
        assert 0.0 < score < 1.0


class TestLexicalScore:
    def test_substring_bonus_dominates_weak_fuzzy_match(self) -> None:
        score, matched = lexical_score(
            "Excel",
            "unrelated searchable text",
            "They reconcile in excel spreadsheets.",
        )
        assert matched
        assert score == pytest.approx(0.8)

    def test_fuzzy_only(self) -> None:
        score, matched = lexical_score(
            "commission reconciliation",
            "commission reconciliation",
            "nothing relevant",
        )
        assert not matched
        assert score == pytest.approx(1.0)

    def test_substring_match_is_case_insensitive(self) -> None:
        assert substring_match("COMMISSION", "automated commission tracking")
        assert not substring_match("payroll", "automated commission tracking")


class TestMergeCandidates:
    def test_drops_scores_at_or_below_floor(self, make_candidate) -> None:
        kept = make_candidate(lex_score=0.5)
        at_floor = make_candidate(lex_score=0.1)
        below = make_candidate(lex_score=0.05)

        result = merge_candidates([kept, at_floor, below], limit=10)

        assert result == [kept]

    def test_keeps_best_score_per_chunk(self, make_candidate) -> None:
        chunk_id = uuid.uuid4()
        weak = make_candidate(chunk_id=chunk_id, lex_score=0.3)
        strong = make_candidate(chunk_id=chunk_id, lex_score=0.8)

        result = merge_candidates([weak, strong], limit=10)

        assert len(result) == 1
        assert result[0].lex_score == 0.8

    def test_sorted_descending_and_truncated(self, make_candidate) -> None:
        candidates = [make_candidate(lex_score=s) for s in (0.2, 0.9, 0.5, 0.7)]

        result = merge_candidates(candidates, limit=2)

        assert [c.lex_score for c in result] == [0.9, 0.7]

    def test_ties_keep_input_order(self, make_candidate) -> None:
        first = make_candidate(lex_score=0.5)
        second = make_candidate(lex_score=0.5)

        assert merge_candidates([first, second], limit=10) == [first, second]


class TestLexicalShortlister:
    @pytest.fixture
    def documents(self) -> list[FakeDocument]:
        return [
            FakeDocument(
                title="Reconciliation interview",
                searchable="commission reconciliation excel",
                chunks=[FakeChunk("Commission reconciliation takes days.")],
                grants=[],
            ),
            FakeDocument(
                title="Pricing notes",
                searchable="pricing tiers discount",
                chunks=[FakeChunk("Discounts for annual plans.")],
                grants=[],
            ),
        ]

    @pytest.mark.asyncio
    async def test_empty_permission_set_skips_store(self, documents) -> None:
        store = InMemoryCandidateStore(documents)
        shortlister = LexicalShortlister(store)

        result = await shortlister.shortlist("commission", [])

        assert result == []
        assert store.calls == 0

    @pytest.mark.asyncio
    async def test_only_permitted_documents_returned(self, documents) -> None:
        store = InMemoryCandidateStore(documents)
        shortlister = LexicalShortlister(store)
        permitted = [documents[1].document_id]

        result = await shortlister.shortlist("commission reconciliation", permitted)

        assert all(c.document_id in permitted for c in result)

    @pytest.mark.asyncio
    async def test_matching_chunk_shortlisted(self, documents) -> None:
        store = InMemoryCandidateStore(documents)
        shortlister = LexicalShortlister(store)
        permitted = [d.document_id for d in documents]

        result = await shortlister.shortlist("commission reconciliation", permitted)

        assert [c.document_id for c in result] == [documents[0].document_id]
        assert result[0].lex_score > 0.1

    @pytest.mark.asyncio
    async def test_limit_bounds_result(self) -> None:
        doc = FakeDocument(
            title="Many chunks",
            searchable="commission",
            chunks=[FakeChunk(f"commission note {i}", ordinal=i) for i in range(10)],
            grants=[],
        )
        shortlister = LexicalShortlister(InMemoryCandidateStore([doc]), limit=3)

        result = await shortlister.shortlist("commission", [doc.document_id])

        assert len(result) == 3
