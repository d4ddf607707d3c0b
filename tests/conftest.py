"""
Pytest Configuration and Fixtures

Environment defaults and shared fixtures. The fakes themselves live in
``tests/fakes.py`` so test modules can import them directly.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults — MUST be before any citewise imports.
#
# Settings requires the Postgres credentials; setdefault fills them in on
# CI runners and fresh clones without a .env file.
# ---------------------------------------------------------------------------
load_dotenv()  # .env → os.environ (no-op if file is missing)

_test_env = {
    "POSTGRES_USER": "citewise",
    "POSTGRES_PASSWORD": "citewise_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "citewise_db",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
import uuid  # noqa: E402
from collections.abc import Callable  # noqa: E402
from datetime import UTC, datetime  # noqa: E402

import pytest  # noqa: E402

from citewise.models.orm import PRINCIPAL_CHANNEL, PRINCIPAL_TEAM, WILDCARD_PRINCIPAL  # noqa: E402
from citewise.models.schemas import RetrievalCandidate  # noqa: E402
from tests.fakes import FIXED_NOW, FakeChunk, FakeDocument, KeywordEmbedder  # noqa: E402


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_candidate() -> Callable[..., RetrievalCandidate]:
    """Factory for RetrievalCandidate with sensible defaults."""

    def _make(**overrides) -> RetrievalCandidate:
        values = {
            "chunk_id": uuid.uuid4(),
            "document_id": uuid.uuid4(),
            "ordinal": 0,
            "text": "Sample chunk text.",
            "embedding": [1.0, 0.0, 0.0],
            "title": "Sample document",
            "url": "https://example.com/sample",
            "updated_at": FIXED_NOW,
        }
        values.update(overrides)
        return RetrievalCandidate(**values)

    return _make


@pytest.fixture
def commission_corpus() -> list[FakeDocument]:
    """
    Two documents about commission reconciliation.

    The interview is visible to every team member; the Slack thread only
    to members of channel C001.
    """
    interview = FakeDocument(
        title="Agency Owner Interview - Commission Reconciliation",
        searchable=(
            "Agency owner interview commission reconciliation manual process "
            "automation needed Excel spreadsheets error-prone time-consuming"
        ),
        chunks=[
            FakeChunk(
                "Agency owner mentioned that commission reconciliation is their "
                "biggest pain point. They spend 2-3 days each month manually "
                "reconciling commissions in Excel spreadsheets."
            )
        ],
        grants=[(PRINCIPAL_TEAM, WILDCARD_PRINCIPAL)],
        updated_at=datetime(2024, 1, 16, tzinfo=UTC),
        url="https://dovetail.com/projects/seed/items/doc-1",
        author="Research Team",
    )
    thread = FakeDocument(
        title="Discussion about commission features",
        searchable=(
            "commission features automated tracking reconciliation customer "
            "feedback product"
        ),
        chunks=[
            FakeChunk(
                "Multiple customers have asked about automated commission "
                "tracking. Seems like a common request especially from agencies."
            )
        ],
        grants=[(PRINCIPAL_CHANNEL, "C001")],
        updated_at=datetime(2024, 1, 1, 12, tzinfo=UTC),
        url="https://slack.com/archives/C001/p1704067200000100",
        author="U12345",
    )
    return [interview, thread]


@pytest.fixture
def keyword_embedder() -> KeywordEmbedder:
    return KeywordEmbedder()
