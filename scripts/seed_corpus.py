#!/usr/bin/env python3
"""
Seed Sample Corpus

Loads two sample documents into the CITEWISE corpus:
    - A research interview visible to every team member.
    - A Slack thread visible only to members of channel C001.

Requires a migrated database and embedding credentials (see .env).

Usage:
    python scripts/seed_corpus.py
    python scripts/seed_corpus.py --dry-run  # Print documents, write nothing
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import UTC, datetime

from citewise.core.config import Settings
from citewise.core.context import build_context
from citewise.core.exceptions import CitewiseError
from citewise.core.logging import setup_logging
from citewise.models.orm import PRINCIPAL_CHANNEL, PRINCIPAL_TEAM, WILDCARD_PRINCIPAL
from citewise.models.schemas import CorpusDocument, PermissionGrant
from citewise.repositories.corpus import CorpusRepository
from citewise.repositories.permissions import PermissionRepository
from citewise.services.ingestion import CorpusLoader

SAMPLE_DOCUMENTS: list[CorpusDocument] = [
    CorpusDocument(
        source_kind="dovetail",
        source_external_id="dovetail-seed-1",
        source_name="Dovetail Seed Project",
        source_visibility={"public": True},
        external_id="dovetail-doc-1",
        title="Agency Owner Interview - Commission Reconciliation",
        url="https://dovetail.com/projects/seed/items/doc-1",
        author="Research Team",
        created_at=datetime(2024, 1, 15, tzinfo=UTC),
        updated_at=datetime(2024, 1, 16, tzinfo=UTC),
        text=(
            "Agency owner mentioned that commission reconciliation is their "
            "biggest pain point. They spend 2-3 days each month manually "
            "reconciling commissions in Excel spreadsheets. The process is "
            "error-prone and they have found discrepancies of up to $50,000 "
            "in a single month. They urgently need an automated solution."
        ),
        searchable=(
            "Agency owner interview commission reconciliation manual process "
            "automation needed Excel spreadsheets error-prone time-consuming"
        ),
        raw={
            "highlights": [
                "Commission tracking is completely manual",
                "Takes 2-3 days per month for reconciliation",
                "Excel-based process is error-prone",
                "Need automated reconciliation system",
            ]
        },
        grants=[
            PermissionGrant(principal_type=PRINCIPAL_TEAM, principal_id=WILDCARD_PRINCIPAL)
        ],
    ),
    CorpusDocument(
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
        text=(
            "Multiple customers have asked about automated commission "
            "tracking. Seems like a common request especially from agencies."
        ),
        searchable=(
            "commission features automated tracking reconciliation customer "
            "feedback product"
        ),
        raw={"messages": [{"ts": "1704067200.000100", "user": "U12345"}]},
        grants=[PermissionGrant(principal_type=PRINCIPAL_CHANNEL, principal_id="C001")],
    ),
]


def log_info(msg: str) -> None:
    print(f"ℹ {msg}")


def log_success(msg: str) -> None:
    print(f"✓ {msg}")


def log_error(msg: str) -> None:
    print(f"✗ {msg}")


async def seed(dry_run: bool = False) -> int:
    """Load the sample documents; returns the number of failures."""
    if dry_run:
        for doc in SAMPLE_DOCUMENTS:
            grants = ", ".join(f"{g.principal_type}={g.principal_id}" for g in doc.grants)
            log_info(f"{doc.external_id}: '{doc.title}' [{grants}]")
        return 0

    settings = Settings()  # type: ignore[call-arg]
    setup_logging(settings)
    context = await build_context(settings)

    session_factory = context.database.session_factory
    loader = CorpusLoader(
        CorpusRepository(session_factory),
        PermissionRepository(session_factory),
        context.embedder,
    )

    failures = 0
    try:
        for doc in SAMPLE_DOCUMENTS:
            try:
                result = await loader.load(doc)
            except CitewiseError as e:
                log_error(f"{doc.external_id}: {e}")
                failures += 1
                continue
            log_success(
                f"{doc.title}: {result.chunks_count} chunk(s), "
                f"{result.grants_count} grant(s)"
            )
    finally:
        await context.aclose()

    return failures


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the CITEWISE sample corpus")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the sample documents without writing anything",
    )
    args = parser.parse_args()

    log_info(f"Seeding {len(SAMPLE_DOCUMENTS)} sample documents...")
    failures = asyncio.run(seed(dry_run=args.dry_run))

    if failures:
        log_error(f"{failures} document(s) failed")
        sys.exit(1)
    log_success("Seed completed")


if __name__ == "__main__":
    main()
