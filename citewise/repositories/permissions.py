"""
Permission Repository

Resolves which documents a principal may see, and replaces the grants of
a document. A grant with ``principal_id = '*'`` matches every principal of
its type.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import and_, delete, insert, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from citewise.core.exceptions import UpstreamError
from citewise.models.orm import (
    PRINCIPAL_CHANNEL,
    PRINCIPAL_TEAM,
    PRINCIPAL_USER,
    WILDCARD_PRINCIPAL,
    PermissionRecord,
)
from citewise.models.schemas import PermissionGrant, Principal
from citewise.services.interfaces import PermissionResolver

logger = logging.getLogger(__name__)


def principal_grants(principal: Principal) -> list[tuple[str, str]]:
    """
    Every (principal_type, principal_id) pair that grants ``principal`` access.

    Each identity the principal carries matches its own id and the
    wildcard of its type. The channel only counts when one is supplied.
    """
    identities = [
        (PRINCIPAL_TEAM, principal.team_id),
        (PRINCIPAL_USER, principal.user_id),
    ]
    if principal.channel_id:
        identities.append((PRINCIPAL_CHANNEL, principal.channel_id))

    pairs: list[tuple[str, str]] = []
    for principal_type, principal_id in identities:
        pairs.append((principal_type, principal_id))
        pairs.append((principal_type, WILDCARD_PRINCIPAL))
    return pairs


class PermissionRepository(PermissionResolver):
    """Postgres-backed permission resolver."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_permitted_document_ids(self, principal: Principal) -> list[uuid.UUID]:
        conditions = [
            and_(
                PermissionRecord.principal_type == principal_type,
                PermissionRecord.principal_id == principal_id,
            )
            for principal_type, principal_id in principal_grants(principal)
        ]
        stmt = select(PermissionRecord.document_id).where(or_(*conditions)).distinct()

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                document_ids = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise UpstreamError("postgres", f"permission lookup failed: {e}") from e

        logger.debug(
            "Principal team=%s user=%s channel=%s → %d permitted documents",
            principal.team_id,
            principal.user_id,
            principal.channel_id,
            len(document_ids),
        )
        return document_ids

    async def set_document_permissions(
        self,
        document_id: uuid.UUID,
        grants: Sequence[PermissionGrant],
    ) -> None:
        """Replace every grant of ``document_id`` atomically."""
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(PermissionRecord).where(
                        PermissionRecord.document_id == document_id
                    )
                )
                if grants:
                    await session.execute(
                        insert(PermissionRecord),
                        [
                            {
                                "id": uuid.uuid4(),
                                "document_id": document_id,
                                "principal_type": grant.principal_type,
                                "principal_id": grant.principal_id,
                            }
                            for grant in grants
                        ],
                    )
                await session.commit()
        except SQLAlchemyError as e:
            raise UpstreamError("postgres", f"set permissions failed: {e}") from e

        logger.info("Set %d permission(s) on document %s", len(grants), document_id)
