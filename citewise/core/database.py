"""
CITEWISE Database Layer

Async database setup for the retrieval pipeline.

Design:
    - One ``Database`` per process: the engine (and its connection pool)
      is created at startup and disposed at shutdown by the host.
    - Repositories receive the session factory, never a connection string.
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)


class Database:
    """
    Owner of the pooled async engine and its session factory.

    Usage::

        db = Database(settings.DATABASE_URL, pool_size=5)
        await db.ping()
        async with db.session_factory() as session:
            ...
        await db.dispose()
    """

    def __init__(self, url: str, *, pool_size: int = 5, echo: bool = False) -> None:
        self._engine: AsyncEngine = create_async_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            pool_pre_ping=True,
        )
        # expire_on_commit=False: prevents implicit I/O after commit
        self._session_factory = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
        )
        logger.info("Database engine created (pool_size=%d)", pool_size)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    async def ping(self) -> None:
        """Run ``SELECT 1``; raises if the database is unreachable."""
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")

    async def dispose(self) -> None:
        """Dispose the engine at application shutdown."""
        await self._engine.dispose()
        logger.info("Database engine disposed")

