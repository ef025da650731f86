"""Per-project lock backed by PostgreSQL transaction advisory locks.

Serializes critical sections across every process sharing the database.
The lock lives in a dedicated session whose transaction is held open for
the duration of the block and released on commit or rollback.

That session keeps one pooled connection checked out until the block
exits, including the workflow engine calls made inside it. Size the pool
with DATABASE_POOL_SIZE and DATABASE_MAX_OVERFLOW for the number of
projects expected to be reconciled at once; a block that cannot get a
connection waits up to DATABASE_POOL_TIMEOUT seconds and then fails.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from ongflow.application.ports.project_lock import ProjectLockProtocol

logger = get_logger(__name__)

# First key of the two-key advisory lock; the project id is the second.
LOCK_NAMESPACE = 0x4F4E47


class PostgresAdvisoryProjectLock(ProjectLockProtocol):
    """pg_advisory_xact_lock keyed by (namespace, project_id).

    Each held lock occupies one connection of the session factory's pool.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def hold(self, project_id: int) -> AsyncIterator[None]:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    text("SELECT pg_advisory_xact_lock(:namespace, :project_id)"),
                    {"namespace": LOCK_NAMESPACE, "project_id": project_id},
                )
                logger.debug("project_lock_acquired", project_id=project_id)
                yield
