"""PostgreSQL implementation of CommitmentRepositoryProtocol.

The partial unique index ``ux_commitments_one_assigned_per_task`` is the
final arbiter of "one assigned commitment per task"; the conditional
UPDATE handles the common case without relying on the constraint error.
"""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ongflow.application.ports.commitment_repository import (
    CommitmentRepositoryProtocol,
)
from ongflow.domain.errors import (
    CommitmentAlreadyAssignedError,
    CommitmentNotFoundError,
)
from ongflow.domain.models.commitment import Commitment
from ongflow.infrastructure.adapters.persistence.rows import row_to_commitment

_ASSIGN = text(
    """
    UPDATE commitments AS c
    SET status = 'assigned', assigned_at = now()
    WHERE c.id = :id
      AND c.status = 'pending'
      AND NOT EXISTS (
          SELECT 1 FROM commitments AS other
          WHERE other.task_id = c.task_id AND other.status = 'assigned'
      )
    RETURNING c.*
    """
)


class PostgresCommitmentRepository(CommitmentRepositoryProtocol):
    """Commitment repository on PostgreSQL via SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save(
        self,
        task_id: str,
        organization_id: int,
        description: str,
    ) -> Commitment:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    text(
                        """
                        INSERT INTO commitments (task_id, organization_id, description)
                        VALUES (:task_id, :organization_id, :description)
                        RETURNING *
                        """
                    ),
                    {
                        "task_id": task_id,
                        "organization_id": organization_id,
                        "description": description,
                    },
                )
                return row_to_commitment(result.mappings().one())

    async def get(self, commitment_id: int) -> Commitment | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT * FROM commitments WHERE id = :id"), {"id": commitment_id}
            )
            row = result.mappings().first()
        return row_to_commitment(row) if row is not None else None

    async def list_by_task(self, task_id: str) -> list[Commitment]:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT * FROM commitments WHERE task_id = :task_id ORDER BY id"),
                {"task_id": task_id},
            )
            return [row_to_commitment(row) for row in result.mappings().all()]

    async def assign(self, commitment_id: int) -> Commitment:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(_ASSIGN, {"id": commitment_id})
                    row = result.mappings().first()
        except IntegrityError:
            row = None

        if row is not None:
            return row_to_commitment(row)

        commitment = await self.get(commitment_id)
        if commitment is None:
            raise CommitmentNotFoundError(commitment_id)
        holder = await self._assigned_for_task(commitment.task_id)
        raise CommitmentAlreadyAssignedError(
            commitment.task_id,
            assigned_commitment_id=holder.id if holder is not None else None,
        )

    async def _assigned_for_task(self, task_id: str) -> Commitment | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text(
                    "SELECT * FROM commitments "
                    "WHERE task_id = :task_id AND status = 'assigned'"
                ),
                {"task_id": task_id},
            )
            row = result.mappings().first()
        return row_to_commitment(row) if row is not None else None

    async def assigned_task_ids(self, task_ids: list[str]) -> set[str]:
        if not task_ids:
            return set()
        async with self._session_factory() as session:
            result = await session.execute(
                text(
                    "SELECT DISTINCT task_id FROM commitments "
                    "WHERE status = 'assigned' AND task_id = ANY(:task_ids)"
                ),
                {"task_ids": list(task_ids)},
            )
            return {row[0] for row in result.all()}
