"""PostgreSQL implementation of TaskRepositoryProtocol."""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ongflow.application.ports.task_repository import TaskRepositoryProtocol
from ongflow.domain.errors import (
    ConcurrentModificationError,
    TaskAlreadyTakenError,
    TaskNotFoundError,
)
from ongflow.domain.models.task import LocalTask, TaskStatus
from ongflow.infrastructure.adapters.persistence.rows import row_to_task


class PostgresTaskRepository(TaskRepositoryProtocol):
    """Local task repository on PostgreSQL via SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, task_id: int) -> LocalTask | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT * FROM tasks WHERE id = :id"), {"id": task_id}
            )
            row = result.mappings().first()
        return row_to_task(row) if row is not None else None

    async def list_by_project(self, project_id: int) -> list[LocalTask]:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT * FROM tasks WHERE project_id = :project_id ORDER BY id"),
                {"project_id": project_id},
            )
            return [row_to_task(row) for row in result.mappings().all()]

    async def claim(self, task_id: int, organization_id: int) -> LocalTask:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    text(
                        """
                        UPDATE tasks
                        SET assignee = :organization_id,
                            status = 'in_progress',
                            updated_at = now()
                        WHERE id = :id AND assignee IS NULL
                        RETURNING *
                        """
                    ),
                    {"id": task_id, "organization_id": organization_id},
                )
                row = result.mappings().first()

        if row is not None:
            return row_to_task(row)
        current = await self.get(task_id)
        if current is None:
            raise TaskNotFoundError(task_id)
        raise TaskAlreadyTakenError(task_id, assignee=current.assignee)

    async def mark_done(self, task_id: int) -> LocalTask:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    text(
                        """
                        UPDATE tasks
                        SET status = 'done', updated_at = now()
                        WHERE id = :id AND status = 'in_progress'
                        RETURNING *
                        """
                    ),
                    {"id": task_id},
                )
                row = result.mappings().first()

        if row is not None:
            return row_to_task(row)
        if await self.get(task_id) is None:
            raise TaskNotFoundError(task_id)
        raise ConcurrentModificationError("task", task_id, "mark_done")

    async def count(self, status: TaskStatus | None = None) -> int:
        async with self._session_factory() as session:
            if status is None:
                result = await session.execute(text("SELECT COUNT(*) FROM tasks"))
            else:
                result = await session.execute(
                    text("SELECT COUNT(*) FROM tasks WHERE status = :status"),
                    {"status": status.value},
                )
            return int(result.scalar_one())
