"""PostgreSQL implementation of ProjectRepositoryProtocol.

Status and case id writes are single ``UPDATE ... WHERE`` statements that
include the expected current value, so the database decides which of two
racing writers wins. When no row comes back, a follow-up read classifies
the failure (missing row, lost race, or missing case).
"""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from ongflow.application.ports.project_repository import ProjectRepositoryProtocol
from ongflow.domain.errors import (
    ConcurrentModificationError,
    InvalidStateTransitionError,
    ProjectNotFoundError,
)
from ongflow.domain.models.project import (
    CASE_REQUIRED_STATES,
    NewProject,
    Project,
    ProjectStatus,
)
from ongflow.domain.models.task import LocalTask, TaskDraft
from ongflow.infrastructure.adapters.persistence.rows import (
    row_to_project,
    row_to_task,
)

logger = get_logger(__name__)

_INSERT_PROJECT = text(
    """
    INSERT INTO projects (name, description, start_date, end_date, created_by)
    VALUES (:name, :description, :start_date, :end_date, :created_by)
    RETURNING *
    """
)

_INSERT_TASK = text(
    """
    INSERT INTO tasks (
        project_id, title, description, due_date, estimated_hours,
        is_coverage_request, created_by
    )
    VALUES (
        :project_id, :title, :description, :due_date, :estimated_hours,
        FALSE, :created_by
    )
    RETURNING *
    """
)


class PostgresProjectRepository(ProjectRepositoryProtocol):
    """Project repository on PostgreSQL via SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_with_tasks(
        self,
        project: NewProject,
        local_tasks: list[TaskDraft],
    ) -> tuple[Project, list[LocalTask]]:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    _INSERT_PROJECT,
                    {
                        "name": project.name.strip(),
                        "description": project.description,
                        "start_date": project.start_date,
                        "end_date": project.end_date,
                        "created_by": project.created_by,
                    },
                )
                stored = row_to_project(result.mappings().one())

                tasks: list[LocalTask] = []
                for draft in local_tasks:
                    task_result = await session.execute(
                        _INSERT_TASK,
                        {
                            "project_id": stored.id,
                            "title": draft.title,
                            "description": draft.description,
                            "due_date": draft.due_date,
                            "estimated_hours": draft.estimated_hours,
                            "created_by": project.created_by,
                        },
                    )
                    tasks.append(row_to_task(task_result.mappings().one()))

        logger.debug("project_rows_inserted", project_id=stored.id, tasks=len(tasks))
        return stored, tasks

    async def get(self, project_id: int) -> Project | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT * FROM projects WHERE id = :id"), {"id": project_id}
            )
            row = result.mappings().first()
        return row_to_project(row) if row is not None else None

    async def list_projects(
        self,
        statuses: list[ProjectStatus] | None = None,
        created_by: int | None = None,
    ) -> list[Project]:
        clauses: list[str] = []
        params: dict[str, object] = {}
        if statuses is not None:
            clauses.append("status = ANY(:statuses)")
            params["statuses"] = [s.value for s in statuses]
        if created_by is not None:
            clauses.append("created_by = :created_by")
            params["created_by"] = created_by
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        async with self._session_factory() as session:
            result = await session.execute(
                text(
                    f"SELECT * FROM projects {where} "
                    "ORDER BY created_at DESC, id DESC"
                ),
                params,
            )
            return [row_to_project(row) for row in result.mappings().all()]

    async def transition_status(
        self,
        project_id: int,
        expected: ProjectStatus,
        new: ProjectStatus,
    ) -> Project:
        requires_case = new in CASE_REQUIRED_STATES
        if not expected.can_transition_to(new):
            raise InvalidStateTransitionError(
                project_id=project_id,
                from_state=expected,
                to_state=new,
                reason="status only advances one step forward",
            )

        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    text(
                        """
                        UPDATE projects
                        SET status = :new, updated_at = now()
                        WHERE id = :id
                          AND status = :expected
                          AND (:requires_case = FALSE OR external_case_id IS NOT NULL)
                        RETURNING *
                        """
                    ),
                    {
                        "id": project_id,
                        "new": new.value,
                        "expected": expected.value,
                        "requires_case": requires_case,
                    },
                )
                row = result.mappings().first()

        if row is not None:
            return row_to_project(row)

        current = await self.get(project_id)
        if current is None:
            raise ProjectNotFoundError(project_id)
        if current.status is not expected:
            raise ConcurrentModificationError(
                "project",
                project_id,
                "transition_status",
                message=(
                    f"Project {project_id} is {current.status.value}, "
                    f"expected {expected.value}"
                ),
            )
        raise InvalidStateTransitionError(
            project_id=project_id,
            from_state=expected,
            to_state=new,
            reason="project has no external case",
        )

    async def set_external_case_id(self, project_id: int, case_id: str) -> Project:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    text(
                        """
                        UPDATE projects
                        SET external_case_id = :case_id, updated_at = now()
                        WHERE id = :id AND external_case_id IS NULL
                        RETURNING *
                        """
                    ),
                    {"id": project_id, "case_id": case_id},
                )
                row = result.mappings().first()

        if row is not None:
            return row_to_project(row)
        if await self.get(project_id) is None:
            raise ProjectNotFoundError(project_id)
        raise ConcurrentModificationError("project", project_id, "set_external_case_id")
