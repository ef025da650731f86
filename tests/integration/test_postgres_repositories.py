"""Integration tests for the PostgreSQL repositories and advisory lock."""

import asyncio
from datetime import date

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ongflow.domain.errors import (
    CommitmentAlreadyAssignedError,
    ConcurrentModificationError,
    InvalidStateTransitionError,
    ProjectNotFoundError,
    TaskAlreadyTakenError,
)
from ongflow.domain.models.commitment import CommitmentStatus
from ongflow.domain.models.project import NewProject, ProjectStatus
from ongflow.domain.models.task import TaskDraft, TaskStatus
from ongflow.infrastructure.adapters.locks import PostgresAdvisoryProjectLock
from ongflow.infrastructure.adapters.persistence import (
    PostgresCommitmentRepository,
    PostgresProjectRepository,
    PostgresTaskRepository,
)

pytestmark = pytest.mark.integration

SessionFactory = async_sessionmaker[AsyncSession]


def _new_project(created_by: int = 1) -> NewProject:
    return NewProject(
        name="Winter shelter",
        start_date=date(2026, 6, 1),
        end_date=date(2026, 9, 30),
        created_by=created_by,
    )


class TestPostgresProjectRepository:
    """Tests for projects and their local tasks."""

    async def test_create_with_tasks(self, session_factory: SessionFactory) -> None:
        """Test the project and its tasks are stored together."""
        projects = PostgresProjectRepository(session_factory)
        tasks = PostgresTaskRepository(session_factory)

        project, local = await projects.create_with_tasks(
            _new_project(), [TaskDraft(title="Paint"), TaskDraft(title="Clean")]
        )

        assert project.status is ProjectStatus.DRAFT
        assert [t.title for t in await tasks.list_by_project(project.id)] == [
            "Paint",
            "Clean",
        ]
        assert all(t.created_by == 1 for t in local)

    async def test_list_filters(self, session_factory: SessionFactory) -> None:
        """Test filtering by status and creator."""
        projects = PostgresProjectRepository(session_factory)
        first, _ = await projects.create_with_tasks(_new_project(1), [])
        second, _ = await projects.create_with_tasks(_new_project(2), [])
        await projects.transition_status(
            second.id, ProjectStatus.DRAFT, ProjectStatus.PLANNED
        )

        drafts = await projects.list_projects(statuses=[ProjectStatus.DRAFT])
        mine = await projects.list_projects(created_by=2)

        assert [p.id for p in drafts] == [first.id]
        assert [p.id for p in mine] == [second.id]

    async def test_transition_compare_and_set(
        self, session_factory: SessionFactory
    ) -> None:
        """Test a stale expected status is rejected."""
        projects = PostgresProjectRepository(session_factory)
        project, _ = await projects.create_with_tasks(_new_project(), [])
        await projects.transition_status(
            project.id, ProjectStatus.DRAFT, ProjectStatus.PLANNED
        )

        with pytest.raises(ConcurrentModificationError):
            await projects.transition_status(
                project.id, ProjectStatus.DRAFT, ProjectStatus.PLANNED
            )
        with pytest.raises(ProjectNotFoundError):
            await projects.transition_status(
                999, ProjectStatus.DRAFT, ProjectStatus.PLANNED
            )

    async def test_executing_requires_case(
        self, session_factory: SessionFactory
    ) -> None:
        """Test EXECUTING is refused until a case id is recorded."""
        projects = PostgresProjectRepository(session_factory)
        project, _ = await projects.create_with_tasks(_new_project(), [])
        await projects.transition_status(
            project.id, ProjectStatus.DRAFT, ProjectStatus.PLANNED
        )

        with pytest.raises(InvalidStateTransitionError):
            await projects.transition_status(
                project.id, ProjectStatus.PLANNED, ProjectStatus.EXECUTING
            )

        await projects.set_external_case_id(project.id, "1001")
        executing = await projects.transition_status(
            project.id, ProjectStatus.PLANNED, ProjectStatus.EXECUTING
        )
        assert executing.external_case_id == "1001"

    async def test_case_id_set_once(self, session_factory: SessionFactory) -> None:
        """Test a recorded case id is never replaced."""
        projects = PostgresProjectRepository(session_factory)
        project, _ = await projects.create_with_tasks(_new_project(), [])
        await projects.set_external_case_id(project.id, "1001")

        with pytest.raises(ConcurrentModificationError):
            await projects.set_external_case_id(project.id, "1002")

    async def test_check_constraint(self, session_factory: SessionFactory) -> None:
        """Test the table refuses an EXECUTING row without a case."""
        projects = PostgresProjectRepository(session_factory)
        project, _ = await projects.create_with_tasks(_new_project(), [])

        with pytest.raises(IntegrityError):
            async with session_factory() as session:
                async with session.begin():
                    await session.execute(
                        text("UPDATE projects SET status = 'EXECUTING' WHERE id = :id"),
                        {"id": project.id},
                    )


class TestPostgresTaskRepository:
    """Tests for local task claims."""

    async def test_parallel_claims(self, session_factory: SessionFactory) -> None:
        """Test exactly one of two concurrent claims wins."""
        projects = PostgresProjectRepository(session_factory)
        tasks = PostgresTaskRepository(session_factory)
        _, local = await projects.create_with_tasks(
            _new_project(), [TaskDraft(title="Paint")]
        )

        results = await asyncio.gather(
            tasks.claim(local[0].id, 7),
            tasks.claim(local[0].id, 8),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], TaskAlreadyTakenError)

    async def test_mark_done_and_count(self, session_factory: SessionFactory) -> None:
        """Test done requires a claim and is reflected in counts."""
        projects = PostgresProjectRepository(session_factory)
        tasks = PostgresTaskRepository(session_factory)
        _, local = await projects.create_with_tasks(
            _new_project(), [TaskDraft(title="Paint"), TaskDraft(title="Clean")]
        )

        with pytest.raises(ConcurrentModificationError):
            await tasks.mark_done(local[0].id)
        await tasks.claim(local[0].id, 7)
        done = await tasks.mark_done(local[0].id)

        assert done.status is TaskStatus.DONE
        assert await tasks.count() == 2
        assert await tasks.count(TaskStatus.TODO) == 1


class TestPostgresCommitmentRepository:
    """Tests for commitments."""

    async def test_one_assigned_per_task(self, session_factory: SessionFactory) -> None:
        """Test the partial unique index keeps one assigned commitment."""
        commitments = PostgresCommitmentRepository(session_factory)
        first = await commitments.save("cov-1", 10, "Vans")
        second = await commitments.save("cov-1", 11, "Truck")

        assigned = await commitments.assign(first.id)

        assert assigned.status is CommitmentStatus.ASSIGNED
        assert assigned.assigned_at is not None
        with pytest.raises(CommitmentAlreadyAssignedError) as exc_info:
            await commitments.assign(second.id)
        assert exc_info.value.assigned_commitment_id == first.id
        assert await commitments.assigned_task_ids(["cov-1", "cov-2"]) == {"cov-1"}

    async def test_parallel_assignments(self, session_factory: SessionFactory) -> None:
        """Test concurrent assignments on one task leave a single winner."""
        commitments = PostgresCommitmentRepository(session_factory)
        first = await commitments.save("cov-1", 10, "Vans")
        second = await commitments.save("cov-1", 11, "Truck")

        results = await asyncio.gather(
            commitments.assign(first.id),
            commitments.assign(second.id),
            return_exceptions=True,
        )

        assert sum(isinstance(r, CommitmentAlreadyAssignedError) for r in results) == 1
        listed = await commitments.list_by_task("cov-1")
        assert [c.status for c in listed].count(CommitmentStatus.ASSIGNED) == 1


class TestPostgresAdvisoryProjectLock:
    """Tests for cross-session serialization."""

    async def test_serializes_holders(self, session_factory: SessionFactory) -> None:
        """Test two holders of one project never overlap."""
        lock = PostgresAdvisoryProjectLock(session_factory)
        events: list[str] = []

        async def critical(name: str) -> None:
            async with lock.hold(1):
                events.append(f"{name}-in")
                await asyncio.sleep(0.05)
                events.append(f"{name}-out")

        await asyncio.gather(critical("a"), critical("b"))

        assert events[0].split("-")[0] == events[1].split("-")[0]
        assert events[2].split("-")[0] == events[3].split("-")[0]
