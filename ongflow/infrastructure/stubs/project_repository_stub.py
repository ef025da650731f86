"""In-memory stub for ProjectRepositoryProtocol.

Local task rows created with a project are written into the paired
TaskRepositoryStub, mirroring the single transaction of the PostgreSQL
repository. Not suitable for production use.
"""

from __future__ import annotations

import asyncio
import itertools

from ongflow.application.ports.project_repository import ProjectRepositoryProtocol
from ongflow.domain.errors import ConcurrentModificationError, ProjectNotFoundError
from ongflow.domain.models.project import NewProject, Project, ProjectStatus
from ongflow.domain.models.task import LocalTask, TaskDraft
from ongflow.infrastructure.stubs.task_repository_stub import TaskRepositoryStub


class ProjectRepositoryStub(ProjectRepositoryProtocol):
    """In-memory project store.

    Attributes:
        _projects: Dictionary mapping project id to Project.
        status_history: Every (project_id, status) written, in order.
    """

    def __init__(self, task_repo: TaskRepositoryStub | None = None) -> None:
        self._projects: dict[int, Project] = {}
        self._ids = itertools.count(1)
        self._task_repo = task_repo or TaskRepositoryStub()
        # Lock for simulating atomic CAS operations
        self._cas_lock = asyncio.Lock()
        self.status_history: list[tuple[int, ProjectStatus]] = []

    @property
    def task_repo(self) -> TaskRepositoryStub:
        return self._task_repo

    def add_project(self, project: Project) -> None:
        """Insert a project directly (for test setup)."""
        self._projects[project.id] = project
        self.status_history.append((project.id, project.status))

    async def create_with_tasks(
        self,
        project: NewProject,
        local_tasks: list[TaskDraft],
    ) -> tuple[Project, list[LocalTask]]:
        stored = Project(
            id=next(self._ids),
            name=project.name.strip(),
            description=project.description,
            start_date=project.start_date,
            end_date=project.end_date,
            created_by=project.created_by,
        )
        tasks = [
            LocalTask(
                id=self._task_repo.next_id(),
                project_id=stored.id,
                title=draft.title,
                description=draft.description,
                due_date=draft.due_date,
                estimated_hours=draft.estimated_hours,
                created_by=project.created_by,
            )
            for draft in local_tasks
        ]
        self.add_project(stored)
        for task in tasks:
            self._task_repo.add_task(task)
        return stored, tasks

    async def get(self, project_id: int) -> Project | None:
        return self._projects.get(project_id)

    async def list_projects(
        self,
        statuses: list[ProjectStatus] | None = None,
        created_by: int | None = None,
    ) -> list[Project]:
        matching = [
            p
            for p in self._projects.values()
            if (statuses is None or p.status in statuses)
            and (created_by is None or p.created_by == created_by)
        ]
        matching.sort(key=lambda p: (p.created_at, p.id), reverse=True)
        return matching

    async def transition_status(
        self,
        project_id: int,
        expected: ProjectStatus,
        new: ProjectStatus,
    ) -> Project:
        async with self._cas_lock:
            project = self._projects.get(project_id)
            if project is None:
                raise ProjectNotFoundError(project_id)
            if project.status is not expected:
                raise ConcurrentModificationError(
                    "project",
                    project_id,
                    "transition_status",
                    message=(
                        f"Project {project_id} is {project.status.value}, "
                        f"expected {expected.value}"
                    ),
                )
            updated = project.with_status(new)
            self._projects[project_id] = updated
            self.status_history.append((project_id, new))
            return updated

    async def set_external_case_id(self, project_id: int, case_id: str) -> Project:
        async with self._cas_lock:
            project = self._projects.get(project_id)
            if project is None:
                raise ProjectNotFoundError(project_id)
            if project.external_case_id is not None:
                raise ConcurrentModificationError(
                    "project", project_id, "set_external_case_id"
                )
            updated = project.with_external_case(case_id)
            self._projects[project_id] = updated
            return updated

    def clear(self) -> None:
        """Clear all stored projects (for test cleanup)."""
        self._projects.clear()
        self.status_history.clear()
