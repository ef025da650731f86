"""Project repository port.

Defines storage operations for project rows. Status and case id writes are
compare-and-set operations so that racing writers cannot both win.

Developer Golden Rules:
1. ONE TRANSACTION - create_with_tasks writes the project and its local
   tasks atomically or not at all
2. CAS FOR STATUS - transition_status is the only way status changes
3. SET ONCE - external_case_id is written at most once
4. FAIL LOUD - repository raises on errors, never returns partial rows
"""

from __future__ import annotations

from typing import Protocol

from ongflow.domain.models.project import NewProject, Project, ProjectStatus
from ongflow.domain.models.task import LocalTask, TaskDraft


class ProjectRepositoryProtocol(Protocol):
    """Protocol for project persistence."""

    async def create_with_tasks(
        self,
        project: NewProject,
        local_tasks: list[TaskDraft],
    ) -> tuple[Project, list[LocalTask]]:
        """Insert a project and its local tasks in one transaction.

        Args:
            project: Validated project input.
            local_tasks: Drafts with ``is_coverage_request`` False.

        Returns:
            The stored project (status DRAFT, no case) and its tasks.
        """
        ...

    async def get(self, project_id: int) -> Project | None:
        """Retrieve a project by id, or None."""
        ...

    async def list_projects(
        self,
        statuses: list[ProjectStatus] | None = None,
        created_by: int | None = None,
    ) -> list[Project]:
        """List projects, newest first, optionally filtered."""
        ...

    async def transition_status(
        self,
        project_id: int,
        expected: ProjectStatus,
        new: ProjectStatus,
    ) -> Project:
        """Compare-and-set the project status.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
            ConcurrentModificationError: If current status != expected.
            InvalidStateTransitionError: If new is not the successor of expected,
                or requires a case the project lacks.
        """
        ...

    async def set_external_case_id(self, project_id: int, case_id: str) -> Project:
        """Record the project's workflow case id.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
            ConcurrentModificationError: If a case id is already recorded.
        """
        ...
