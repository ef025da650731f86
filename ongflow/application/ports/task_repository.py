"""Local task repository port.

Local tasks are created together with their project (see
ProjectRepositoryProtocol.create_with_tasks); this port covers reads and
the two assignee-side mutations.
"""

from __future__ import annotations

from typing import Protocol

from ongflow.domain.models.task import LocalTask, TaskStatus


class TaskRepositoryProtocol(Protocol):
    """Protocol for local task persistence."""

    async def get(self, task_id: int) -> LocalTask | None:
        """Retrieve a task by id, or None."""
        ...

    async def list_by_project(self, project_id: int) -> list[LocalTask]:
        """List the local tasks of one project, in creation order."""
        ...

    async def claim(self, task_id: int, organization_id: int) -> LocalTask:
        """Set the assignee if none is set and move the task to in_progress.

        Implementations use ``UPDATE ... WHERE assignee IS NULL`` semantics.

        Raises:
            TaskNotFoundError: If the task doesn't exist.
            TaskAlreadyTakenError: If another organization holds the task.
        """
        ...

    async def mark_done(self, task_id: int) -> LocalTask:
        """Move an in_progress task to done.

        Raises:
            TaskNotFoundError: If the task doesn't exist.
            ConcurrentModificationError: If the task is not in_progress.
        """
        ...

    async def count(self, status: TaskStatus | None = None) -> int:
        """Count local tasks, optionally restricted to one status."""
        ...
