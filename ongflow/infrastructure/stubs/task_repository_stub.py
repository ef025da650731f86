"""In-memory stub for TaskRepositoryProtocol.

Simulates the two compare-and-set updates of the PostgreSQL repository
(``assignee IS NULL`` on claim, ``status = in_progress`` on mark-done)
under one asyncio lock. Not suitable for production use.
"""

from __future__ import annotations

import asyncio
import itertools

from ongflow.application.ports.task_repository import TaskRepositoryProtocol
from ongflow.domain.errors import (
    ConcurrentModificationError,
    TaskAlreadyTakenError,
    TaskNotFoundError,
)
from ongflow.domain.models.task import LocalTask, TaskStatus


class TaskRepositoryStub(TaskRepositoryProtocol):
    """In-memory local task store.

    Attributes:
        _tasks: Dictionary mapping task id to LocalTask.
    """

    def __init__(self) -> None:
        self._tasks: dict[int, LocalTask] = {}
        self._ids = itertools.count(1)
        # Lock for simulating atomic CAS operations
        self._cas_lock = asyncio.Lock()

    def next_id(self) -> int:
        return next(self._ids)

    def add_task(self, task: LocalTask) -> None:
        """Insert a task row directly (used by the project stub and tests)."""
        if task.id in self._tasks:
            raise ValueError(f"Task already exists: {task.id}")
        self._tasks[task.id] = task

    async def get(self, task_id: int) -> LocalTask | None:
        return self._tasks.get(task_id)

    async def list_by_project(self, project_id: int) -> list[LocalTask]:
        return sorted(
            (t for t in self._tasks.values() if t.project_id == project_id),
            key=lambda t: t.id,
        )

    async def claim(self, task_id: int, organization_id: int) -> LocalTask:
        async with self._cas_lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            if task.assignee is not None:
                raise TaskAlreadyTakenError(task_id, assignee=task.assignee)
            taken = task.taken_by(organization_id)
            self._tasks[task_id] = taken
            return taken

    async def mark_done(self, task_id: int) -> LocalTask:
        async with self._cas_lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            if task.status is not TaskStatus.IN_PROGRESS:
                raise ConcurrentModificationError("task", task_id, "mark_done")
            done = task.marked_done()
            self._tasks[task_id] = done
            return done

    async def count(self, status: TaskStatus | None = None) -> int:
        if status is None:
            return len(self._tasks)
        return sum(1 for t in self._tasks.values() if t.status is status)

    def clear(self) -> None:
        """Clear all stored tasks (for test cleanup)."""
        self._tasks.clear()
