"""Local task operations: take and mark done.

Taking is a compare-and-set on ``assignee IS NULL``; of two organizations
racing for the same task exactly one wins and the other gets a conflict.
Coverage requests are refused here and must go through commitments.
"""

from __future__ import annotations

from structlog import get_logger

from ongflow.application.dtos.results import ErrorInfo, LocalTaskDoneResult
from ongflow.application.ports.project_repository import ProjectRepositoryProtocol
from ongflow.application.ports.task_repository import TaskRepositoryProtocol
from ongflow.application.services.completion_aggregator_service import (
    CompletionAggregatorService,
)
from ongflow.domain.errors import (
    ExternalSystemUnavailableError,
    ProjectNotFoundError,
    TaskNotFoundError,
    ValidationError,
    WrongChannelError,
)
from ongflow.domain.models.task import LocalTask, TaskStatus

logger = get_logger(__name__)


class LocalTaskService:
    """Operations on tasks owned by the local store."""

    def __init__(
        self,
        task_repo: TaskRepositoryProtocol,
        project_repo: ProjectRepositoryProtocol,
        aggregator: CompletionAggregatorService,
    ) -> None:
        self._tasks = task_repo
        self._projects = project_repo
        self._aggregator = aggregator

    async def _get_task(self, task_id: int) -> LocalTask:
        task = await self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def list_local_tasks(self, project_id: int) -> list[LocalTask]:
        """List a project's local tasks.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
        """
        if await self._projects.get(project_id) is None:
            raise ProjectNotFoundError(project_id)
        return await self._tasks.list_by_project(project_id)

    async def take_local_task(self, task_id: int, organization_id: int) -> LocalTask:
        """Take an untaken local task for an organization.

        Raises:
            ValidationError: If organization_id is not a positive id.
            TaskNotFoundError: If the task doesn't exist.
            WrongChannelError: If the task is a coverage request.
            TaskAlreadyTakenError: If another organization holds the task.
        """
        if organization_id <= 0:
            raise ValidationError(
                "organization_id must be a positive id", field="organization_id"
            )
        log = logger.bind(task_id=task_id, organization_id=organization_id)

        task = await self._get_task(task_id)
        if task.is_coverage_request:
            log.warning("take_rejected_coverage_request")
            raise WrongChannelError(task_id)

        taken = await self._tasks.claim(task_id, organization_id)
        log.info("local_task_taken", project_id=taken.project_id)
        return taken

    async def mark_local_task_done(self, task_id: int) -> LocalTaskDoneResult:
        """Mark an in_progress local task done and recompute completion.

        The task stays done even if the recompute cannot reach the workflow
        engine; the failure is reported on the result.

        Raises:
            TaskNotFoundError: If the task doesn't exist.
            ValidationError: If the task is not in_progress.
            ConcurrentModificationError: If the task changed concurrently.
        """
        log = logger.bind(task_id=task_id)
        task = await self._get_task(task_id)
        if task.status is not TaskStatus.IN_PROGRESS:
            raise ValidationError(
                f"Task {task_id} is {task.status.value}; only in_progress "
                "tasks can be marked done",
                field="status",
            )

        done = await self._tasks.mark_done(task_id)
        log.info("local_task_done", project_id=done.project_id)

        try:
            completion = await self._aggregator.recompute_completion(done.project_id)
        except ExternalSystemUnavailableError as exc:
            log.warning("completion_recompute_failed", error=str(exc))
            return LocalTaskDoneResult(
                task=done, completion_error=ErrorInfo.from_exception(exc)
            )
        return LocalTaskDoneResult(task=done, completion=completion)
