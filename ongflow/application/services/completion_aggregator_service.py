"""Completion aggregator.

Merges the two task populations of a project (local rows and coverage
tasks tracked by the workflow engine) and finalizes the project when
every task of the union is done.

Recompute runs under the project's lock and only reads before deciding,
so overlapping calls from concurrent mark-done operations converge on the
same outcome. The final transition is a compare-and-set, so at most one
of them completes the project.
"""

from __future__ import annotations

from structlog import get_logger

from ongflow.application.dtos.results import CompletionResult
from ongflow.application.ports.project_lock import ProjectLockProtocol
from ongflow.application.ports.project_repository import ProjectRepositoryProtocol
from ongflow.application.ports.task_repository import TaskRepositoryProtocol
from ongflow.application.ports.workflow_gateway import WorkflowGatewayProtocol
from ongflow.application.services.project_lifecycle_service import (
    ProjectLifecycleService,
)
from ongflow.application.services.workflow_session_provider import (
    WorkflowSessionProvider,
)
from ongflow.domain.errors import ProjectNotFoundError
from ongflow.domain.models.project import ProjectStatus
from ongflow.domain.models.task import CoverageTask, TaskStatus

logger = get_logger(__name__)


class CompletionAggregatorService:
    """Recomputes project completion over local and external tasks."""

    def __init__(
        self,
        project_repo: ProjectRepositoryProtocol,
        task_repo: TaskRepositoryProtocol,
        gateway: WorkflowGatewayProtocol,
        sessions: WorkflowSessionProvider,
        project_lock: ProjectLockProtocol,
        lifecycle: ProjectLifecycleService,
    ) -> None:
        self._projects = project_repo
        self._tasks = task_repo
        self._gateway = gateway
        self._sessions = sessions
        self._lock = project_lock
        self._lifecycle = lifecycle

    async def recompute_completion(self, project_id: int) -> CompletionResult:
        """Recompute whether every task of the project is done.

        A project with no tasks at all is never considered done. Once the
        union is done, an EXECUTING project is finalized; any other status
        is left alone, and repeated calls after completion change nothing.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
            ExternalSystemUnavailableError: If the project's coverage tasks
                cannot be read from the engine.
        """
        log = logger.bind(project_id=project_id)

        async with self._lock.hold(project_id):
            project = await self._projects.get(project_id)
            if project is None:
                raise ProjectNotFoundError(project_id)

            local_tasks = await self._tasks.list_by_project(project_id)
            external_tasks: list[CoverageTask] = []
            if project.has_case:
                async with self._sessions.open_session() as session:
                    external_tasks = await self._gateway.list_coverage_tasks(
                        session, project_id
                    )

            result = CompletionResult(
                project=project,
                local_total=len(local_tasks),
                local_done=sum(1 for t in local_tasks if t.status is TaskStatus.DONE),
                external_total=len(external_tasks),
                external_done=sum(
                    1 for t in external_tasks if t.status is TaskStatus.DONE
                ),
            )
            log.debug(
                "completion_recomputed",
                local=f"{result.local_done}/{result.local_total}",
                external=f"{result.external_done}/{result.external_total}",
            )

            if not result.all_done:
                return result
            if project.status is ProjectStatus.COMPLETE:
                return result
            if project.status is not ProjectStatus.EXECUTING:
                log.info("completion_deferred", status=project.status.value)
                return result

            outcome = await self._lifecycle.finalize_completion(project_id)
            if outcome.changed:
                log.info("project_auto_completed", total_tasks=result.total)
            return CompletionResult(
                project=outcome.project,
                local_total=result.local_total,
                local_done=result.local_done,
                external_total=result.external_total,
                external_done=result.external_done,
                project_completed=outcome.changed,
            )
