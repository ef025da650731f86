"""Project creation and read-side queries.

create_project splits the submitted tasks by ``is_coverage_request``:
local tasks are written together with the project in one transaction,
then the coverage requests go to the workflow engine as one batch. The
batch outcome is reported on the result; a failed batch does not undo
the local writes.
"""

from __future__ import annotations

from structlog import get_logger

from ongflow.application.dtos.results import (
    CoverageStatus,
    ErrorInfo,
    ProjectCreationResult,
    TaskTotals,
)
from ongflow.application.ports.project_repository import ProjectRepositoryProtocol
from ongflow.application.ports.task_repository import TaskRepositoryProtocol
from ongflow.application.ports.workflow_gateway import WorkflowGatewayProtocol
from ongflow.application.services.coverage_batch_service import (
    CoverageBatchService,
)
from ongflow.application.services.workflow_session_provider import (
    WorkflowSessionProvider,
)
from ongflow.domain.errors import ExternalSystemUnavailableError, ProjectNotFoundError
from ongflow.domain.models.project import NewProject, Project, ProjectStatus
from ongflow.domain.models.task import TaskDraft, TaskStatus
from ongflow.domain.models.workflow import HumanTaskState

logger = get_logger(__name__)


class ProjectService:
    """Creates projects and answers project-level queries."""

    def __init__(
        self,
        project_repo: ProjectRepositoryProtocol,
        task_repo: TaskRepositoryProtocol,
        gateway: WorkflowGatewayProtocol,
        sessions: WorkflowSessionProvider,
        batch_service: CoverageBatchService,
    ) -> None:
        self._projects = project_repo
        self._tasks = task_repo
        self._gateway = gateway
        self._sessions = sessions
        self._batch = batch_service

    async def create_project(
        self, new_project: NewProject, tasks: list[TaskDraft]
    ) -> ProjectCreationResult:
        """Create a project with its tasks.

        Args:
            new_project: Validated project fields.
            tasks: Every task of the project; coverage requests are routed
                to the workflow engine, the rest are stored locally.

        Returns:
            ProjectCreationResult with the stored project, its local tasks
            and the coverage submission outcome (None without coverage
            requests).
        """
        local_drafts = [t for t in tasks if not t.is_coverage_request]
        coverage_drafts = [t for t in tasks if t.is_coverage_request]

        project, local_tasks = await self._projects.create_with_tasks(
            new_project, local_drafts
        )
        log = logger.bind(project_id=project.id, created_by=project.created_by)
        log.info(
            "project_created",
            local_tasks=len(local_tasks),
            coverage_requests=len(coverage_drafts),
        )

        coverage = await self._batch.submit_coverage_requests(
            project.id, coverage_drafts
        )
        if coverage is not None and coverage.succeeded:
            project = await self.get_project(project.id)
        elif coverage is not None:
            log.warning(
                "project_created_without_case",
                error_kind=coverage.error.kind if coverage.error else None,
            )

        return ProjectCreationResult(
            project=project,
            local_tasks=tuple(local_tasks),
            coverage=coverage,
        )

    async def get_project(self, project_id: int) -> Project:
        project = await self._projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    async def list_projects(
        self,
        statuses: list[ProjectStatus] | None = None,
        created_by: int | None = None,
    ) -> list[Project]:
        return await self._projects.list_projects(
            statuses=statuses, created_by=created_by
        )

    async def coverage_status(self, project_id: int) -> CoverageStatus:
        """Report the engine-side progress of the project's case.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
            ExternalSystemUnavailableError: If the engine cannot be reached.
        """
        project = await self.get_project(project_id)
        if not project.has_case:
            return CoverageStatus(project_id=project_id, case_id=None)

        async with self._sessions.open_session() as session:
            human_tasks = await self._gateway.list_human_tasks(
                session, project.external_case_id
            )
        return CoverageStatus(
            project_id=project_id,
            case_id=project.external_case_id,
            ready_tasks=tuple(t for t in human_tasks if t.is_ready),
            completed_count=sum(
                1 for t in human_tasks if t.state is HumanTaskState.COMPLETED
            ),
            total_count=len(human_tasks),
        )

    async def task_totals(self) -> TaskTotals:
        """Count tasks across the local store and the workflow engine.

        An unreachable engine contributes zero and is flagged on the
        result instead of failing the call.
        """
        local_total = await self._tasks.count()
        local_todo = await self._tasks.count(status=TaskStatus.TODO)

        projects = await self._projects.list_projects()
        with_case = [p for p in projects if p.has_case]
        external_total = 0
        external_todo = 0
        try:
            if with_case:
                async with self._sessions.open_session() as session:
                    for project in with_case:
                        coverage = await self._gateway.list_coverage_tasks(
                            session, project.id
                        )
                        external_total += len(coverage)
                        external_todo += sum(
                            1 for t in coverage if t.status is TaskStatus.TODO
                        )
        except ExternalSystemUnavailableError as exc:
            logger.warning("task_totals_engine_unavailable", error=str(exc))
            return TaskTotals(
                local_total=local_total,
                local_todo=local_todo,
                external_available=False,
                errors=(ErrorInfo.from_exception(exc),),
            )

        return TaskTotals(
            local_total=local_total,
            local_todo=local_todo,
            external_total=external_total,
            external_todo=external_todo,
        )
