"""Batch case builder.

All coverage requests of a project travel to the workflow engine as one
batch inside one case:

1. create the case (no initial variables)
2. poll, with exponential backoff and a bounded number of attempts, until
   the case exposes a ready human task
3. complete that task with the batch payload, which both delivers the
   requests and starts the engine tracking them
4. record the case id on the project (set once)

Failures are returned on the result, not raised. The project and its
local tasks are already committed at this point and stay committed; a
project left without a case can be retried through
resubmit_coverage_requests.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from structlog import get_logger

from ongflow.application.dtos.results import CoverageSubmissionResult, ErrorInfo
from ongflow.application.ports.project_repository import ProjectRepositoryProtocol
from ongflow.application.ports.workflow_gateway import WorkflowGatewayProtocol
from ongflow.application.services.workflow_session_provider import (
    WorkflowSessionProvider,
)
from ongflow.config.workflow_config import WorkflowEngineConfig
from ongflow.domain.errors import (
    AuthenticationFailedError,
    ConcurrentModificationError,
    ExternalSystemUnavailableError,
    InvalidStateTransitionError,
    NoReadyHumanTaskError,
    ProjectNotFoundError,
    ValidationError,
)
from ongflow.domain.models.project import Project
from ongflow.domain.models.task import (
    DEFAULT_COVERAGE_DUE_DAYS,
    CoverageRequest,
    TaskDraft,
)
from ongflow.domain.models.workflow import (
    BoolVar,
    CaseVariable,
    HumanTask,
    JsonVar,
    NumberVar,
    StringVar,
    WorkflowSession,
)

logger = get_logger(__name__)

BATCH_REQUEST_TYPE = "batch_coverage_requests"


def build_batch_variables(
    project: Project,
    requests: list[CoverageRequest],
    submitted_at: datetime | None = None,
) -> dict[str, CaseVariable]:
    """Build the variables delivered with the case's first human task."""
    timestamp = (submitted_at or datetime.now(timezone.utc)).isoformat()
    return {
        "projectId": NumberVar(project.id),
        "createdBy": NumberVar(project.created_by),
        "totalCoverageRequests": NumberVar(len(requests)),
        "timestamp": StringVar(timestamp),
        "requestType": StringVar(BATCH_REQUEST_TYPE),
        "isBatchCoverageRequest": BoolVar(True),
        "coverageRequestsData": JsonVar([r.to_payload() for r in requests]),
    }


class CoverageBatchService:
    """Submits a project's coverage requests as a single workflow case."""

    def __init__(
        self,
        project_repo: ProjectRepositoryProtocol,
        gateway: WorkflowGatewayProtocol,
        sessions: WorkflowSessionProvider,
        config: WorkflowEngineConfig,
        default_due_days: int = DEFAULT_COVERAGE_DUE_DAYS,
        sleep=asyncio.sleep,
    ) -> None:
        """Initialize the batch service.

        Args:
            project_repo: Project persistence (case id is recorded there).
            gateway: Workflow engine gateway.
            sessions: Session provider for the service account.
            config: Poll budget and backoff for the first human task.
            default_due_days: Due date offset for requests without one.
            sleep: Awaitable sleep, replaceable in tests.
        """
        self._projects = project_repo
        self._gateway = gateway
        self._sessions = sessions
        self._config = config
        self._default_due_days = default_due_days
        self._sleep = sleep

    async def submit_coverage_requests(
        self, project_id: int, drafts: list[TaskDraft]
    ) -> CoverageSubmissionResult | None:
        """Deliver a project's coverage requests to one new case.

        Returns:
            None when there is nothing to submit (no case is created),
            otherwise the submission result, successful or not.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
        """
        if not drafts:
            logger.debug("no_coverage_requests", project_id=project_id)
            return None

        project = await self._projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return await self._submit(project, drafts)

    async def resubmit_coverage_requests(
        self, project_id: int, drafts: list[TaskDraft]
    ) -> CoverageSubmissionResult:
        """Retry submission for a project whose batch never reached a case.

        Only allowed while the project has no external case; nothing is
        ever resubmitted automatically.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
            ValidationError: If no coverage requests are given.
            InvalidStateTransitionError: If the project already has a case.
        """
        if not drafts:
            raise ValidationError(
                "At least one coverage request is required", field="tasks"
            )
        project = await self._projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        if project.has_case:
            raise InvalidStateTransitionError(
                project_id=project_id,
                from_state=project.status,
                reason=(
                    f"coverage requests already delivered to case "
                    f"{project.external_case_id}"
                ),
            )
        logger.info(
            "coverage_requests_resubmitted", project_id=project_id, count=len(drafts)
        )
        return await self._submit(project, drafts)

    async def _submit(
        self, project: Project, drafts: list[TaskDraft]
    ) -> CoverageSubmissionResult:
        log = logger.bind(project_id=project.id, total_requests=len(drafts))
        requests = [
            CoverageRequest.from_draft(
                draft,
                project_id=project.id,
                created_by=project.created_by,
                default_due_days=self._default_due_days,
            )
            for draft in drafts
        ]
        titles = tuple(r.title for r in requests)
        case_id: str | None = None

        try:
            session = await self._sessions.get_session()
            case_id = await self._gateway.create_case(session)
            log = log.bind(case_id=case_id)
            log.info("coverage_case_created")

            first_task = await self._await_ready_task(session, case_id)
            await self._gateway.complete_task(
                session, first_task.id, build_batch_variables(project, requests)
            )
            log.info("coverage_batch_delivered", task_id=first_task.id)

            await self._projects.set_external_case_id(project.id, case_id)
        except AuthenticationFailedError as exc:
            self._sessions.invalidate()
            log.warning("coverage_submission_failed", error=str(exc))
            return CoverageSubmissionResult(
                total_requests=len(requests),
                request_titles=titles,
                case_id=case_id,
                error=ErrorInfo.from_exception(exc),
            )
        except (ExternalSystemUnavailableError, ConcurrentModificationError) as exc:
            log.warning("coverage_submission_failed", error=str(exc))
            return CoverageSubmissionResult(
                total_requests=len(requests),
                request_titles=titles,
                case_id=case_id,
                first_task_completed=isinstance(exc, ConcurrentModificationError),
                error=ErrorInfo.from_exception(exc),
            )

        return CoverageSubmissionResult(
            total_requests=len(requests),
            request_titles=titles,
            case_id=case_id,
            first_task_completed=True,
        )

    async def _await_ready_task(
        self, session: WorkflowSession, case_id: str
    ) -> HumanTask:
        """Poll until the case exposes a ready human task.

        Raises:
            NoReadyHumanTaskError: If none appears within the poll limit.
        """
        attempts = self._config.ready_task_max_attempts
        for attempt in range(1, attempts + 1):
            tasks = await self._gateway.list_human_tasks(session, case_id)
            ready = [t for t in tasks if t.is_ready]
            if ready:
                return ready[0]
            if attempt < attempts:
                delay = self._config.backoff_delay(attempt)
                logger.debug(
                    "waiting_for_ready_task",
                    case_id=case_id,
                    attempt=attempt,
                    delay=delay,
                )
                await self._sleep(delay)
        raise NoReadyHumanTaskError(case_id, attempts)
