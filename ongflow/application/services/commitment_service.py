"""Commitment reconciliation engine.

Organizations propose commitments against coverage tasks; the project
creator assigns exactly one per task. When the last coverage task of a
project receives its assigned commitment, intake is over and the project
advances to PLANNED.

The "is this the last unassigned task" check runs inside the project's
lock, so two assignments racing on the last two tasks see each other's
writes and the project advances exactly once.
"""

from __future__ import annotations

from structlog import get_logger

from ongflow.application.dtos.results import (
    AssignmentResult,
    CommitmentDoneResult,
    ErrorInfo,
)
from ongflow.application.ports.commitment_repository import (
    CommitmentRepositoryProtocol,
)
from ongflow.application.ports.project_lock import ProjectLockProtocol
from ongflow.application.ports.project_repository import ProjectRepositoryProtocol
from ongflow.application.ports.workflow_gateway import WorkflowGatewayProtocol
from ongflow.application.services.completion_aggregator_service import (
    CompletionAggregatorService,
)
from ongflow.application.services.project_lifecycle_service import (
    ProjectLifecycleService,
)
from ongflow.application.services.workflow_session_provider import (
    WorkflowSessionProvider,
)
from ongflow.domain.errors import (
    CommitmentAlreadyAssignedError,
    CommitmentNotFoundError,
    ExternalSystemUnavailableError,
    InvalidStateTransitionError,
    NotFoundError,
    ProjectNotFoundError,
    ValidationError,
)
from ongflow.domain.models.commitment import Commitment
from ongflow.domain.models.project import ProjectStatus
from ongflow.domain.models.task import TaskStatus

logger = get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 2000


class CommitmentService:
    """Proposes, assigns and completes commitments on coverage tasks."""

    def __init__(
        self,
        commitment_repo: CommitmentRepositoryProtocol,
        project_repo: ProjectRepositoryProtocol,
        gateway: WorkflowGatewayProtocol,
        sessions: WorkflowSessionProvider,
        project_lock: ProjectLockProtocol,
        lifecycle: ProjectLifecycleService,
        aggregator: CompletionAggregatorService,
    ) -> None:
        self._commitments = commitment_repo
        self._projects = project_repo
        self._gateway = gateway
        self._sessions = sessions
        self._lock = project_lock
        self._lifecycle = lifecycle
        self._aggregator = aggregator

    async def propose(
        self, task_id: str, organization_id: int, description: str
    ) -> Commitment:
        """Record a pending commitment. Any number may compete for one task.

        Raises:
            ValidationError: If an argument is missing or malformed.
        """
        if not task_id or not task_id.strip():
            raise ValidationError("task_id is required", field="task_id")
        if organization_id <= 0:
            raise ValidationError(
                "organization_id must be a positive id", field="organization_id"
            )
        if not description or not description.strip():
            raise ValidationError(
                "Commitment description is required", field="description"
            )
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Commitment description exceeds {MAX_DESCRIPTION_LENGTH} characters",
                field="description",
            )

        commitment = await self._commitments.save(
            task_id=task_id,
            organization_id=organization_id,
            description=description.strip(),
        )
        logger.info(
            "commitment_proposed",
            commitment_id=commitment.id,
            task_id=task_id,
            organization_id=organization_id,
        )
        return commitment

    async def list_commitments(self, task_id: str) -> list[Commitment]:
        return await self._commitments.list_by_task(task_id)

    async def assign(
        self, project_id: int, task_id: str, commitment_id: int
    ) -> AssignmentResult:
        """Assign a commitment and advance the project if intake is over.

        The engine is updated before the local row, so a failed mirror
        leaves the commitment pending. Repeating the call for a commitment
        that is already assigned re-mirrors it and re-runs the last-task
        check, which lets a caller retry until the project advances.

        Args:
            project_id: Project owning the coverage task.
            task_id: External id of the coverage task.
            commitment_id: The chosen commitment; must belong to task_id.

        Returns:
            AssignmentResult with the remaining unassigned count and whether
            this call moved the project to PLANNED.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
            CommitmentNotFoundError: If the commitment doesn't exist or
                belongs to another task.
            NotFoundError: If the coverage task is not part of the project.
            InvalidStateTransitionError: If the project has no external case.
            CommitmentAlreadyAssignedError: If another commitment already
                holds the task.
            ExternalSystemUnavailableError: If the engine cannot be reached.
        """
        log = logger.bind(
            project_id=project_id, task_id=task_id, commitment_id=commitment_id
        )

        project = await self._projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        commitment = await self._commitments.get(commitment_id)
        if commitment is None or commitment.task_id != task_id:
            raise CommitmentNotFoundError(commitment_id, task_id=task_id)
        if not project.has_case:
            raise InvalidStateTransitionError(
                project_id=project_id,
                from_state=project.status,
                to_state=ProjectStatus.PLANNED,
                reason="project has no external case",
            )

        async with self._lock.hold(project_id):
            async with self._sessions.open_session() as session:
                coverage_tasks = await self._gateway.list_coverage_tasks(
                    session, project_id
                )
                task_ids = [t.id for t in coverage_tasks]
                if task_id not in task_ids:
                    raise NotFoundError("coverage task", task_id)

                commitment = await self._commitments.get(commitment_id) or commitment
                if not commitment.is_assigned:
                    competing = await self._commitments.list_by_task(task_id)
                    holder = next((c for c in competing if c.is_assigned), None)
                    if holder is not None:
                        raise CommitmentAlreadyAssignedError(task_id, holder.id)

                # Engine first: a failed mirror must leave the local row pending.
                try:
                    await self._gateway.assign_coverage_task(
                        session, task_id, commitment.organization_id
                    )
                except ExternalSystemUnavailableError:
                    log.error("commitment_assignment_not_mirrored")
                    raise

            if commitment.is_assigned:
                log.info("commitment_assignment_replayed")
            else:
                commitment = await self._commitments.assign(commitment_id)
                log.info(
                    "commitment_assigned", organization_id=commitment.organization_id
                )

            assigned_ids = await self._commitments.assigned_task_ids(task_ids)
            remaining = len(set(task_ids) - assigned_ids)

            if remaining > 0:
                log.info("intake_open", remaining_unassigned=remaining)
                current = await self._projects.get(project_id)
                return AssignmentResult(
                    commitment=commitment,
                    project=current or project,
                    remaining_unassigned=remaining,
                )

            outcome = await self._lifecycle.advance_from_intake(project_id)
            if outcome.changed:
                log.info("intake_closed")
            return AssignmentResult(
                commitment=commitment,
                project=outcome.project,
                remaining_unassigned=0,
                project_advanced=outcome.changed,
            )

    async def mark_done(self, commitment_id: int) -> CommitmentDoneResult:
        """Mark the commitment's coverage task done and recompute completion.

        Raises:
            CommitmentNotFoundError: If the commitment doesn't exist.
            ValidationError: If the commitment was never assigned.
            NotFoundError: If the engine no longer knows the coverage task.
            ExternalSystemUnavailableError: If the engine cannot be reached.
        """
        log = logger.bind(commitment_id=commitment_id)
        commitment = await self._commitments.get(commitment_id)
        if commitment is None:
            raise CommitmentNotFoundError(commitment_id)
        if not commitment.is_assigned:
            raise ValidationError(
                f"Commitment {commitment_id} is not assigned", field="commitment_id"
            )

        async with self._sessions.open_session() as session:
            coverage_task = await self._gateway.get_coverage_task(
                session, commitment.task_id
            )
            if coverage_task is None:
                raise NotFoundError("coverage task", commitment.task_id)

            await self._gateway.update_coverage_task_status(
                session, commitment.task_id, TaskStatus.DONE
            )
        log.info(
            "coverage_task_done",
            task_id=commitment.task_id,
            project_id=coverage_task.project_id,
        )

        try:
            completion = await self._aggregator.recompute_completion(
                coverage_task.project_id
            )
        except ExternalSystemUnavailableError as exc:
            log.warning("completion_recompute_failed", error=str(exc))
            return CommitmentDoneResult(
                commitment=commitment,
                project_id=coverage_task.project_id,
                completion_error=ErrorInfo.from_exception(exc),
            )
        return CommitmentDoneResult(
            commitment=commitment,
            project_id=coverage_task.project_id,
            completion=completion,
        )
