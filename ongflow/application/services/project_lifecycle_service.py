"""Project lifecycle manager.

Owns the project status field. Every status write goes through the
repository's compare-and-set, so the four states are only ever visited in
order, each at most once, whatever the interleaving of callers.

Each transition also advances the project's workflow case by completing
one work item: the first ready human task, else the first task listed.
The engine calls happen after the local status commit and are not
transactional with it. Engine failures are reported on the result and
never undo the local transition.
"""

from __future__ import annotations

from structlog import get_logger

from ongflow.application.dtos.results import (
    ErrorInfo,
    ExternalFailure,
    LifecycleResult,
)
from ongflow.application.ports.project_repository import ProjectRepositoryProtocol
from ongflow.application.ports.workflow_gateway import WorkflowGatewayProtocol
from ongflow.application.services.workflow_session_provider import (
    WorkflowSessionProvider,
)
from ongflow.domain.errors import (
    AuthenticationFailedError,
    ConcurrentModificationError,
    ExternalSystemUnavailableError,
    InvalidStateTransitionError,
    ProjectNotFoundError,
)
from ongflow.domain.models.project import Project, ProjectStatus
from ongflow.domain.models.task import TaskStatus
from ongflow.domain.models.workflow import HumanTask, WorkflowSession, pick_work_item

logger = get_logger(__name__)


class ProjectLifecycleService:
    """Drives projects along DRAFT -> PLANNED -> EXECUTING -> COMPLETE."""

    def __init__(
        self,
        project_repo: ProjectRepositoryProtocol,
        gateway: WorkflowGatewayProtocol,
        sessions: WorkflowSessionProvider,
    ) -> None:
        self._projects = project_repo
        self._gateway = gateway
        self._sessions = sessions

    async def _get_project(self, project_id: int) -> Project:
        project = await self._projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    async def _transition(
        self, project: Project, new_status: ProjectStatus
    ) -> Project | None:
        """CAS the status forward; None means another caller got there first."""
        try:
            return await self._projects.transition_status(
                project.id, expected=project.status, new=new_status
            )
        except ConcurrentModificationError:
            current = await self._get_project(project.id)
            if current.status.rank >= new_status.rank:
                return None
            raise

    async def execute(self, project_id: int) -> LifecycleResult:
        """Move a PLANNED project to EXECUTING.

        Marks every coverage task of the project in_progress on the engine
        (best effort, failures collected per task) and completes one work
        item of the case.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
            InvalidStateTransitionError: If the project has no external case
                or is not PLANNED.
        """
        log = logger.bind(project_id=project_id, operation="execute")
        project = await self._get_project(project_id)

        if not project.has_case:
            log.warning("execute_rejected_no_case", status=project.status.value)
            raise InvalidStateTransitionError(
                project_id=project_id,
                from_state=project.status,
                to_state=ProjectStatus.EXECUTING,
                reason="project has no external case",
            )
        if project.status is not ProjectStatus.PLANNED:
            log.warning("execute_rejected_wrong_status", status=project.status.value)
            raise InvalidStateTransitionError(
                project_id=project_id,
                from_state=project.status,
                to_state=ProjectStatus.EXECUTING,
            )

        updated = await self._transition(project, ProjectStatus.EXECUTING)
        if updated is None:
            log.info("execute_lost_race")
            raise InvalidStateTransitionError(
                project_id=project_id,
                from_state=ProjectStatus.PLANNED,
                to_state=ProjectStatus.EXECUTING,
                reason="project was executed concurrently",
            )
        log.info("project_executing", case_id=updated.external_case_id)

        try:
            session = await self._sessions.get_session()
        except ExternalSystemUnavailableError as exc:
            log.warning("execute_engine_unavailable", error=str(exc))
            return LifecycleResult(
                project=updated, external_error=ErrorInfo.from_exception(exc)
            )

        marked, failures = await self._mark_coverage_tasks_in_progress(
            session, updated
        )
        work_item, error = await self._complete_work_item(session, updated)
        return LifecycleResult(
            project=updated,
            completed_work_item=work_item,
            marked_in_progress=tuple(marked),
            failures=tuple(failures),
            external_error=error,
        )

    async def complete(self, project_id: int) -> LifecycleResult:
        """Move an EXECUTING project to COMPLETE.

        Calling this on a project that is already COMPLETE is a no-op and
        makes no engine call.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
            InvalidStateTransitionError: If the project has no external case
                or is neither EXECUTING nor COMPLETE.
        """
        log = logger.bind(project_id=project_id, operation="complete")
        project = await self._get_project(project_id)

        if not project.has_case:
            log.warning("complete_rejected_no_case", status=project.status.value)
            raise InvalidStateTransitionError(
                project_id=project_id,
                from_state=project.status,
                to_state=ProjectStatus.COMPLETE,
                reason="project has no external case",
            )
        if project.status is ProjectStatus.COMPLETE:
            log.info("complete_noop_already_complete")
            return LifecycleResult(project=project, changed=False)
        if project.status is not ProjectStatus.EXECUTING:
            log.warning("complete_rejected_wrong_status", status=project.status.value)
            raise InvalidStateTransitionError(
                project_id=project_id,
                from_state=project.status,
                to_state=ProjectStatus.COMPLETE,
            )

        updated = await self._transition(project, ProjectStatus.COMPLETE)
        if updated is None:
            log.info("complete_noop_concurrent")
            return LifecycleResult(
                project=await self._get_project(project_id), changed=False
            )
        log.info("project_complete", case_id=updated.external_case_id)

        work_item, error = await self._advance_case(updated)
        return LifecycleResult(
            project=updated, completed_work_item=work_item, external_error=error
        )

    async def finalize_completion(self, project_id: int) -> LifecycleResult:
        """Complete a project whose every task is done.

        Same as complete() but also a no-op for projects that are not
        EXECUTING, since the aggregator may observe all tasks done before
        the project is executed.
        """
        project = await self._get_project(project_id)
        if project.status is not ProjectStatus.EXECUTING:
            logger.info(
                "finalize_completion_skipped",
                project_id=project_id,
                status=project.status.value,
            )
            return LifecycleResult(project=project, changed=False)
        return await self.complete(project_id)

    async def advance_from_intake(self, project_id: int) -> LifecycleResult:
        """Move a DRAFT project to PLANNED once intake is over.

        Invoked when the last unassigned coverage task receives an assigned
        commitment. Idempotent: a project already PLANNED or beyond is
        returned unchanged without touching the engine.
        """
        log = logger.bind(project_id=project_id, operation="advance_from_intake")
        project = await self._get_project(project_id)

        if project.status.rank >= ProjectStatus.PLANNED.rank:
            log.info("advance_noop", status=project.status.value)
            return LifecycleResult(project=project, changed=False)

        updated = await self._transition(project, ProjectStatus.PLANNED)
        if updated is None:
            log.info("advance_noop_concurrent")
            return LifecycleResult(
                project=await self._get_project(project_id), changed=False
            )
        log.info("project_planned", case_id=updated.external_case_id)

        if not updated.has_case:
            return LifecycleResult(project=updated)
        work_item, error = await self._advance_case(updated)
        return LifecycleResult(
            project=updated, completed_work_item=work_item, external_error=error
        )

    async def _advance_case(
        self, project: Project
    ) -> tuple[HumanTask | None, ErrorInfo | None]:
        try:
            session = await self._sessions.get_session()
        except ExternalSystemUnavailableError as exc:
            logger.warning(
                "engine_unavailable", project_id=project.id, error=str(exc)
            )
            return None, ErrorInfo.from_exception(exc)
        return await self._complete_work_item(session, project)

    async def _complete_work_item(
        self, session: WorkflowSession, project: Project
    ) -> tuple[HumanTask | None, ErrorInfo | None]:
        """Complete the case's next work item, reporting rather than raising."""
        case_id = project.external_case_id
        log = logger.bind(project_id=project.id, case_id=case_id)
        try:
            tasks = await self._gateway.list_human_tasks(session, case_id)
            work_item = pick_work_item(tasks)
            if work_item is None:
                log.warning("no_work_item_to_complete")
                return None, None
            await self._gateway.complete_task(session, work_item.id)
        except AuthenticationFailedError as exc:
            self._sessions.invalidate()
            log.warning("work_item_completion_failed", error=str(exc))
            return None, ErrorInfo.from_exception(exc)
        except ExternalSystemUnavailableError as exc:
            log.warning("work_item_completion_failed", error=str(exc))
            return None, ErrorInfo.from_exception(exc)
        log.info("work_item_completed", task_id=work_item.id, task_name=work_item.name)
        return work_item, None

    async def _mark_coverage_tasks_in_progress(
        self, session: WorkflowSession, project: Project
    ) -> tuple[list[str], list[ExternalFailure]]:
        log = logger.bind(project_id=project.id, case_id=project.external_case_id)
        try:
            coverage_tasks = await self._gateway.list_coverage_tasks(
                session, project.id
            )
        except ExternalSystemUnavailableError as exc:
            log.warning("coverage_task_listing_failed", error=str(exc))
            return [], [ExternalFailure(task_id="*", message=str(exc))]

        marked: list[str] = []
        failures: list[ExternalFailure] = []
        for task in coverage_tasks:
            if task.status in (TaskStatus.DONE, TaskStatus.CANCELLED):
                continue
            try:
                await self._gateway.update_coverage_task_status(
                    session, task.id, TaskStatus.IN_PROGRESS
                )
            except ExternalSystemUnavailableError as exc:
                log.warning(
                    "coverage_task_mark_failed", task_id=task.id, error=str(exc)
                )
                failures.append(ExternalFailure(task_id=task.id, message=str(exc)))
                continue
            marked.append(task.id)

        if failures:
            log.warning(
                "coverage_tasks_partially_marked",
                succeeded=len(marked),
                failed=len(failures),
            )
        else:
            log.info("coverage_tasks_marked_in_progress", count=len(marked))
        return marked, failures
