"""Result DTOs for the coordination services."""

from __future__ import annotations

from dataclasses import dataclass, field

from ongflow.domain.errors.batch import PartialBatchFailureError
from ongflow.domain.exceptions import OngFlowError
from ongflow.domain.models.commitment import Commitment
from ongflow.domain.models.project import Project
from ongflow.domain.models.task import LocalTask
from ongflow.domain.models.workflow import HumanTask


@dataclass(frozen=True)
class ErrorInfo:
    """Machine-readable error kind plus a human-readable message."""

    kind: str
    message: str

    @classmethod
    def from_exception(cls, exc: Exception) -> ErrorInfo:
        if isinstance(exc, OngFlowError):
            return cls(kind=exc.kind, message=str(exc))
        return cls(kind="INTERNAL_ERROR", message=str(exc) or type(exc).__name__)


@dataclass(frozen=True)
class ExternalFailure:
    """One engine-side item that failed inside a best-effort loop."""

    task_id: str
    message: str


@dataclass(frozen=True)
class CoverageSubmissionResult:
    """Outcome of sending a project's coverage requests to the engine.

    Attributes:
        total_requests: Number of coverage requests in the batch.
        request_titles: Titles, in payload order.
        case_id: Case created for the batch, if creation succeeded.
        first_task_completed: Whether the payload was delivered through
            the case's first human task.
        error: Structured failure, None on success.
    """

    total_requests: int
    request_titles: tuple[str, ...]
    case_id: str | None = None
    first_task_completed: bool = False
    error: ErrorInfo | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.case_id is not None

    @property
    def succeeded_count(self) -> int:
        return 1 if self.succeeded else 0

    @property
    def failed_count(self) -> int:
        return 0 if self.succeeded else 1


@dataclass(frozen=True)
class ProjectCreationResult:
    """Outcome of create-project.

    ``coverage`` is None when the project had no coverage requests.
    """

    project: Project
    local_tasks: tuple[LocalTask, ...]
    coverage: CoverageSubmissionResult | None = None

    @property
    def total_tasks(self) -> int:
        delegated = self.coverage.total_requests if self.coverage else 0
        return len(self.local_tasks) + delegated


@dataclass(frozen=True)
class LifecycleResult:
    """Outcome of a lifecycle operation (execute, complete, advance).

    Attributes:
        project: Project snapshot after the operation.
        changed: False when the call was an idempotent no-op.
        completed_work_item: Engine work item completed by the call.
        marked_in_progress: Coverage tasks moved to in_progress.
        failures: Coverage tasks whose engine update failed.
        external_error: Engine failure that prevented the external side of
            the operation; the local status change stands regardless.
    """

    project: Project
    changed: bool = True
    completed_work_item: HumanTask | None = None
    marked_in_progress: tuple[str, ...] = ()
    failures: tuple[ExternalFailure, ...] = ()
    external_error: ErrorInfo | None = None

    @property
    def partial_failure(self) -> PartialBatchFailureError | None:
        if not self.failures:
            return None
        return PartialBatchFailureError(
            operation="mark_coverage_tasks_in_progress",
            succeeded=len(self.marked_in_progress),
            failed={f.task_id: f.message for f in self.failures},
        )


@dataclass(frozen=True)
class AssignmentResult:
    """Outcome of assigning a commitment.

    Attributes:
        commitment: The assigned commitment.
        project: Project snapshot after the assignment.
        remaining_unassigned: Coverage tasks still without an assigned
            commitment once this one was recorded.
        project_advanced: True only for the call that moved the project
            to PLANNED.
    """

    commitment: Commitment
    project: Project
    remaining_unassigned: int
    project_advanced: bool = False


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of recomputing a project's completion."""

    project: Project
    local_total: int
    local_done: int
    external_total: int
    external_done: int
    project_completed: bool = False

    @property
    def total(self) -> int:
        return self.local_total + self.external_total

    @property
    def all_done(self) -> bool:
        # An empty union is not done: a project without tasks never auto-completes.
        return self.total > 0 and (self.local_done + self.external_done) == self.total


@dataclass(frozen=True)
class CoverageStatus:
    """Engine-side progress of a project's coverage case."""

    project_id: int
    case_id: str | None
    ready_tasks: tuple[HumanTask, ...] = ()
    completed_count: int = 0
    total_count: int = 0


@dataclass(frozen=True)
class TaskTotals:
    """Task counts across both stores.

    ``external_available`` is False when the engine could not be reached;
    external counts are then reported as zero.
    """

    local_total: int
    local_todo: int
    external_total: int = 0
    external_todo: int = 0
    external_available: bool = True
    errors: tuple[ErrorInfo, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return self.local_total + self.external_total

    @property
    def total_todo(self) -> int:
        return self.local_todo + self.external_todo


@dataclass(frozen=True)
class LocalTaskDoneResult:
    """Outcome of marking a local task done.

    ``completion_error`` is set when the task was marked done but the
    completion recompute could not reach the workflow engine.
    """

    task: LocalTask
    completion: CompletionResult | None = None
    completion_error: ErrorInfo | None = None


@dataclass(frozen=True)
class CommitmentDoneResult:
    """Outcome of marking a commitment's coverage task done."""

    commitment: Commitment
    project_id: int
    completion: CompletionResult | None = None
    completion_error: ErrorInfo | None = None
