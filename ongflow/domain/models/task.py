"""Task domain models: local tasks and delegated coverage requests.

A project's tasks are split at creation time by ``is_coverage_request``:

- Local tasks are rows in the relational store, taken by one organization
  through a compare-and-set on ``assignee``.
- Coverage requests never touch the local store. They are serialized into
  one JSON payload delivered to the project's single workflow case, and the
  engine then tracks each one as a CoverageTask with its own external id.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar

from ongflow.domain.errors.validation import ValidationError

DEFAULT_COVERAGE_DUE_DAYS = 30


class TaskStatus(Enum):
    """Status of a task, shared by local and external tasks."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELLED = "cancelled"


class UrgencyLevel(Enum):
    """Urgency attached to a coverage request."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TaskDraft:
    """A task as submitted with a new project, before it is routed.

    Attributes:
        title: Short title, required.
        description: Free text.
        due_date: Optional due date.
        estimated_hours: Non-negative estimate.
        is_coverage_request: True routes the task to the workflow engine.
        required_skills: Skills asked of the covering organization.
        urgency_level: Urgency for coverage requests.
    """

    title: str
    description: str = ""
    due_date: date | None = None
    estimated_hours: Decimal = Decimal("0")
    is_coverage_request: bool = False
    required_skills: tuple[str, ...] = ()
    urgency_level: UrgencyLevel | None = None

    MAX_TITLE_LENGTH: ClassVar[int] = 150

    def __post_init__(self) -> None:
        """Validate task fields."""
        if not self.title or not self.title.strip():
            raise ValidationError("Task title is required", field="title")
        if len(self.title) > self.MAX_TITLE_LENGTH:
            raise ValidationError(
                f"Task title exceeds {self.MAX_TITLE_LENGTH} characters",
                field="title",
            )
        if self.estimated_hours < 0:
            raise ValidationError(
                "estimated_hours must not be negative", field="estimated_hours"
            )


@dataclass(frozen=True, eq=True)
class LocalTask:
    """A task owned by the local store.

    Attributes:
        id: Numeric identifier.
        project_id: Owning project.
        title: Short title.
        description: Free text.
        status: todo until taken, in_progress once taken, then done.
        assignee: Organization that took the task, None until taken.
        due_date: Optional due date.
        estimated_hours: Non-negative estimate.
        created_by: Organization that created the project.
        is_coverage_request: Always False for rows created by OngFlow;
            kept so that rows imported from elsewhere are routed correctly.
    """

    id: int
    project_id: int
    title: str
    created_by: int
    description: str = ""
    status: TaskStatus = field(default=TaskStatus.TODO)
    assignee: int | None = field(default=None)
    due_date: date | None = field(default=None)
    estimated_hours: Decimal = field(default=Decimal("0"))
    is_coverage_request: bool = field(default=False)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def is_taken(self) -> bool:
        return self.assignee is not None

    def taken_by(self, organization_id: int) -> LocalTask:
        return replace(
            self,
            assignee=organization_id,
            status=TaskStatus.IN_PROGRESS,
            updated_at=_utc_now(),
        )

    def marked_done(self) -> LocalTask:
        return replace(self, status=TaskStatus.DONE, updated_at=_utc_now())


@dataclass(frozen=True)
class CoverageRequest:
    """One entry of the batch payload delivered to the workflow case.

    Defaults applied when building from a draft: due date 30 days ahead,
    medium urgency, no required skills.
    """

    title: str
    description: str
    estimated_hours: Decimal
    due_date: date
    urgency_level: UrgencyLevel
    required_skills: tuple[str, ...]
    project_id: int
    created_by: int

    @classmethod
    def from_draft(
        cls,
        draft: TaskDraft,
        project_id: int,
        created_by: int,
        today: date | None = None,
        default_due_days: int = DEFAULT_COVERAGE_DUE_DAYS,
    ) -> CoverageRequest:
        base = today or _utc_now().date()
        return cls(
            title=draft.title,
            description=draft.description,
            estimated_hours=draft.estimated_hours,
            due_date=draft.due_date or base + timedelta(days=default_due_days),
            urgency_level=draft.urgency_level or UrgencyLevel.MEDIUM,
            required_skills=tuple(draft.required_skills),
            project_id=project_id,
            created_by=created_by,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON shape the workflow engine expands."""
        return {
            "title": self.title,
            "description": self.description,
            "estimatedHours": float(self.estimated_hours),
            "dueDate": self.due_date.isoformat(),
            "urgencyLevel": self.urgency_level.value,
            "requiredSkills": list(self.required_skills),
            "createdBy": self.created_by,
            "projectId": self.project_id,
            "isCoverageRequest": True,
        }


@dataclass(frozen=True, eq=True)
class CoverageTask:
    """A coverage request as tracked by the workflow engine.

    Attributes:
        id: External task id issued by the engine.
        project_id: Owning project.
        case_id: Case the task belongs to.
        index: Position in the batch payload.
        title: Short title.
        status: Engine-side status (same vocabulary as local tasks).
        assignee: Organization of the assigned commitment, if any.
    """

    id: str
    project_id: int
    case_id: str
    index: int
    title: str
    status: TaskStatus = TaskStatus.TODO
    assignee: int | None = None
