"""Project domain model and lifecycle state machine.

State Machine:
    DRAFT -> PLANNED      (last coverage task receives an assigned commitment)
    PLANNED -> EXECUTING  (explicit execute)
    EXECUTING -> COMPLETE (explicit complete, or every task done)

Status only ever moves forward. EXECUTING and COMPLETE require an
external case id: a project whose coverage requests never reached the
workflow engine cannot leave the intake stage.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import ClassVar

from ongflow.domain.errors.state_transition import InvalidStateTransitionError
from ongflow.domain.errors.validation import ValidationError


class ProjectStatus(Enum):
    """Lifecycle state of a project.

    States:
        DRAFT: Created; coverage requests (if any) awaiting commitments.
        PLANNED: Every coverage request has an assigned commitment.
        EXECUTING: Work in progress.
        COMPLETE: Terminal.
    """

    DRAFT = "DRAFT"
    PLANNED = "PLANNED"
    EXECUTING = "EXECUTING"
    COMPLETE = "COMPLETE"

    @property
    def rank(self) -> int:
        """Position on the forward path, used to reject regressions."""
        return _STATUS_ORDER.index(self)

    def is_terminal(self) -> bool:
        return self is ProjectStatus.COMPLETE

    def next_status(self) -> ProjectStatus | None:
        """Return the only legal successor, or None for the terminal state."""
        return STATE_TRANSITION_MATRIX[self]

    def can_transition_to(self, target: ProjectStatus) -> bool:
        return self.next_status() is target


_STATUS_ORDER: tuple[ProjectStatus, ...] = (
    ProjectStatus.DRAFT,
    ProjectStatus.PLANNED,
    ProjectStatus.EXECUTING,
    ProjectStatus.COMPLETE,
)

# Single forward path; each state has at most one successor.
STATE_TRANSITION_MATRIX: dict[ProjectStatus, ProjectStatus | None] = {
    ProjectStatus.DRAFT: ProjectStatus.PLANNED,
    ProjectStatus.PLANNED: ProjectStatus.EXECUTING,
    ProjectStatus.EXECUTING: ProjectStatus.COMPLETE,
    ProjectStatus.COMPLETE: None,
}

# States that may only be held by a project with an external case.
CASE_REQUIRED_STATES: frozenset[ProjectStatus] = frozenset(
    {ProjectStatus.EXECUTING, ProjectStatus.COMPLETE}
)


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NewProject:
    """Validated input for creating a project row.

    Attributes:
        name: Project name (3-100 characters).
        description: Free text (up to 2000 characters).
        start_date: Planned start.
        end_date: Planned end, strictly after start_date.
        created_by: Organization id of the creator (immutable).
    """

    name: str
    start_date: date
    end_date: date
    created_by: int
    description: str = ""

    MIN_NAME_LENGTH: ClassVar[int] = 3
    MAX_NAME_LENGTH: ClassVar[int] = 100
    MAX_DESCRIPTION_LENGTH: ClassVar[int] = 2000

    def __post_init__(self) -> None:
        """Validate project fields."""
        name = self.name.strip()
        if not self.MIN_NAME_LENGTH <= len(name) <= self.MAX_NAME_LENGTH:
            raise ValidationError(
                f"Project name must be between {self.MIN_NAME_LENGTH} and "
                f"{self.MAX_NAME_LENGTH} characters",
                field="name",
            )
        if len(self.description) > self.MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Project description exceeds {self.MAX_DESCRIPTION_LENGTH} characters",
                field="description",
            )
        if self.end_date <= self.start_date:
            raise ValidationError(
                "End date must be after start date", field="end_date"
            )
        if self.created_by <= 0:
            raise ValidationError(
                "created_by must be a positive id", field="created_by"
            )


@dataclass(frozen=True, eq=True)
class Project:
    """A persisted project.

    Attributes:
        id: Numeric identifier.
        name: Project name.
        description: Free text.
        start_date: Planned start.
        end_date: Planned end.
        created_by: Organization id of the creator.
        status: Current lifecycle state.
        external_case_id: Workflow case aggregating every coverage request,
            set at most once and only when coverage requests exist.
        created_at: Creation timestamp (UTC).
        updated_at: Last modification timestamp (UTC).
    """

    id: int
    name: str
    start_date: date
    end_date: date
    created_by: int
    description: str = ""
    status: ProjectStatus = field(default=ProjectStatus.DRAFT)
    external_case_id: str | None = field(default=None)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if self.status in CASE_REQUIRED_STATES and self.external_case_id is None:
            raise ValueError(
                f"Project {self.id} cannot be {self.status.value} "
                "without an external case"
            )

    @property
    def has_case(self) -> bool:
        return self.external_case_id is not None

    def with_status(self, new_status: ProjectStatus) -> Project:
        """Return a copy advanced to ``new_status``.

        Args:
            new_status: The only legal successor of the current status.

        Returns:
            New Project with updated status and timestamp.

        Raises:
            InvalidStateTransitionError: If new_status is not the successor,
                or requires a case the project does not have.
        """
        if not self.status.can_transition_to(new_status):
            raise InvalidStateTransitionError(
                project_id=self.id,
                from_state=self.status,
                to_state=new_status,
                reason="status only advances one step forward",
            )
        if new_status in CASE_REQUIRED_STATES and not self.has_case:
            raise InvalidStateTransitionError(
                project_id=self.id,
                from_state=self.status,
                to_state=new_status,
                reason="project has no external case",
            )
        return replace(self, status=new_status, updated_at=_utc_now())

    def with_external_case(self, case_id: str) -> Project:
        """Return a copy carrying ``case_id``.

        Raises:
            ValueError: If a case id is already recorded.
        """
        if self.external_case_id is not None:
            raise ValueError(
                f"Project {self.id} already has external case {self.external_case_id}"
            )
        return replace(self, external_case_id=case_id, updated_at=_utc_now())
