"""Project lifecycle transition errors.

The project lifecycle is a single forward path
(DRAFT -> PLANNED -> EXECUTING -> COMPLETE). Any request that does not
match the guard for the current state raises InvalidStateTransitionError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ongflow.domain.exceptions import OngFlowError

if TYPE_CHECKING:
    from ongflow.domain.models.project import ProjectStatus


class InvalidStateTransitionError(OngFlowError):
    """Raised when a lifecycle guard rejects an operation.

    Attributes:
        project_id: Project the operation targeted.
        from_state: Current project status.
        to_state: Requested status, if the operation implied one.
        reason: Short explanation of the failed guard.
    """

    kind = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        project_id: int,
        from_state: ProjectStatus,
        to_state: ProjectStatus | None = None,
        reason: str | None = None,
    ) -> None:
        self.project_id = project_id
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason

        target = f" -> {to_state.value}" if to_state is not None else ""
        suffix = f": {reason}" if reason else ""
        super().__init__(
            f"Invalid state transition for project {project_id}: "
            f"{from_state.value}{target}{suffix}"
        )
