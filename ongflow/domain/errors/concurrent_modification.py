"""Compare-and-set conflicts on locally stored rows."""

from __future__ import annotations

from ongflow.domain.exceptions import OngFlowError


class ConcurrentModificationError(OngFlowError):
    """Raised when a compare-and-set update finds unexpected current state.

    Attributes:
        entity: Entity name.
        entity_id: Identifier of the row.
        operation: Operation that lost the race.
    """

    kind = "CONFLICT"

    def __init__(
        self,
        entity: str,
        entity_id: object,
        operation: str,
        message: str | None = None,
    ) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.operation = operation
        super().__init__(
            message
            or f"Concurrent modification of {entity} {entity_id} during {operation}"
        )


class TaskAlreadyTakenError(ConcurrentModificationError):
    """Raised when a local task already has an assignee.

    Attributes:
        assignee: Organization currently holding the task.
    """

    def __init__(self, task_id: int, assignee: int | None = None) -> None:
        self.task_id = task_id
        self.assignee = assignee
        super().__init__(
            "task",
            task_id,
            "take",
            message=f"Task {task_id} is already taken by organization {assignee}",
        )


class CommitmentAlreadyAssignedError(ConcurrentModificationError):
    """Raised when a coverage task already has an assigned commitment."""

    def __init__(self, task_id: str, assigned_commitment_id: int | None = None) -> None:
        self.task_id = task_id
        self.assigned_commitment_id = assigned_commitment_id
        super().__init__(
            "coverage task",
            task_id,
            "assign",
            message=(
                f"Coverage task {task_id} already has assigned commitment "
                f"{assigned_commitment_id}"
            ),
        )
