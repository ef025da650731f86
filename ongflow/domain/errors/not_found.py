"""Errors for absent projects, tasks and commitments."""

from __future__ import annotations

from ongflow.domain.exceptions import OngFlowError


class NotFoundError(OngFlowError):
    """Base error for lookups that found nothing.

    Attributes:
        entity: Entity name (``project``, ``task``, ``commitment``).
        entity_id: Identifier that was looked up.
    """

    kind = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: object) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")


class ProjectNotFoundError(NotFoundError):
    """Raised when a project id does not exist."""

    def __init__(self, project_id: int) -> None:
        self.project_id = project_id
        super().__init__("project", project_id)


class TaskNotFoundError(NotFoundError):
    """Raised when a local task id does not exist."""

    def __init__(self, task_id: int) -> None:
        self.task_id = task_id
        super().__init__("task", task_id)


class CommitmentNotFoundError(NotFoundError):
    """Raised when a commitment does not exist, or does not belong to the given task."""

    def __init__(self, commitment_id: int, task_id: str | None = None) -> None:
        self.commitment_id = commitment_id
        self.task_id = task_id
        super().__init__("commitment", commitment_id)
        if task_id is not None:
            self.message = f"Commitment {commitment_id} not found for task {task_id}"
            self.args = (self.message,)
