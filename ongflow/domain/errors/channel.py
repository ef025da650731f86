"""Errors for operations applied to the wrong task category."""

from __future__ import annotations

from ongflow.domain.exceptions import OngFlowError


class WrongChannelError(OngFlowError):
    """Raised when a local-task operation targets a coverage request.

    Coverage requests are delegated to the workflow engine and can only
    be claimed through commitments.

    Attributes:
        task_id: The task the caller tried to use.
    """

    kind = "WRONG_CHANNEL"

    def __init__(self, task_id: int | str, message: str | None = None) -> None:
        self.task_id = task_id
        super().__init__(
            message
            or f"Task {task_id} is a coverage request; use commitments instead"
        )
