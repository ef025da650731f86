"""Errors raised at the workflow engine boundary."""

from __future__ import annotations

from ongflow.domain.exceptions import OngFlowError


class ExternalSystemUnavailableError(OngFlowError):
    """Raised when a workflow engine call fails (network, timeout, 5xx).

    The error is retryable by the caller; the core never retries
    automatically except for the bounded ready-task poll.

    Attributes:
        operation: Gateway operation that failed.
        status_code: HTTP status when available, else None.
        retryable: Whether the caller may retry the same call.
    """

    kind = "EXTERNAL_SYSTEM_UNAVAILABLE"

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: int | None = None,
        retryable: bool = True,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(f"Workflow engine {operation} failed: {message}")


class AuthenticationFailedError(ExternalSystemUnavailableError):
    """Raised when the workflow engine rejects the credentials."""

    def __init__(self, username: str, status_code: int | None = None) -> None:
        self.username = username
        super().__init__(
            "authenticate",
            f"credentials rejected for {username}",
            status_code=status_code,
            retryable=False,
        )


class NoReadyHumanTaskError(ExternalSystemUnavailableError):
    """Raised when a new case never exposes a human task within the poll limit."""

    def __init__(self, case_id: str, attempts: int) -> None:
        self.case_id = case_id
        self.attempts = attempts
        super().__init__(
            "list_human_tasks",
            f"no human task materialized for case {case_id} after {attempts} attempts",
        )
