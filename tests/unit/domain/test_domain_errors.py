"""Unit tests for domain error kinds and messages."""

from ongflow.domain.errors import (
    AuthenticationFailedError,
    CommitmentAlreadyAssignedError,
    CommitmentNotFoundError,
    ConcurrentModificationError,
    ExternalSystemUnavailableError,
    InvalidStateTransitionError,
    NoReadyHumanTaskError,
    PartialBatchFailureError,
    ProjectNotFoundError,
    TaskAlreadyTakenError,
    ValidationError,
    WrongChannelError,
)
from ongflow.domain.exceptions import OngFlowError
from ongflow.domain.models.project import ProjectStatus


class TestErrorKinds:
    """Tests for the machine-readable kinds."""

    def test_kinds(self) -> None:
        """Test each error family carries its kind."""
        assert ValidationError("bad").kind == "VALIDATION_ERROR"
        assert ProjectNotFoundError(1).kind == "NOT_FOUND"
        assert WrongChannelError(1).kind == "WRONG_CHANNEL"
        assert ConcurrentModificationError("task", 1, "take").kind == "CONFLICT"
        assert TaskAlreadyTakenError(1, assignee=2).kind == "CONFLICT"
        assert CommitmentAlreadyAssignedError("cov-1").kind == "CONFLICT"
        assert (
            InvalidStateTransitionError(1, ProjectStatus.DRAFT).kind
            == "INVALID_STATE_TRANSITION"
        )
        assert (
            ExternalSystemUnavailableError("create_case", "boom").kind
            == "EXTERNAL_SYSTEM_UNAVAILABLE"
        )
        assert PartialBatchFailureError("execute", 1, {"a": "x"}).kind == (
            "PARTIAL_BATCH_FAILURE"
        )

    def test_all_inherit_base(self) -> None:
        """Test every domain error is an OngFlowError."""
        assert isinstance(AuthenticationFailedError("walter"), OngFlowError)
        assert isinstance(NoReadyHumanTaskError("1001", 3), OngFlowError)


class TestErrorDetails:
    """Tests for error attributes and messages."""

    def test_authentication_failure_is_not_retryable(self) -> None:
        """Test rejected credentials are reported as non-retryable."""
        error = AuthenticationFailedError("walter", status_code=401)
        assert error.retryable is False
        assert error.operation == "authenticate"
        assert "walter" in str(error)

    def test_no_ready_task_keeps_attempts(self) -> None:
        """Test the poll limit is reported."""
        error = NoReadyHumanTaskError("1001", 6)
        assert error.attempts == 6
        assert error.retryable is True
        assert "1001" in str(error)

    def test_transition_message(self) -> None:
        """Test the transition message names both states and the reason."""
        error = InvalidStateTransitionError(
            4, ProjectStatus.DRAFT, ProjectStatus.EXECUTING, reason="no case"
        )
        assert str(error) == (
            "Invalid state transition for project 4: DRAFT -> EXECUTING: no case"
        )

    def test_commitment_not_found_for_task(self) -> None:
        """Test the task id appears when the commitment belongs elsewhere."""
        error = CommitmentNotFoundError(9, task_id="cov-1")
        assert str(error) == "Commitment 9 not found for task cov-1"

    def test_partial_batch_failure(self) -> None:
        """Test counts are kept on partial failures."""
        error = PartialBatchFailureError("mark", 2, {"cov-3": "timeout"})
        assert error.succeeded == 2
        assert error.failed == {"cov-3": "timeout"}
        assert str(error) == "mark: 2 succeeded, 1 failed"
