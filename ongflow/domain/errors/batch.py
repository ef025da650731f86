"""Errors for batch operations where only some items succeeded."""

from __future__ import annotations

from ongflow.domain.exceptions import OngFlowError


class PartialBatchFailureError(OngFlowError):
    """Raised when some, but not all, items of a batch failed.

    Attributes:
        succeeded: Number of items that succeeded.
        failed: Mapping of item id to error message for the failures.
    """

    kind = "PARTIAL_BATCH_FAILURE"

    def __init__(self, operation: str, succeeded: int, failed: dict[str, str]) -> None:
        self.operation = operation
        self.succeeded = succeeded
        self.failed = failed
        super().__init__(
            f"{operation}: {succeeded} succeeded, {len(failed)} failed"
        )
