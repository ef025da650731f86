"""Input validation errors."""

from __future__ import annotations

from ongflow.domain.exceptions import OngFlowError


class ValidationError(OngFlowError):
    """Raised when caller input is missing or invalid.

    Attributes:
        field: Name of the offending field, when known.
    """

    kind = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)
