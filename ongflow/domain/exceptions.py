"""Base exception classes for the OngFlow domain layer."""


class OngFlowError(Exception):
    """Base exception for all domain errors.

    All domain-specific exceptions MUST inherit from this class.
    Each subclass sets ``kind``, the machine-readable error category
    surfaced to callers alongside the human-readable message.
    """

    kind: str = "INTERNAL_ERROR"

    def __init__(self, message: str = "") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
        self.message = message
