"""Domain errors for OngFlow.

All exceptions inherit from OngFlowError and carry a ``kind`` used by the
HTTP layer to build machine-readable failure responses.
"""

from ongflow.domain.errors.batch import PartialBatchFailureError
from ongflow.domain.errors.channel import WrongChannelError
from ongflow.domain.errors.concurrent_modification import (
    CommitmentAlreadyAssignedError,
    ConcurrentModificationError,
    TaskAlreadyTakenError,
)
from ongflow.domain.errors.external import (
    AuthenticationFailedError,
    ExternalSystemUnavailableError,
    NoReadyHumanTaskError,
)
from ongflow.domain.errors.not_found import (
    CommitmentNotFoundError,
    NotFoundError,
    ProjectNotFoundError,
    TaskNotFoundError,
)
from ongflow.domain.errors.state_transition import InvalidStateTransitionError
from ongflow.domain.errors.validation import ValidationError

__all__: list[str] = [
    "AuthenticationFailedError",
    "CommitmentAlreadyAssignedError",
    "CommitmentNotFoundError",
    "ConcurrentModificationError",
    "ExternalSystemUnavailableError",
    "InvalidStateTransitionError",
    "NoReadyHumanTaskError",
    "NotFoundError",
    "PartialBatchFailureError",
    "ProjectNotFoundError",
    "TaskAlreadyTakenError",
    "TaskNotFoundError",
    "ValidationError",
    "WrongChannelError",
]
