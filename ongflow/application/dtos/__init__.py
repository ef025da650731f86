"""Application-layer result DTOs.

Services return these; the API layer maps them to pydantic response
models so that the application layer never depends on the API layer.
"""

from ongflow.application.dtos.results import (
    AssignmentResult,
    CommitmentDoneResult,
    CompletionResult,
    CoverageStatus,
    CoverageSubmissionResult,
    ErrorInfo,
    ExternalFailure,
    LifecycleResult,
    LocalTaskDoneResult,
    ProjectCreationResult,
    TaskTotals,
)

__all__: list[str] = [
    "AssignmentResult",
    "CommitmentDoneResult",
    "CompletionResult",
    "CoverageStatus",
    "CoverageSubmissionResult",
    "ErrorInfo",
    "ExternalFailure",
    "LifecycleResult",
    "LocalTaskDoneResult",
    "ProjectCreationResult",
    "TaskTotals",
]
