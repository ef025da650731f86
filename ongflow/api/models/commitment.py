"""Commitment API models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from ongflow.api.models.common import ErrorBody
from ongflow.api.models.project import ProjectResponse
from ongflow.api.models.task import CompletionResponse
from ongflow.application.dtos.results import AssignmentResult, CommitmentDoneResult
from ongflow.domain.models.commitment import Commitment


class ProposeCommitmentRequest(BaseModel):
    organization_id: int = Field(..., gt=0, description="Proposing organization")
    description: str = Field(..., min_length=1, max_length=2000)


class CommitmentResponse(BaseModel):
    id: int
    task_id: str
    organization_id: int
    description: str
    status: str
    created_at: datetime
    assigned_at: datetime | None

    @classmethod
    def from_domain(cls, commitment: Commitment) -> CommitmentResponse:
        return cls(
            id=commitment.id,
            task_id=commitment.task_id,
            organization_id=commitment.organization_id,
            description=commitment.description,
            status=commitment.status.value,
            created_at=commitment.created_at,
            assigned_at=commitment.assigned_at,
        )


class AssignmentResponse(BaseModel):
    commitment: CommitmentResponse
    project: ProjectResponse
    remaining_unassigned: int
    project_advanced: bool

    @classmethod
    def from_result(cls, result: AssignmentResult) -> AssignmentResponse:
        return cls(
            commitment=CommitmentResponse.from_domain(result.commitment),
            project=ProjectResponse.from_domain(result.project),
            remaining_unassigned=result.remaining_unassigned,
            project_advanced=result.project_advanced,
        )


class CommitmentDoneResponse(BaseModel):
    commitment: CommitmentResponse
    project_id: int
    completion: CompletionResponse | None = None
    completion_error: ErrorBody | None = None

    @classmethod
    def from_result(cls, result: CommitmentDoneResult) -> CommitmentDoneResponse:
        return cls(
            commitment=CommitmentResponse.from_domain(result.commitment),
            project_id=result.project_id,
            completion=(
                CompletionResponse.from_result(result.completion)
                if result.completion is not None
                else None
            ),
            completion_error=ErrorBody.from_info(result.completion_error),
        )
