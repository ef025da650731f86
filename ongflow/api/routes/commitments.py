"""Commitment routes: proposals against coverage tasks and assignment."""

from fastapi import APIRouter, Depends

from ongflow.api.dependencies import get_commitment_service
from ongflow.api.models.commitment import (
    AssignmentResponse,
    CommitmentDoneResponse,
    CommitmentResponse,
    ProposeCommitmentRequest,
)
from ongflow.api.models.common import ErrorResponse, SuccessResponse
from ongflow.application.services import CommitmentService

router = APIRouter(prefix="/v1", tags=["commitments"])


@router.post(
    "/coverage-tasks/{task_id}/commitments",
    response_model=SuccessResponse[CommitmentResponse],
    status_code=201,
    responses={400: {"model": ErrorResponse, "description": "Invalid input"}},
)
async def propose_commitment(
    task_id: str,
    request: ProposeCommitmentRequest,
    service: CommitmentService = Depends(get_commitment_service),
) -> SuccessResponse[CommitmentResponse]:
    commitment = await service.propose(
        task_id, request.organization_id, request.description
    )
    return SuccessResponse(data=CommitmentResponse.from_domain(commitment))


@router.get(
    "/coverage-tasks/{task_id}/commitments",
    response_model=SuccessResponse[list[CommitmentResponse]],
)
async def list_commitments(
    task_id: str,
    service: CommitmentService = Depends(get_commitment_service),
) -> SuccessResponse[list[CommitmentResponse]]:
    commitments = await service.list_commitments(task_id)
    return SuccessResponse(
        data=[CommitmentResponse.from_domain(c) for c in commitments]
    )


@router.post(
    "/projects/{project_id}/coverage-tasks/{task_id}/commitments/"
    "{commitment_id}/assign",
    response_model=SuccessResponse[AssignmentResponse],
    responses={
        404: {"model": ErrorResponse, "description": "Project, task or commitment"},
        409: {"model": ErrorResponse, "description": "Task already assigned"},
        503: {"model": ErrorResponse, "description": "Workflow engine down"},
    },
)
async def assign_commitment(
    project_id: int,
    task_id: str,
    commitment_id: int,
    service: CommitmentService = Depends(get_commitment_service),
) -> SuccessResponse[AssignmentResponse]:
    """Assign a commitment to its coverage task.

    When it was the project's last unassigned coverage task the project
    advances from DRAFT to PLANNED.
    """
    result = await service.assign(project_id, task_id, commitment_id)
    return SuccessResponse(data=AssignmentResponse.from_result(result))


@router.post(
    "/commitments/{commitment_id}/done",
    response_model=SuccessResponse[CommitmentDoneResponse],
    responses={
        400: {"model": ErrorResponse, "description": "Commitment not assigned"},
        404: {"model": ErrorResponse, "description": "Commitment not found"},
        503: {"model": ErrorResponse, "description": "Workflow engine down"},
    },
)
async def mark_commitment_done(
    commitment_id: int,
    service: CommitmentService = Depends(get_commitment_service),
) -> SuccessResponse[CommitmentDoneResponse]:
    result = await service.mark_done(commitment_id)
    return SuccessResponse(data=CommitmentDoneResponse.from_result(result))
