"""Local task routes."""

from fastapi import APIRouter, Depends

from ongflow.api.dependencies import get_local_task_service
from ongflow.api.models.common import ErrorResponse, SuccessResponse
from ongflow.api.models.task import (
    LocalTaskDoneResponse,
    LocalTaskResponse,
    TakeTaskRequest,
)
from ongflow.application.services import LocalTaskService

router = APIRouter(prefix="/v1/tasks", tags=["tasks"])


@router.put(
    "/{task_id}/take",
    response_model=SuccessResponse[LocalTaskResponse],
    responses={
        400: {"model": ErrorResponse, "description": "Coverage request task"},
        404: {"model": ErrorResponse, "description": "Task not found"},
        409: {"model": ErrorResponse, "description": "Task already taken"},
    },
)
async def take_task(
    task_id: int,
    request: TakeTaskRequest,
    service: LocalTaskService = Depends(get_local_task_service),
) -> SuccessResponse[LocalTaskResponse]:
    task = await service.take_local_task(task_id, request.organization_id)
    return SuccessResponse(data=LocalTaskResponse.from_domain(task))


@router.put(
    "/{task_id}/done",
    response_model=SuccessResponse[LocalTaskDoneResponse],
    responses={
        400: {"model": ErrorResponse, "description": "Task not in progress"},
        404: {"model": ErrorResponse, "description": "Task not found"},
    },
)
async def mark_task_done(
    task_id: int,
    service: LocalTaskService = Depends(get_local_task_service),
) -> SuccessResponse[LocalTaskDoneResponse]:
    """Mark a task done; the project completes when every task is done."""
    result = await service.mark_local_task_done(task_id)
    return SuccessResponse(data=LocalTaskDoneResponse.from_result(result))
