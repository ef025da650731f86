"""KPI routes."""

from fastapi import APIRouter, Depends

from ongflow.api.dependencies import get_project_service
from ongflow.api.models.common import SuccessResponse
from ongflow.api.models.kpi import TaskTotalsResponse
from ongflow.application.services import ProjectService

router = APIRouter(prefix="/v1/kpis", tags=["kpis"])


@router.get("/tasks", response_model=SuccessResponse[TaskTotalsResponse])
async def task_totals(
    service: ProjectService = Depends(get_project_service),
) -> SuccessResponse[TaskTotalsResponse]:
    """Count tasks in the local store plus coverage tasks on the engine.

    The count still succeeds when the engine is down, with
    ``external_available`` false and the engine contributing zero.
    """
    totals = await service.task_totals()
    return SuccessResponse(data=TaskTotalsResponse.from_result(totals))
