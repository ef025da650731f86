"""Project routes: creation, queries and lifecycle transitions."""

from fastapi import APIRouter, Depends, Query

from ongflow.api.dependencies import (
    get_batch_service,
    get_lifecycle_service,
    get_local_task_service,
    get_project_service,
)
from ongflow.api.models.common import ErrorResponse, SuccessResponse
from ongflow.api.models.project import (
    CoverageStatusResponse,
    CoverageSubmissionResponse,
    CreateProjectRequest,
    CreateProjectResponse,
    LifecycleResponse,
    ProjectResponse,
    ResubmitCoverageRequest,
)
from ongflow.api.models.task import LocalTaskResponse
from ongflow.application.services import (
    CoverageBatchService,
    LocalTaskService,
    ProjectLifecycleService,
    ProjectService,
)
from ongflow.domain.models.project import ProjectStatus

router = APIRouter(prefix="/v1/projects", tags=["projects"])

_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    404: {"model": ErrorResponse, "description": "Project not found"},
    409: {"model": ErrorResponse, "description": "Invalid state transition"},
}


@router.post(
    "",
    response_model=SuccessResponse[CreateProjectResponse],
    status_code=201,
    responses=_ERRORS,
)
async def create_project(
    request: CreateProjectRequest,
    service: ProjectService = Depends(get_project_service),
) -> SuccessResponse[CreateProjectResponse]:
    """Create a project with its local tasks and coverage requests.

    Coverage requests are delivered to the workflow engine after the
    project is stored; a delivery failure is reported in
    ``coverage_requests.error`` and the project stays in DRAFT.
    """
    result = await service.create_project(
        request.to_new_project(), [t.to_draft() for t in request.tasks]
    )
    return SuccessResponse(data=CreateProjectResponse.from_result(result))


@router.get("", response_model=SuccessResponse[list[ProjectResponse]])
async def list_projects(
    status: list[ProjectStatus] | None = Query(default=None),
    created_by: int | None = Query(default=None, gt=0),
    service: ProjectService = Depends(get_project_service),
) -> SuccessResponse[list[ProjectResponse]]:
    projects = await service.list_projects(statuses=status, created_by=created_by)
    return SuccessResponse(data=[ProjectResponse.from_domain(p) for p in projects])


@router.get(
    "/{project_id}",
    response_model=SuccessResponse[ProjectResponse],
    responses=_ERRORS,
)
async def get_project(
    project_id: int,
    service: ProjectService = Depends(get_project_service),
) -> SuccessResponse[ProjectResponse]:
    project = await service.get_project(project_id)
    return SuccessResponse(data=ProjectResponse.from_domain(project))


@router.post(
    "/{project_id}/execute",
    response_model=SuccessResponse[LifecycleResponse],
    responses=_ERRORS,
)
async def execute_project(
    project_id: int,
    service: ProjectLifecycleService = Depends(get_lifecycle_service),
) -> SuccessResponse[LifecycleResponse]:
    """Move a PLANNED project to EXECUTING.

    Coverage tasks that could not be marked in progress are listed in
    ``failures``; the transition itself is not rolled back.
    """
    result = await service.execute(project_id)
    return SuccessResponse(data=LifecycleResponse.from_result(result))


@router.post(
    "/{project_id}/complete",
    response_model=SuccessResponse[LifecycleResponse],
    responses=_ERRORS,
)
async def complete_project(
    project_id: int,
    service: ProjectLifecycleService = Depends(get_lifecycle_service),
) -> SuccessResponse[LifecycleResponse]:
    result = await service.complete(project_id)
    return SuccessResponse(data=LifecycleResponse.from_result(result))


@router.post(
    "/{project_id}/coverage-requests",
    response_model=SuccessResponse[CoverageSubmissionResponse],
    responses=_ERRORS,
)
async def resubmit_coverage_requests(
    project_id: int,
    request: ResubmitCoverageRequest,
    service: CoverageBatchService = Depends(get_batch_service),
) -> SuccessResponse[CoverageSubmissionResponse]:
    """Deliver coverage requests for a project that has no case yet."""
    result = await service.resubmit_coverage_requests(
        project_id, [t.to_draft(force_coverage=True) for t in request.tasks]
    )
    return SuccessResponse(data=CoverageSubmissionResponse.from_result(result))


@router.get(
    "/{project_id}/coverage-status",
    response_model=SuccessResponse[CoverageStatusResponse],
    responses=_ERRORS,
)
async def coverage_status(
    project_id: int,
    service: ProjectService = Depends(get_project_service),
) -> SuccessResponse[CoverageStatusResponse]:
    status = await service.coverage_status(project_id)
    return SuccessResponse(data=CoverageStatusResponse.from_result(status))


@router.get(
    "/{project_id}/tasks",
    response_model=SuccessResponse[list[LocalTaskResponse]],
    responses=_ERRORS,
)
async def list_local_tasks(
    project_id: int,
    service: LocalTaskService = Depends(get_local_task_service),
) -> SuccessResponse[list[LocalTaskResponse]]:
    tasks = await service.list_local_tasks(project_id)
    return SuccessResponse(data=[LocalTaskResponse.from_domain(t) for t in tasks])
