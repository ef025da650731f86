"""Project API models."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from ongflow.api.models.common import ErrorBody
from ongflow.api.models.task import LocalTaskResponse, TaskInput
from ongflow.application.dtos.results import (
    CoverageStatus,
    CoverageSubmissionResult,
    LifecycleResult,
    ProjectCreationResult,
)
from ongflow.domain.models.project import NewProject, Project
from ongflow.domain.models.workflow import HumanTask


class CreateProjectRequest(BaseModel):
    """Project with its tasks; coverage requests are split off by flag."""

    name: str = Field(..., min_length=3, max_length=100)
    description: str = Field(default="", max_length=2000)
    start_date: date
    end_date: date
    created_by: int = Field(..., gt=0, description="Creating organization id")
    tasks: list[TaskInput] = Field(default_factory=list)

    def to_new_project(self) -> NewProject:
        return NewProject(
            name=self.name,
            description=self.description,
            start_date=self.start_date,
            end_date=self.end_date,
            created_by=self.created_by,
        )


class ResubmitCoverageRequest(BaseModel):
    tasks: list[TaskInput] = Field(..., min_length=1)


class ProjectResponse(BaseModel):
    id: int
    name: str
    description: str
    start_date: date
    end_date: date
    created_by: int
    status: str
    external_case_id: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, project: Project) -> ProjectResponse:
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            start_date=project.start_date,
            end_date=project.end_date,
            created_by=project.created_by,
            status=project.status.value,
            external_case_id=project.external_case_id,
            created_at=project.created_at,
            updated_at=project.updated_at,
        )


class CoverageSubmissionResponse(BaseModel):
    """Outcome of delivering coverage requests to the workflow engine."""

    total_requests: int
    successful: int
    failed: int
    case_id: str | None
    request_titles: list[str]
    error: ErrorBody | None = None

    @classmethod
    def from_result(
        cls, result: CoverageSubmissionResult
    ) -> CoverageSubmissionResponse:
        return cls(
            total_requests=result.total_requests,
            successful=result.succeeded_count,
            failed=result.failed_count,
            case_id=result.case_id,
            request_titles=list(result.request_titles),
            error=ErrorBody.from_info(result.error),
        )


class CreateProjectResponse(BaseModel):
    project: ProjectResponse
    local_tasks: list[LocalTaskResponse]
    coverage_requests: CoverageSubmissionResponse | None = None
    total_tasks: int

    @classmethod
    def from_result(cls, result: ProjectCreationResult) -> CreateProjectResponse:
        return cls(
            project=ProjectResponse.from_domain(result.project),
            local_tasks=[LocalTaskResponse.from_domain(t) for t in result.local_tasks],
            coverage_requests=(
                CoverageSubmissionResponse.from_result(result.coverage)
                if result.coverage is not None
                else None
            ),
            total_tasks=result.total_tasks,
        )


class HumanTaskResponse(BaseModel):
    id: str
    name: str
    state: str
    case_id: str

    @classmethod
    def from_domain(cls, task: HumanTask) -> HumanTaskResponse:
        return cls(
            id=task.id,
            name=task.name,
            state=task.state.value,
            case_id=task.case_id,
        )


class ExternalFailureResponse(BaseModel):
    task_id: str
    message: str


class LifecycleResponse(BaseModel):
    """Project after a lifecycle operation, with engine-side outcomes."""

    project: ProjectResponse
    changed: bool
    completed_work_item: HumanTaskResponse | None = None
    marked_in_progress: list[str] = Field(default_factory=list)
    failures: list[ExternalFailureResponse] = Field(default_factory=list)
    partial_failure: ErrorBody | None = None
    external_error: ErrorBody | None = None

    @classmethod
    def from_result(cls, result: LifecycleResult) -> LifecycleResponse:
        partial = result.partial_failure
        return cls(
            project=ProjectResponse.from_domain(result.project),
            changed=result.changed,
            completed_work_item=(
                HumanTaskResponse.from_domain(result.completed_work_item)
                if result.completed_work_item is not None
                else None
            ),
            marked_in_progress=list(result.marked_in_progress),
            failures=[
                ExternalFailureResponse(task_id=f.task_id, message=f.message)
                for f in result.failures
            ],
            partial_failure=(
                ErrorBody(kind=partial.kind, message=str(partial))
                if partial is not None
                else None
            ),
            external_error=ErrorBody.from_info(result.external_error),
        )


class CoverageStatusResponse(BaseModel):
    project_id: int
    case_id: str | None
    ready_tasks: list[HumanTaskResponse]
    completed_count: int
    total_count: int

    @classmethod
    def from_result(cls, status: CoverageStatus) -> CoverageStatusResponse:
        return cls(
            project_id=status.project_id,
            case_id=status.case_id,
            ready_tasks=[HumanTaskResponse.from_domain(t) for t in status.ready_tasks],
            completed_count=status.completed_count,
            total_count=status.total_count,
        )
