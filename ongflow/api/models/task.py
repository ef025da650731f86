"""Local task API models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from ongflow.api.models.common import ErrorBody
from ongflow.application.dtos.results import CompletionResult, LocalTaskDoneResult
from ongflow.domain.models.task import LocalTask, TaskDraft, UrgencyLevel


class TaskInput(BaseModel):
    """A task submitted with a project."""

    title: str = Field(..., min_length=1, max_length=150)
    description: str = Field(default="")
    due_date: date | None = Field(default=None)
    estimated_hours: Decimal = Field(default=Decimal("0"), ge=0)
    is_coverage_request: bool = Field(
        default=False,
        description="True delegates the task to the workflow engine",
    )
    required_skills: list[str] = Field(default_factory=list)
    urgency_level: UrgencyLevel | None = Field(default=None)

    def to_draft(self, force_coverage: bool = False) -> TaskDraft:
        return TaskDraft(
            title=self.title,
            description=self.description,
            due_date=self.due_date,
            estimated_hours=self.estimated_hours,
            is_coverage_request=force_coverage or self.is_coverage_request,
            required_skills=tuple(self.required_skills),
            urgency_level=self.urgency_level,
        )


class LocalTaskResponse(BaseModel):
    id: int
    project_id: int
    title: str
    description: str
    status: str
    assignee: int | None
    due_date: date | None
    estimated_hours: Decimal
    created_by: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, task: LocalTask) -> LocalTaskResponse:
        return cls(
            id=task.id,
            project_id=task.project_id,
            title=task.title,
            description=task.description,
            status=task.status.value,
            assignee=task.assignee,
            due_date=task.due_date,
            estimated_hours=task.estimated_hours,
            created_by=task.created_by,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class TakeTaskRequest(BaseModel):
    organization_id: int = Field(..., gt=0, description="Organization taking the task")


class CompletionResponse(BaseModel):
    """Completion state of a project after a task was marked done."""

    project_id: int
    project_status: str
    local_total: int
    local_done: int
    external_total: int
    external_done: int
    all_done: bool
    project_completed: bool

    @classmethod
    def from_result(cls, result: CompletionResult) -> CompletionResponse:
        return cls(
            project_id=result.project.id,
            project_status=result.project.status.value,
            local_total=result.local_total,
            local_done=result.local_done,
            external_total=result.external_total,
            external_done=result.external_done,
            all_done=result.all_done,
            project_completed=result.project_completed,
        )


class LocalTaskDoneResponse(BaseModel):
    task: LocalTaskResponse
    completion: CompletionResponse | None = None
    completion_error: ErrorBody | None = None

    @classmethod
    def from_result(cls, result: LocalTaskDoneResult) -> LocalTaskDoneResponse:
        return cls(
            task=LocalTaskResponse.from_domain(result.task),
            completion=(
                CompletionResponse.from_result(result.completion)
                if result.completion is not None
                else None
            ),
            completion_error=ErrorBody.from_info(result.completion_error),
        )
