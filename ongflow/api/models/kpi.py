"""KPI API models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ongflow.api.models.common import ErrorBody
from ongflow.application.dtos.results import TaskTotals


class TaskTotalsResponse(BaseModel):
    """Task counts across the local store and the workflow engine."""

    total: int
    total_todo: int
    local_total: int
    local_todo: int
    external_total: int
    external_todo: int
    external_available: bool = Field(
        ..., description="False when the workflow engine could not be reached"
    )
    errors: list[ErrorBody] = Field(default_factory=list)

    @classmethod
    def from_result(cls, totals: TaskTotals) -> TaskTotalsResponse:
        return cls(
            total=totals.total,
            total_todo=totals.total_todo,
            local_total=totals.local_total,
            local_todo=totals.local_todo,
            external_total=totals.external_total,
            external_todo=totals.external_todo,
            external_available=totals.external_available,
            errors=[ErrorBody(kind=e.kind, message=e.message) for e in totals.errors],
        )
