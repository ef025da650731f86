"""Row to domain model mapping shared by the PostgreSQL repositories."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from ongflow.domain.models.commitment import Commitment, CommitmentStatus
from ongflow.domain.models.project import Project, ProjectStatus
from ongflow.domain.models.task import LocalTask, TaskStatus


def row_to_project(row: Mapping[str, Any]) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        created_by=row["created_by"],
        status=ProjectStatus(row["status"]),
        external_case_id=row["external_case_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def row_to_task(row: Mapping[str, Any]) -> LocalTask:
    return LocalTask(
        id=row["id"],
        project_id=row["project_id"],
        title=row["title"],
        description=row["description"],
        status=TaskStatus(row["status"]),
        assignee=row["assignee"],
        due_date=row["due_date"],
        estimated_hours=Decimal(row["estimated_hours"]),
        is_coverage_request=row["is_coverage_request"],
        created_by=row["created_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def row_to_commitment(row: Mapping[str, Any]) -> Commitment:
    return Commitment(
        id=row["id"],
        task_id=row["task_id"],
        organization_id=row["organization_id"],
        description=row["description"],
        status=CommitmentStatus(row["status"]),
        created_at=row["created_at"],
        assigned_at=row["assigned_at"],
    )
