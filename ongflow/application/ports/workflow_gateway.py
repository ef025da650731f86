"""Workflow engine gateway port.

Pure I/O boundary to the external engine that tracks coverage requests as
cases and human tasks. No business policy lives behind this port.

Every operation takes the WorkflowSession explicitly; adapters hold no
per-user state, so one adapter instance is safe to share across requests.

Failure contract:
- AuthenticationFailedError: credentials rejected (not retryable)
- ExternalSystemUnavailableError: network failure, timeout or 5xx (retryable)
"""

from __future__ import annotations

from typing import Protocol

from ongflow.domain.models.task import CoverageTask, TaskStatus
from ongflow.domain.models.workflow import (
    CaseVariable,
    HumanTask,
    WorkflowCredentials,
    WorkflowSession,
)


class WorkflowGatewayProtocol(Protocol):
    """Protocol for the operations the core calls on the workflow engine."""

    async def authenticate(self, credentials: WorkflowCredentials) -> WorkflowSession:
        """Open a session.

        Raises:
            AuthenticationFailedError: If the engine rejects the credentials.
        """
        ...

    async def create_case(
        self,
        session: WorkflowSession,
        variables: dict[str, CaseVariable] | None = None,
    ) -> str:
        """Start one case of the coverage process and return its id."""
        ...

    async def list_human_tasks(
        self, session: WorkflowSession, case_id: str
    ) -> list[HumanTask]:
        """List the case's human tasks in engine order."""
        ...

    async def read_case_variables(
        self, session: WorkflowSession, case_id: str
    ) -> dict[str, CaseVariable]:
        """Read every variable of a case, decoded by declared type."""
        ...

    async def write_case_variable(
        self,
        session: WorkflowSession,
        case_id: str,
        name: str,
        variable: CaseVariable,
    ) -> None:
        """Write one case variable."""
        ...

    async def assign_task(
        self, session: WorkflowSession, task_id: str, user_id: str
    ) -> None:
        """Assign a human task to an engine user."""
        ...

    async def complete_task(
        self,
        session: WorkflowSession,
        task_id: str,
        variables: dict[str, CaseVariable] | None = None,
    ) -> None:
        """Complete a human task, delivering variables to the case."""
        ...

    async def list_coverage_tasks(
        self, session: WorkflowSession, project_id: int
    ) -> list[CoverageTask]:
        """List the externally tracked coverage tasks of a project."""
        ...

    async def get_coverage_task(
        self, session: WorkflowSession, task_id: str
    ) -> CoverageTask | None:
        """Retrieve one coverage task by external id, or None."""
        ...

    async def update_coverage_task_status(
        self, session: WorkflowSession, task_id: str, status: TaskStatus
    ) -> None:
        """Set the engine-side status of one coverage task."""
        ...

    async def assign_coverage_task(
        self, session: WorkflowSession, task_id: str, organization_id: int
    ) -> None:
        """Record on the engine which organization covers a coverage task."""
        ...
