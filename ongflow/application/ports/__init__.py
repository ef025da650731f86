"""Ports (abstract interfaces) implemented by infrastructure adapters."""

from ongflow.application.ports.commitment_repository import (
    CommitmentRepositoryProtocol,
)
from ongflow.application.ports.project_lock import ProjectLockProtocol
from ongflow.application.ports.project_repository import ProjectRepositoryProtocol
from ongflow.application.ports.task_repository import TaskRepositoryProtocol
from ongflow.application.ports.workflow_gateway import WorkflowGatewayProtocol

__all__: list[str] = [
    "CommitmentRepositoryProtocol",
    "ProjectLockProtocol",
    "ProjectRepositoryProtocol",
    "TaskRepositoryProtocol",
    "WorkflowGatewayProtocol",
]
