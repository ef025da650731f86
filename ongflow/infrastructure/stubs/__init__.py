"""In-memory implementations of the ports, for development and tests."""

from ongflow.infrastructure.stubs.commitment_repository_stub import (
    CommitmentRepositoryStub,
)
from ongflow.infrastructure.stubs.project_repository_stub import ProjectRepositoryStub
from ongflow.infrastructure.stubs.task_repository_stub import TaskRepositoryStub
from ongflow.infrastructure.stubs.workflow_gateway_stub import WorkflowGatewayStub

__all__: list[str] = [
    "CommitmentRepositoryStub",
    "ProjectRepositoryStub",
    "TaskRepositoryStub",
    "WorkflowGatewayStub",
]
