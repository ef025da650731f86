"""Composition root.

Builds every service from configuration:

- DATABASE_URL set: PostgreSQL repositories and advisory locks
- DATABASE_URL unset: in-memory repositories and an in-process lock
- WORKFLOW_ENGINE_STUB: in-memory workflow engine instead of Bonita
"""

from __future__ import annotations

from dataclasses import dataclass

from structlog import get_logger

from ongflow.application.ports.commitment_repository import (
    CommitmentRepositoryProtocol,
)
from ongflow.application.ports.project_lock import ProjectLockProtocol
from ongflow.application.ports.project_repository import ProjectRepositoryProtocol
from ongflow.application.ports.task_repository import TaskRepositoryProtocol
from ongflow.application.ports.workflow_gateway import WorkflowGatewayProtocol
from ongflow.application.services import (
    CommitmentService,
    CompletionAggregatorService,
    CoverageBatchService,
    LocalTaskService,
    ProjectLifecycleService,
    ProjectService,
    WorkflowSessionProvider,
)
from ongflow.bootstrap.database import close_database_engine, get_session_factory
from ongflow.config.app_config import AppConfig
from ongflow.config.workflow_config import WorkflowEngineConfig
from ongflow.infrastructure.adapters.locks import (
    InProcessProjectLock,
    PostgresAdvisoryProjectLock,
)
from ongflow.infrastructure.adapters.persistence import (
    PostgresCommitmentRepository,
    PostgresProjectRepository,
    PostgresTaskRepository,
)
from ongflow.infrastructure.adapters.workflow import BonitaWorkflowGateway
from ongflow.infrastructure.stubs import (
    CommitmentRepositoryStub,
    ProjectRepositoryStub,
    TaskRepositoryStub,
    WorkflowGatewayStub,
)

logger = get_logger(__name__)


@dataclass
class Container:
    """Every wired service plus the adapters that need closing."""

    app_config: AppConfig
    workflow_config: WorkflowEngineConfig
    gateway: WorkflowGatewayProtocol
    project_repo: ProjectRepositoryProtocol
    task_repo: TaskRepositoryProtocol
    commitment_repo: CommitmentRepositoryProtocol
    project_lock: ProjectLockProtocol
    sessions: WorkflowSessionProvider
    lifecycle: ProjectLifecycleService
    aggregator: CompletionAggregatorService
    batch: CoverageBatchService
    projects: ProjectService
    local_tasks: LocalTaskService
    commitments: CommitmentService

    async def aclose(self) -> None:
        if isinstance(self.gateway, BonitaWorkflowGateway):
            await self.gateway.aclose()
        if self.app_config.database_url:
            await close_database_engine()


def build_container(
    app_config: AppConfig,
    workflow_config: WorkflowEngineConfig,
    gateway: WorkflowGatewayProtocol | None = None,
) -> Container:
    """Wire repositories, gateway and services.

    Args:
        app_config: Application settings.
        workflow_config: Workflow engine settings.
        gateway: Optional gateway override (tests pass a stub).
    """
    project_repo: ProjectRepositoryProtocol
    task_repo: TaskRepositoryProtocol
    commitment_repo: CommitmentRepositoryProtocol
    project_lock: ProjectLockProtocol

    if app_config.database_url:
        session_factory = get_session_factory(app_config.database_url)
        project_repo = PostgresProjectRepository(session_factory)
        task_repo = PostgresTaskRepository(session_factory)
        commitment_repo = PostgresCommitmentRepository(session_factory)
        project_lock = PostgresAdvisoryProjectLock(session_factory)
        store = "postgres"
    else:
        task_stub = TaskRepositoryStub()
        task_repo = task_stub
        project_repo = ProjectRepositoryStub(task_stub)
        commitment_repo = CommitmentRepositoryStub()
        project_lock = InProcessProjectLock()
        store = "memory"

    if gateway is None:
        if app_config.workflow_stub:
            gateway = WorkflowGatewayStub()
        else:
            gateway = BonitaWorkflowGateway(workflow_config)

    sessions = WorkflowSessionProvider(gateway, workflow_config.credentials)
    lifecycle = ProjectLifecycleService(project_repo, gateway, sessions)
    aggregator = CompletionAggregatorService(
        project_repo, task_repo, gateway, sessions, project_lock, lifecycle
    )
    batch = CoverageBatchService(
        project_repo,
        gateway,
        sessions,
        workflow_config,
        default_due_days=app_config.coverage_default_due_days,
    )

    logger.info(
        "container_built",
        store=store,
        workflow_engine=type(gateway).__name__,
        environment=app_config.environment,
    )
    return Container(
        app_config=app_config,
        workflow_config=workflow_config,
        gateway=gateway,
        project_repo=project_repo,
        task_repo=task_repo,
        commitment_repo=commitment_repo,
        project_lock=project_lock,
        sessions=sessions,
        lifecycle=lifecycle,
        aggregator=aggregator,
        batch=batch,
        projects=ProjectService(project_repo, task_repo, gateway, sessions, batch),
        local_tasks=LocalTaskService(task_repo, project_repo, aggregator),
        commitments=CommitmentService(
            commitment_repo,
            project_repo,
            gateway,
            sessions,
            project_lock,
            lifecycle,
            aggregator,
        ),
    )
