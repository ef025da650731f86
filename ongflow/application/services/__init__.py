"""Application services coordinating the local store and the workflow engine."""

from ongflow.application.services.commitment_service import CommitmentService
from ongflow.application.services.completion_aggregator_service import (
    CompletionAggregatorService,
)
from ongflow.application.services.coverage_batch_service import CoverageBatchService
from ongflow.application.services.local_task_service import LocalTaskService
from ongflow.application.services.project_lifecycle_service import (
    ProjectLifecycleService,
)
from ongflow.application.services.project_service import ProjectService
from ongflow.application.services.workflow_session_provider import (
    WorkflowSessionProvider,
)

__all__: list[str] = [
    "CommitmentService",
    "CompletionAggregatorService",
    "CoverageBatchService",
    "LocalTaskService",
    "ProjectLifecycleService",
    "ProjectService",
    "WorkflowSessionProvider",
]
