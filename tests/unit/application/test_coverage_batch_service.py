"""Unit tests for the batch case builder."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest

from ongflow.application.services.coverage_batch_service import (
    BATCH_REQUEST_TYPE,
    CoverageBatchService,
    build_batch_variables,
)
from ongflow.application.services.workflow_session_provider import (
    WorkflowSessionProvider,
)
from ongflow.config.workflow_config import WorkflowEngineConfig
from ongflow.domain.errors import (
    InvalidStateTransitionError,
    ProjectNotFoundError,
    ValidationError,
)
from ongflow.domain.models.project import NewProject, Project
from ongflow.domain.models.task import CoverageRequest, TaskDraft
from ongflow.domain.models.workflow import BoolVar, JsonVar, NumberVar, StringVar
from ongflow.infrastructure.stubs import ProjectRepositoryStub, WorkflowGatewayStub

DRAFTS = [
    TaskDraft(title="Transport", is_coverage_request=True),
    TaskDraft(title="Food", is_coverage_request=True),
]


@pytest.fixture
def config() -> WorkflowEngineConfig:
    return WorkflowEngineConfig(
        ready_task_max_attempts=3,
        ready_task_base_delay=0.25,
        ready_task_max_delay=2.0,
    )


@pytest.fixture
def projects() -> ProjectRepositoryStub:
    return ProjectRepositoryStub()


@pytest.fixture
def sleep() -> AsyncMock:
    """Record backoff delays instead of sleeping."""
    return AsyncMock()


@pytest.fixture
def service(
    projects: ProjectRepositoryStub,
    gateway: WorkflowGatewayStub,
    config: WorkflowEngineConfig,
    sleep: AsyncMock,
) -> CoverageBatchService:
    sessions = WorkflowSessionProvider(gateway, config.credentials)
    return CoverageBatchService(projects, gateway, sessions, config, sleep=sleep)


@pytest.fixture
async def project(projects: ProjectRepositoryStub, new_project: NewProject) -> Project:
    stored, _ = await projects.create_with_tasks(new_project, [])
    return stored


class TestBuildBatchVariables:
    """Tests for the delivered variable set."""

    def test_variables(self, new_project: NewProject) -> None:
        """Test every batch variable is typed explicitly."""
        project = Project(
            id=5,
            name=new_project.name,
            start_date=new_project.start_date,
            end_date=new_project.end_date,
            created_by=3,
        )
        requests = [
            CoverageRequest.from_draft(
                d, project_id=5, created_by=3, today=date(2026, 1, 1)
            )
            for d in DRAFTS
        ]
        submitted = datetime(2026, 1, 1, 12, tzinfo=timezone.utc)

        variables = build_batch_variables(project, requests, submitted_at=submitted)

        assert variables["projectId"] == NumberVar(5)
        assert variables["createdBy"] == NumberVar(3)
        assert variables["totalCoverageRequests"] == NumberVar(2)
        assert variables["timestamp"] == StringVar("2026-01-01T12:00:00+00:00")
        assert variables["requestType"] == StringVar(BATCH_REQUEST_TYPE)
        assert variables["isBatchCoverageRequest"] == BoolVar(True)
        data = variables["coverageRequestsData"]
        assert isinstance(data, JsonVar)
        assert [entry["title"] for entry in data.value] == ["Transport", "Food"]


class TestSubmitCoverageRequests:
    """Tests for submit_coverage_requests."""

    async def test_nothing_to_submit(
        self,
        service: CoverageBatchService,
        project: Project,
        gateway: WorkflowGatewayStub,
    ) -> None:
        """Test no case is created without coverage requests."""
        assert await service.submit_coverage_requests(project.id, []) is None
        assert gateway.case_count == 0

    async def test_delivers_batch_to_one_case(
        self,
        service: CoverageBatchService,
        project: Project,
        projects: ProjectRepositoryStub,
        gateway: WorkflowGatewayStub,
    ) -> None:
        """Test the batch creates one case and records it on the project."""
        result = await service.submit_coverage_requests(project.id, DRAFTS)

        assert result is not None
        assert result.succeeded
        assert result.case_id == "1001"
        assert result.first_task_completed
        assert result.request_titles == ("Transport", "Food")
        assert gateway.case_count == 1
        stored = await projects.get(project.id)
        assert stored.external_case_id == "1001"

        session = await gateway.authenticate(WorkflowEngineConfig().credentials)
        variables = await gateway.read_case_variables(session, "1001")
        assert variables["totalCoverageRequests"] == NumberVar(2)
        assert variables["isBatchCoverageRequest"] == BoolVar(True)
        coverage = await gateway.list_coverage_tasks(session, project.id)
        assert [t.title for t in coverage] == ["Transport", "Food"]

    async def test_polls_with_exponential_backoff(
        self,
        service: CoverageBatchService,
        project: Project,
        gateway: WorkflowGatewayStub,
        sleep: AsyncMock,
    ) -> None:
        """Test the first human task is awaited with doubling delays."""
        gateway.ready_after_polls = 2

        result = await service.submit_coverage_requests(project.id, DRAFTS)

        assert result.succeeded
        assert gateway.calls["list_human_tasks"] == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.25, 0.5]

    async def test_poll_limit_exhausted(
        self,
        service: CoverageBatchService,
        project: Project,
        projects: ProjectRepositoryStub,
        gateway: WorkflowGatewayStub,
        sleep: AsyncMock,
    ) -> None:
        """Test a case without a human task is reported, not recorded."""
        gateway.ready_after_polls = 10

        result = await service.submit_coverage_requests(project.id, DRAFTS)

        assert not result.succeeded
        assert result.case_id == "1001"
        assert result.error.kind == "EXTERNAL_SYSTEM_UNAVAILABLE"
        assert "after 3 attempts" in result.error.message
        assert sleep.await_count == 2
        assert (await projects.get(project.id)).external_case_id is None

    async def test_case_creation_failure(
        self,
        service: CoverageBatchService,
        project: Project,
        projects: ProjectRepositoryStub,
        gateway: WorkflowGatewayStub,
    ) -> None:
        """Test an engine failure leaves the project without a case."""
        gateway.fail_next("create_case")

        result = await service.submit_coverage_requests(project.id, DRAFTS)

        assert result.case_id is None
        assert result.failed_count == 1
        assert result.error.kind == "EXTERNAL_SYSTEM_UNAVAILABLE"
        assert (await projects.get(project.id)).external_case_id is None

    async def test_delivery_failure_keeps_case_unrecorded(
        self,
        service: CoverageBatchService,
        project: Project,
        projects: ProjectRepositoryStub,
        gateway: WorkflowGatewayStub,
    ) -> None:
        """Test a case whose payload was not delivered is not recorded."""
        gateway.fail_next("complete_task")

        result = await service.submit_coverage_requests(project.id, DRAFTS)

        assert result.case_id == "1001"
        assert not result.first_task_completed
        assert (await projects.get(project.id)).external_case_id is None

    async def test_rejected_credentials(
        self,
        service: CoverageBatchService,
        project: Project,
        gateway: WorkflowGatewayStub,
    ) -> None:
        """Test an authentication failure is reported on the result."""
        gateway.rejected_usernames.add("install")

        result = await service.submit_coverage_requests(project.id, DRAFTS)

        assert result.error.kind == "EXTERNAL_SYSTEM_UNAVAILABLE"
        assert gateway.case_count == 0

    async def test_unknown_project(self, service: CoverageBatchService) -> None:
        """Test submitting for a missing project raises."""
        with pytest.raises(ProjectNotFoundError):
            await service.submit_coverage_requests(99, DRAFTS)


class TestResubmitCoverageRequests:
    """Tests for resubmit_coverage_requests."""

    async def test_resubmit_after_failure(
        self,
        service: CoverageBatchService,
        project: Project,
        projects: ProjectRepositoryStub,
        gateway: WorkflowGatewayStub,
    ) -> None:
        """Test a failed batch can be delivered again."""
        gateway.fail_next("create_case")
        await service.submit_coverage_requests(project.id, DRAFTS)

        result = await service.resubmit_coverage_requests(project.id, DRAFTS)

        assert result.succeeded
        assert (await projects.get(project.id)).external_case_id == result.case_id

    async def test_resubmit_rejected_once_case_exists(
        self, service: CoverageBatchService, project: Project
    ) -> None:
        """Test a project with a case cannot be resubmitted."""
        await service.submit_coverage_requests(project.id, DRAFTS)

        with pytest.raises(InvalidStateTransitionError):
            await service.resubmit_coverage_requests(project.id, DRAFTS)

    async def test_resubmit_requires_requests(
        self, service: CoverageBatchService, project: Project
    ) -> None:
        """Test an empty resubmission is invalid."""
        with pytest.raises(ValidationError):
            await service.resubmit_coverage_requests(project.id, [])
