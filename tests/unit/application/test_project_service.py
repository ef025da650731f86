"""Unit tests for project creation and queries."""

import pytest

from ongflow.bootstrap.container import Container
from ongflow.domain.errors import AuthenticationFailedError, ProjectNotFoundError
from ongflow.domain.models.project import ProjectStatus
from ongflow.domain.models.workflow import HumanTaskState
from ongflow.infrastructure.stubs import WorkflowGatewayStub


class TestCreateProject:
    """Tests for create_project."""

    async def test_splits_local_and_coverage(
        self, container: Container, gateway: WorkflowGatewayStub, make_project
    ) -> None:
        """Test local tasks are stored and coverage requests batched."""
        result = await make_project(local=("Paint",), coverage=("Transport", "Food"))

        assert [t.title for t in result.local_tasks] == ["Paint"]
        assert result.coverage.succeeded
        assert result.coverage.request_titles == ("Transport", "Food")
        assert result.total_tasks == 3
        assert result.project.status is ProjectStatus.DRAFT
        assert result.project.external_case_id == result.coverage.case_id
        assert gateway.case_count == 1

    async def test_local_only_project_has_no_case(
        self, container: Container, gateway: WorkflowGatewayStub, make_project
    ) -> None:
        """Test no case is created without coverage requests."""
        result = await make_project(coverage=())

        assert result.coverage is None
        assert result.project.external_case_id is None
        assert gateway.case_count == 0

    async def test_engine_failure_keeps_local_writes(
        self, container: Container, gateway: WorkflowGatewayStub, make_project
    ) -> None:
        """Test the project and local tasks survive a failed batch."""
        gateway.unavailable = True

        result = await make_project()

        assert not result.coverage.succeeded
        assert result.coverage.error.kind == "EXTERNAL_SYSTEM_UNAVAILABLE"
        stored = await container.projects.get_project(result.project.id)
        assert stored.external_case_id is None
        assert len(await container.task_repo.list_by_project(stored.id)) == 1


class TestQueries:
    """Tests for get, list, coverage status and totals."""

    async def test_get_unknown(self, container: Container) -> None:
        """Test a missing project raises NOT_FOUND."""
        with pytest.raises(ProjectNotFoundError):
            await container.projects.get_project(404)

    async def test_list_filters(
        self, container: Container, make_project, assign_all
    ) -> None:
        """Test listing filters by status."""
        draft = (await make_project()).project
        planned = (await make_project()).project
        await assign_all(planned.id)

        only_planned = await container.projects.list_projects(
            statuses=[ProjectStatus.PLANNED]
        )
        by_creator = await container.projects.list_projects(created_by=1)

        assert [p.id for p in only_planned] == [planned.id]
        assert {p.id for p in by_creator} == {draft.id, planned.id}

    async def test_coverage_status(
        self, container: Container, make_project
    ) -> None:
        """Test the engine-side progress of the case."""
        project = (await make_project()).project

        status = await container.projects.coverage_status(project.id)

        assert status.case_id == project.external_case_id
        assert status.completed_count == 1
        assert status.total_count == 2
        assert [t.state for t in status.ready_tasks] == [HumanTaskState.READY]

    async def test_coverage_status_without_case(
        self, container: Container, make_project
    ) -> None:
        """Test a project without a case reports an empty status."""
        project = (await make_project(coverage=())).project

        status = await container.projects.coverage_status(project.id)

        assert status.case_id is None
        assert status.total_count == 0

    async def test_task_totals(self, container: Container, make_project) -> None:
        """Test totals include local rows and coverage tasks."""
        await make_project(local=("Paint", "Clean"), coverage=("Transport",))

        totals = await container.projects.task_totals()

        assert (totals.local_total, totals.local_todo) == (2, 2)
        assert (totals.external_total, totals.external_todo) == (1, 1)
        assert totals.total == 3
        assert totals.external_available

    async def test_task_totals_engine_down(
        self, container: Container, gateway: WorkflowGatewayStub, make_project
    ) -> None:
        """Test totals degrade to local counts when the engine is down."""
        await make_project()
        gateway.unavailable = True

        totals = await container.projects.task_totals()

        assert totals.local_total == 1
        assert totals.external_total == 0
        assert not totals.external_available
        assert totals.errors[0].kind == "EXTERNAL_SYSTEM_UNAVAILABLE"

    async def test_coverage_status_drops_expired_session(
        self, container: Container, gateway: WorkflowGatewayStub, make_project
    ) -> None:
        """Test a 401 on the status query makes the next call log in again."""
        project = (await make_project()).project
        logins = gateway.calls["authenticate"]
        gateway.expire_sessions()

        with pytest.raises(AuthenticationFailedError):
            await container.projects.coverage_status(project.id)
        status = await container.projects.coverage_status(project.id)

        assert status.total_count == 2
        assert gateway.calls["authenticate"] == logins + 1

    async def test_task_totals_drops_expired_session(
        self, container: Container, gateway: WorkflowGatewayStub, make_project
    ) -> None:
        """Test a 401 is reported once and the next totals use a new session."""
        await make_project()
        gateway.expire_sessions()

        degraded = await container.projects.task_totals()
        totals = await container.projects.task_totals()

        assert not degraded.external_available
        assert degraded.errors[0].kind == "EXTERNAL_SYSTEM_UNAVAILABLE"
        assert totals.external_available
        assert totals.external_total == 2
