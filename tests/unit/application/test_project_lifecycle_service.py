"""Unit tests for the project lifecycle manager."""

import asyncio

import pytest

from ongflow.bootstrap.container import Container
from ongflow.domain.errors import (
    InvalidStateTransitionError,
    PartialBatchFailureError,
    ProjectNotFoundError,
)
from ongflow.domain.models.project import ProjectStatus
from ongflow.infrastructure.stubs import WorkflowGatewayStub


@pytest.fixture
async def planned_project_id(make_project, assign_all) -> int:
    """A project whose coverage tasks all have an assigned commitment."""
    created = await make_project()
    await assign_all(created.project.id)
    return created.project.id


class TestExecute:
    """Tests for execute (PLANNED -> EXECUTING)."""

    async def test_execute_marks_coverage_tasks(
        self,
        container: Container,
        gateway: WorkflowGatewayStub,
        planned_project_id: int,
    ) -> None:
        """Test execute moves the project and its coverage tasks forward."""
        result = await container.lifecycle.execute(planned_project_id)

        assert result.changed
        assert result.project.status is ProjectStatus.EXECUTING
        assert result.marked_in_progress == ("cov-1", "cov-2")
        assert result.failures == ()
        assert result.partial_failure is None
        assert result.completed_work_item.name == "Execute project"
        assert result.external_error is None

    async def test_partial_failure_is_reported(
        self,
        container: Container,
        gateway: WorkflowGatewayStub,
        planned_project_id: int,
    ) -> None:
        """Test one failing coverage task does not stop the others."""
        gateway.fail_task_ids.add("cov-1")

        result = await container.lifecycle.execute(planned_project_id)

        assert result.project.status is ProjectStatus.EXECUTING
        assert result.marked_in_progress == ("cov-2",)
        assert [f.task_id for f in result.failures] == ["cov-1"]
        partial = result.partial_failure
        assert isinstance(partial, PartialBatchFailureError)
        assert partial.succeeded == 1
        assert list(partial.failed) == ["cov-1"]

    async def test_engine_down_after_commit(
        self,
        container: Container,
        gateway: WorkflowGatewayStub,
        planned_project_id: int,
    ) -> None:
        """Test the local transition stands when the engine is unreachable."""
        gateway.unavailable = True

        result = await container.lifecycle.execute(planned_project_id)

        assert result.project.status is ProjectStatus.EXECUTING
        assert result.external_error.kind == "EXTERNAL_SYSTEM_UNAVAILABLE"
        stored = await container.project_repo.get(planned_project_id)
        assert stored.status is ProjectStatus.EXECUTING

    async def test_execute_from_draft_rejected(
        self, container: Container, make_project
    ) -> None:
        """Test a DRAFT project cannot be executed."""
        created = await make_project()

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await container.lifecycle.execute(created.project.id)
        assert exc_info.value.from_state is ProjectStatus.DRAFT

    async def test_execute_without_case_rejected(
        self, container: Container, make_project
    ) -> None:
        """Test a project without an external case cannot be executed."""
        created = await make_project(coverage=())
        await container.lifecycle.advance_from_intake(created.project.id)

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await container.lifecycle.execute(created.project.id)
        assert exc_info.value.reason == "project has no external case"

    async def test_execute_twice_rejected(
        self, container: Container, planned_project_id: int
    ) -> None:
        """Test the second execute fails without a second transition."""
        await container.lifecycle.execute(planned_project_id)

        with pytest.raises(InvalidStateTransitionError):
            await container.lifecycle.execute(planned_project_id)

    async def test_concurrent_execute_transitions_once(
        self,
        container: Container,
        gateway: WorkflowGatewayStub,
        planned_project_id: int,
    ) -> None:
        """Test racing executes move the project exactly once."""
        gateway.latency = 0.001

        outcomes = await asyncio.gather(
            container.lifecycle.execute(planned_project_id),
            container.lifecycle.execute(planned_project_id),
            return_exceptions=True,
        )

        errors = [o for o in outcomes if isinstance(o, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidStateTransitionError)
        history = [
            status
            for pid, status in container.project_repo.status_history
            if pid == planned_project_id
        ]
        assert history.count(ProjectStatus.EXECUTING) == 1

    async def test_unknown_project(self, container: Container) -> None:
        """Test executing a missing project raises NOT_FOUND."""
        with pytest.raises(ProjectNotFoundError):
            await container.lifecycle.execute(404)


class TestComplete:
    """Tests for complete (EXECUTING -> COMPLETE)."""

    async def test_complete(
        self,
        container: Container,
        gateway: WorkflowGatewayStub,
        planned_project_id: int,
    ) -> None:
        """Test complete finishes the project and closes the case step."""
        await container.lifecycle.execute(planned_project_id)

        result = await container.lifecycle.complete(planned_project_id)

        assert result.changed
        assert result.project.status is ProjectStatus.COMPLETE
        assert result.completed_work_item.name == "Close project"

    async def test_complete_is_idempotent(
        self,
        container: Container,
        gateway: WorkflowGatewayStub,
        planned_project_id: int,
    ) -> None:
        """Test completing a COMPLETE project is a no-op without engine calls."""
        await container.lifecycle.execute(planned_project_id)
        await container.lifecycle.complete(planned_project_id)
        completed_before = list(gateway.completed_task_ids)

        result = await container.lifecycle.complete(planned_project_id)

        assert not result.changed
        assert result.project.status is ProjectStatus.COMPLETE
        assert gateway.completed_task_ids == completed_before

    async def test_complete_from_planned_rejected(
        self, container: Container, planned_project_id: int
    ) -> None:
        """Test PLANNED cannot skip to COMPLETE."""
        with pytest.raises(InvalidStateTransitionError):
            await container.lifecycle.complete(planned_project_id)

    async def test_finalize_skips_non_executing(
        self, container: Container, planned_project_id: int
    ) -> None:
        """Test finalize_completion leaves a PLANNED project alone."""
        result = await container.lifecycle.finalize_completion(planned_project_id)

        assert not result.changed
        assert result.project.status is ProjectStatus.PLANNED


class TestAdvanceFromIntake:
    """Tests for advance_from_intake (DRAFT -> PLANNED)."""

    async def test_advance_completes_assign_step(
        self, container: Container, gateway: WorkflowGatewayStub, make_project
    ) -> None:
        """Test advancing a project with a case completes one work item."""
        created = await make_project()

        result = await container.lifecycle.advance_from_intake(created.project.id)

        assert result.project.status is ProjectStatus.PLANNED
        assert result.completed_work_item.name == "Assign commitments"

    async def test_advance_without_case(
        self, container: Container, gateway: WorkflowGatewayStub, make_project
    ) -> None:
        """Test a project without coverage requests advances locally only."""
        created = await make_project(coverage=())

        result = await container.lifecycle.advance_from_intake(created.project.id)

        assert result.changed
        assert result.project.status is ProjectStatus.PLANNED
        assert result.completed_work_item is None
        assert gateway.completed_task_ids == []

    async def test_advance_is_idempotent(
        self,
        container: Container,
        gateway: WorkflowGatewayStub,
        planned_project_id: int,
    ) -> None:
        """Test advancing a PLANNED project changes nothing."""
        completed_before = list(gateway.completed_task_ids)

        result = await container.lifecycle.advance_from_intake(planned_project_id)

        assert not result.changed
        assert gateway.completed_task_ids == completed_before
