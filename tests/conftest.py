"""
Pytest configuration and shared fixtures for OngFlow tests.

Testing Standards:
- Async tests run under pytest-asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for collaborator doubles, stubs for end-to-end flows
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/ and are marked ``integration``
"""

from collections.abc import Awaitable, Callable
from datetime import date

import pytest

from ongflow.application.dtos.results import AssignmentResult, ProjectCreationResult
from ongflow.bootstrap.container import Container, build_container
from ongflow.config.app_config import AppConfig
from ongflow.config.workflow_config import WorkflowEngineConfig
from ongflow.domain.models.project import NewProject
from ongflow.domain.models.task import TaskDraft
from ongflow.infrastructure.stubs import WorkflowGatewayStub


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from ongflow import __version__

    return __version__


@pytest.fixture
def workflow_config() -> WorkflowEngineConfig:
    """Workflow config with zero poll delays so tests never sleep."""
    return WorkflowEngineConfig(
        base_url="http://bonita.test",
        ready_task_max_attempts=4,
        ready_task_base_delay=0.0,
        ready_task_max_delay=0.0,
    )


@pytest.fixture
def gateway() -> WorkflowGatewayStub:
    """Provide an in-memory workflow engine."""
    return WorkflowGatewayStub()


@pytest.fixture
def container(
    gateway: WorkflowGatewayStub, workflow_config: WorkflowEngineConfig
) -> Container:
    """Fully wired services over in-memory stores and the stub engine."""
    return build_container(AppConfig(), workflow_config, gateway=gateway)


@pytest.fixture
def new_project() -> NewProject:
    return NewProject(
        name="Winter shelter",
        description="Night shelter for the cold months",
        start_date=date(2026, 6, 1),
        end_date=date(2026, 9, 30),
        created_by=1,
    )


@pytest.fixture
def make_project(
    container: Container, new_project: NewProject
) -> Callable[..., Awaitable[ProjectCreationResult]]:
    """Factory creating a project with the given local and coverage titles."""

    async def _make(
        local: tuple[str, ...] = ("Paint walls",),
        coverage: tuple[str, ...] = ("Transport", "Food"),
    ) -> ProjectCreationResult:
        drafts = [TaskDraft(title=t) for t in local] + [
            TaskDraft(title=t, is_coverage_request=True) for t in coverage
        ]
        return await container.projects.create_project(new_project, drafts)

    return _make


@pytest.fixture
def assign_all(
    container: Container, gateway: WorkflowGatewayStub
) -> Callable[[int], Awaitable[list[AssignmentResult]]]:
    """Propose and assign one commitment per coverage task of a project."""

    async def _assign_all(project_id: int) -> list[AssignmentResult]:
        session = await container.sessions.get_session()
        tasks = await gateway.list_coverage_tasks(session, project_id)
        results = []
        for offset, task in enumerate(tasks):
            commitment = await container.commitments.propose(
                task.id, 100 + offset, f"We cover {task.title}"
            )
            results.append(
                await container.commitments.assign(project_id, task.id, commitment.id)
            )
        return results

    return _assign_all
