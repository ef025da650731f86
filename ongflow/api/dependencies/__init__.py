"""Service dependencies for the routes.

One Container per process, built from the environment on first use.
Tests install their own with set_container().
"""

from __future__ import annotations

from ongflow.application.services import (
    CommitmentService,
    CoverageBatchService,
    LocalTaskService,
    ProjectLifecycleService,
    ProjectService,
)
from ongflow.bootstrap.container import Container, build_container
from ongflow.config import load_app_config, load_workflow_config

_container: Container | None = None


def get_container() -> Container:
    global _container
    if _container is None:
        _container = build_container(load_app_config(), load_workflow_config())
    return _container


def set_container(container: Container | None) -> None:
    """Install a container (None resets to lazy construction)."""
    global _container
    _container = container


def get_project_service() -> ProjectService:
    return get_container().projects


def get_lifecycle_service() -> ProjectLifecycleService:
    return get_container().lifecycle


def get_batch_service() -> CoverageBatchService:
    return get_container().batch


def get_local_task_service() -> LocalTaskService:
    return get_container().local_tasks


def get_commitment_service() -> CommitmentService:
    return get_container().commitments


__all__: list[str] = [
    "get_batch_service",
    "get_commitment_service",
    "get_container",
    "get_lifecycle_service",
    "get_local_task_service",
    "get_project_service",
    "set_container",
]
