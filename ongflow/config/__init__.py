"""Configuration loaded from environment variables."""

from ongflow.config.app_config import AppConfig, load_app_config
from ongflow.config.workflow_config import WorkflowEngineConfig, load_workflow_config

__all__: list[str] = [
    "AppConfig",
    "WorkflowEngineConfig",
    "load_app_config",
    "load_workflow_config",
]
