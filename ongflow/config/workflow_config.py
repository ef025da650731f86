"""Workflow engine configuration.

Environment Variables:
- WORKFLOW_ENGINE_URL: Engine base URL (default: http://localhost:8080)
- WORKFLOW_ENGINE_USERNAME: Service account (default: install)
- WORKFLOW_ENGINE_PASSWORD: Service account password (default: install)
- WORKFLOW_ENGINE_TIMEOUT_SECONDS: Per-call timeout (default: 5.0)
- WORKFLOW_PROCESS_NAME: Coverage process definition name
  (default: CoverageRequestProcess)
- WORKFLOW_READY_TASK_MAX_ATTEMPTS: Polls for the first human task of a
  new case (default: 6)
- WORKFLOW_READY_TASK_BASE_DELAY: First poll delay in seconds, doubled on
  each attempt (default: 0.25)
- WORKFLOW_READY_TASK_MAX_DELAY: Cap on a single poll delay (default: 2.0)
"""

from __future__ import annotations

from dataclasses import dataclass

from ongflow.config._env import get_float_env, get_int_env, get_str_env
from ongflow.domain.models.workflow import WorkflowCredentials

DEFAULT_ENGINE_URL = "http://localhost:8080"
DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_READY_TASK_MAX_ATTEMPTS = 6
DEFAULT_READY_TASK_BASE_DELAY = 0.25
DEFAULT_READY_TASK_MAX_DELAY = 2.0


@dataclass(frozen=True)
class WorkflowEngineConfig:
    """Configuration for the workflow engine gateway.

    Attributes:
        base_url: Engine base URL, without the application path.
        username: Service account used by the core.
        password: Service account password.
        timeout_seconds: Upper bound for a single engine call.
        process_name: Process definition instantiated for coverage cases.
        ready_task_max_attempts: Polls before giving up on a new case.
        ready_task_base_delay: First poll delay in seconds.
        ready_task_max_delay: Cap on a single poll delay in seconds.
    """

    base_url: str = DEFAULT_ENGINE_URL
    username: str = "install"
    password: str = "install"
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    process_name: str = "CoverageRequestProcess"
    ready_task_max_attempts: int = DEFAULT_READY_TASK_MAX_ATTEMPTS
    ready_task_base_delay: float = DEFAULT_READY_TASK_BASE_DELAY
    ready_task_max_delay: float = DEFAULT_READY_TASK_MAX_DELAY

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.ready_task_max_attempts < 1:
            raise ValueError("ready_task_max_attempts must be at least 1")
        if self.ready_task_base_delay < 0 or self.ready_task_max_delay < 0:
            raise ValueError("ready task delays must not be negative")

    @property
    def credentials(self) -> WorkflowCredentials:
        return WorkflowCredentials(username=self.username, password=self.password)

    def backoff_delay(self, attempt: int) -> float:
        """Delay before poll ``attempt`` (1-based), exponential and capped."""
        delay = self.ready_task_base_delay * (2 ** max(attempt - 1, 0))
        return min(delay, self.ready_task_max_delay)


def load_workflow_config() -> WorkflowEngineConfig:
    """Load workflow engine configuration from environment variables."""
    return WorkflowEngineConfig(
        base_url=get_str_env("WORKFLOW_ENGINE_URL", DEFAULT_ENGINE_URL).rstrip("/"),
        username=get_str_env("WORKFLOW_ENGINE_USERNAME", "install"),
        password=get_str_env("WORKFLOW_ENGINE_PASSWORD", "install"),
        timeout_seconds=get_float_env(
            "WORKFLOW_ENGINE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS
        ),
        process_name=get_str_env("WORKFLOW_PROCESS_NAME", "CoverageRequestProcess"),
        ready_task_max_attempts=get_int_env(
            "WORKFLOW_READY_TASK_MAX_ATTEMPTS", DEFAULT_READY_TASK_MAX_ATTEMPTS
        ),
        ready_task_base_delay=get_float_env(
            "WORKFLOW_READY_TASK_BASE_DELAY", DEFAULT_READY_TASK_BASE_DELAY
        ),
        ready_task_max_delay=get_float_env(
            "WORKFLOW_READY_TASK_MAX_DELAY", DEFAULT_READY_TASK_MAX_DELAY
        ),
    )
