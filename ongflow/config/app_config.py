"""Application configuration.

Environment Variables:
- ENVIRONMENT: ``production`` (JSON logs, no error detail) or
  ``development`` (console logs, error detail in responses)
- DATABASE_URL: PostgreSQL URL; when unset, in-memory stores are used
- DATABASE_POOL_SIZE, DATABASE_MAX_OVERFLOW, DATABASE_POOL_TIMEOUT: Engine
  pool sizing, read by the database bootstrap (default: 10, 20, 30)
- COVERAGE_DEFAULT_DUE_DAYS: Due date offset for coverage requests
  submitted without one (default: 30)
- WORKFLOW_ENGINE_STUB: Use the in-memory workflow engine instead of
  Bonita (default: false)
- LOG_LEVEL: Read by the logging setup (default: INFO)

A ``.env`` file in the working directory is loaded first, if present.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from ongflow.config._env import get_bool_env, get_int_env, get_str_env
from ongflow.domain.models.task import DEFAULT_COVERAGE_DUE_DAYS


@dataclass(frozen=True)
class AppConfig:
    """Application-wide settings.

    Attributes:
        environment: ``production`` or ``development``.
        database_url: PostgreSQL URL, or None for in-memory stores.
        coverage_default_due_days: Days added to today for coverage
            requests without a due date.
        workflow_stub: Run against the in-memory workflow engine.
    """

    environment: str = "production"
    database_url: str | None = None
    coverage_default_due_days: int = DEFAULT_COVERAGE_DUE_DAYS
    workflow_stub: bool = False

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def load_app_config(env_file: Path | None = None) -> AppConfig:
    """Load application configuration.

    Args:
        env_file: Optional .env path; defaults to ./.env when it exists.

    Returns:
        AppConfig built from the environment.
    """
    path = env_file or Path(".env")
    if path.exists():
        load_dotenv(path, override=False)

    return AppConfig(
        environment=get_str_env("ENVIRONMENT", "production").lower(),
        database_url=os.environ.get("DATABASE_URL") or None,
        coverage_default_due_days=get_int_env(
            "COVERAGE_DEFAULT_DUE_DAYS", DEFAULT_COVERAGE_DUE_DAYS
        ),
        workflow_stub=get_bool_env("WORKFLOW_ENGINE_STUB", False),
    )
