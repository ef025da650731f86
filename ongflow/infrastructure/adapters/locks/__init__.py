"""Per-project lock adapters."""

from ongflow.infrastructure.adapters.locks.in_process_project_lock import (
    InProcessProjectLock,
)
from ongflow.infrastructure.adapters.locks.postgres_advisory_lock import (
    PostgresAdvisoryProjectLock,
)

__all__: list[str] = ["InProcessProjectLock", "PostgresAdvisoryProjectLock"]
