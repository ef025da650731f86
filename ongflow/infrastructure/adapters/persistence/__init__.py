"""PostgreSQL persistence adapters."""

from ongflow.infrastructure.adapters.persistence.postgres_commitment_repository import (
    PostgresCommitmentRepository,
)
from ongflow.infrastructure.adapters.persistence.postgres_project_repository import (
    PostgresProjectRepository,
)
from ongflow.infrastructure.adapters.persistence.postgres_task_repository import (
    PostgresTaskRepository,
)
from ongflow.infrastructure.adapters.persistence.schema import (
    create_schema,
    drop_schema,
)

__all__: list[str] = [
    "PostgresCommitmentRepository",
    "PostgresProjectRepository",
    "PostgresTaskRepository",
    "create_schema",
    "drop_schema",
]
