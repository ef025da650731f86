"""PostgreSQL schema for projects, local tasks and commitments.

Plain DDL applied with ``create_schema``; there is no migration tooling.
Constraints mirror the domain invariants so that a bug in application
code cannot store an impossible row:

- EXECUTING and COMPLETE projects carry an external case id
- at most one assigned commitment per coverage task (partial unique index)
"""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
from structlog import get_logger

logger = get_logger(__name__)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS projects (
        id SERIAL PRIMARY KEY,
        name VARCHAR(100) NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        start_date DATE NOT NULL,
        end_date DATE NOT NULL,
        created_by INTEGER NOT NULL,
        status VARCHAR(16) NOT NULL DEFAULT 'DRAFT'
            CHECK (status IN ('DRAFT', 'PLANNED', 'EXECUTING', 'COMPLETE')),
        external_case_id VARCHAR(64),
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        CONSTRAINT projects_case_required
            CHECK (status IN ('DRAFT', 'PLANNED') OR external_case_id IS NOT NULL),
        CONSTRAINT projects_dates CHECK (end_date > start_date)
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_projects_created_by ON projects (created_by)",
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id SERIAL PRIMARY KEY,
        project_id INTEGER NOT NULL REFERENCES projects (id) ON DELETE CASCADE,
        title VARCHAR(150) NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        status VARCHAR(16) NOT NULL DEFAULT 'todo'
            CHECK (status IN ('todo', 'in_progress', 'done', 'cancelled')),
        assignee INTEGER,
        due_date DATE,
        estimated_hours NUMERIC(8, 2) NOT NULL DEFAULT 0
            CHECK (estimated_hours >= 0),
        is_coverage_request BOOLEAN NOT NULL DEFAULT FALSE,
        created_by INTEGER NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_tasks_project_id ON tasks (project_id)",
    """
    CREATE TABLE IF NOT EXISTS commitments (
        id SERIAL PRIMARY KEY,
        task_id VARCHAR(64) NOT NULL,
        organization_id INTEGER NOT NULL,
        description TEXT NOT NULL,
        status VARCHAR(16) NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'assigned')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        assigned_at TIMESTAMPTZ
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_commitments_task_id ON commitments (task_id)",
    """
    CREATE UNIQUE INDEX IF NOT EXISTS ux_commitments_one_assigned_per_task
        ON commitments (task_id) WHERE status = 'assigned'
    """,
)

DROP_STATEMENTS: tuple[str, ...] = (
    "DROP TABLE IF EXISTS commitments",
    "DROP TABLE IF EXISTS tasks",
    "DROP TABLE IF EXISTS projects",
)


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table and index that does not exist yet."""
    async with engine.begin() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(text(statement))
    logger.info("database_schema_ready", statements=len(SCHEMA_STATEMENTS))


async def drop_schema(engine: AsyncEngine) -> None:
    """Drop every table (for test cleanup)."""
    async with engine.begin() as conn:
        for statement in DROP_STATEMENTS:
            await conn.execute(text(statement))
