"""Unit tests for database URL helpers and the schema definition."""

import pytest

from ongflow.bootstrap.database import (
    get_engine,
    mask_password,
    pool_options,
    reset_database_bootstrap,
    to_async_url,
)
from ongflow.infrastructure.adapters.persistence.rows import row_to_project
from ongflow.infrastructure.adapters.persistence.schema import (
    DROP_STATEMENTS,
    SCHEMA_STATEMENTS,
)


class TestToAsyncUrl:
    """Tests for driver URL normalization."""

    @pytest.mark.parametrize(
        "url",
        [
            "postgresql://u:p@db:5432/ong",
            "postgres://u:p@db:5432/ong",
            "postgresql+asyncpg://u:p@db:5432/ong",
        ],
    )
    def test_forms(self, url: str) -> None:
        """Test every accepted form maps to asyncpg."""
        assert to_async_url(url) == "postgresql+asyncpg://u:p@db:5432/ong"


class TestMaskPassword:
    """Tests for password masking in logs."""

    def test_masks_password(self) -> None:
        """Test the password component is hidden."""
        assert (
            mask_password("postgresql+asyncpg://u:secret@db/ong")
            == "postgresql+asyncpg://u:***@db/ong"
        )

    def test_url_without_password(self) -> None:
        """Test URLs without credentials are unchanged."""
        assert mask_password("postgresql://db/ong") == "postgresql://db/ong"
        assert mask_password("postgresql://u@db/ong") == "postgresql://u@db/ong"


class TestPoolOptions:
    """Tests for engine pool sizing."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the pool falls back to the documented sizes."""
        for key in (
            "DATABASE_POOL_SIZE",
            "DATABASE_MAX_OVERFLOW",
            "DATABASE_POOL_TIMEOUT",
        ):
            monkeypatch.delenv(key, raising=False)

        assert pool_options() == {
            "pool_size": 10,
            "max_overflow": 20,
            "pool_timeout": 30.0,
        }

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test pool sizing is read from the environment."""
        monkeypatch.setenv("DATABASE_POOL_SIZE", "40")
        monkeypatch.setenv("DATABASE_MAX_OVERFLOW", "0")
        monkeypatch.setenv("DATABASE_POOL_TIMEOUT", "2.5")

        assert pool_options() == {
            "pool_size": 40,
            "max_overflow": 0,
            "pool_timeout": 2.5,
        }

    def test_engine_uses_pool_size(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the process-wide engine is built with the configured pool."""
        monkeypatch.setenv("DATABASE_POOL_SIZE", "25")
        reset_database_bootstrap()
        try:
            engine = get_engine("postgresql://u:p@db:5432/ong")
            assert engine.sync_engine.pool.size() == 25
        finally:
            reset_database_bootstrap()


class TestSchema:
    """Tests for the DDL constraints."""

    def test_case_required_constraint(self) -> None:
        """Test EXECUTING and COMPLETE rows need a case id."""
        ddl = SCHEMA_STATEMENTS[0]
        assert "projects_case_required" in ddl
        assert "external_case_id IS NOT NULL" in ddl

    def test_one_assigned_commitment_index(self) -> None:
        """Test the partial unique index on assigned commitments."""
        assert any(
            "UNIQUE INDEX" in s and "WHERE status = 'assigned'" in s
            for s in SCHEMA_STATEMENTS
        )

    def test_drop_order(self) -> None:
        """Test dependent tables are dropped first."""
        assert DROP_STATEMENTS[-1] == "DROP TABLE IF EXISTS projects"


class TestRowMapping:
    """Tests for row to model mapping."""

    def test_row_to_project(self) -> None:
        """Test a projects row becomes a Project."""
        from datetime import date, datetime, timezone

        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        project = row_to_project(
            {
                "id": 3,
                "name": "Winter shelter",
                "description": "",
                "start_date": date(2026, 6, 1),
                "end_date": date(2026, 9, 30),
                "created_by": 1,
                "status": "EXECUTING",
                "external_case_id": "1001",
                "created_at": now,
                "updated_at": now,
            }
        )
        assert project.status.value == "EXECUTING"
        assert project.has_case
