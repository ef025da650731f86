"""Unit tests for the per-project lock adapters."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from ongflow.infrastructure.adapters.locks import (
    InProcessProjectLock,
    PostgresAdvisoryProjectLock,
)
from ongflow.infrastructure.adapters.locks.postgres_advisory_lock import LOCK_NAMESPACE


class TestInProcessProjectLock:
    """Tests for the asyncio lock registry."""

    async def test_same_project_is_serialized(self) -> None:
        """Test two holders of one project never overlap."""
        lock = InProcessProjectLock()
        events: list[str] = []

        async def critical(name: str) -> None:
            async with lock.hold(1):
                events.append(f"{name}-in")
                await asyncio.sleep(0.001)
                events.append(f"{name}-out")

        await asyncio.gather(critical("a"), critical("b"))

        assert events in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )

    async def test_projects_do_not_block_each_other(self) -> None:
        """Test holding one project does not block another."""
        lock = InProcessProjectLock()

        async with lock.hold(1):
            async with lock.hold(2):
                pass

    async def test_released_on_error(self) -> None:
        """Test the lock is released when the block raises."""
        lock = InProcessProjectLock()

        try:
            async with lock.hold(1):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        await asyncio.wait_for(_enter(lock, 1), timeout=1)


async def _enter(lock: InProcessProjectLock, project_id: int) -> None:
    async with lock.hold(project_id):
        pass


class _RecordingSession:
    def __init__(self) -> None:
        self.executed: list[tuple[str, dict[str, Any]]] = []
        self.events: list[str] = []

    async def __aenter__(self) -> "_RecordingSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.events.append("closed")

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[None]:
        self.events.append("begin")
        yield
        self.events.append("commit")

    async def execute(self, statement: Any, params: dict[str, Any]) -> None:
        self.executed.append((str(statement), params))


class TestPostgresAdvisoryProjectLock:
    """Tests for the advisory lock statement."""

    async def test_takes_transaction_lock(self) -> None:
        """Test the lock is taken inside a transaction keyed by project."""
        session = _RecordingSession()
        lock = PostgresAdvisoryProjectLock(lambda: session)  # type: ignore[arg-type]

        async with lock.hold(42):
            session.events.append("body")

        statement, params = session.executed[0]
        assert "pg_advisory_xact_lock" in statement
        assert params == {"namespace": LOCK_NAMESPACE, "project_id": 42}
        assert session.events == ["begin", "body", "commit", "closed"]
