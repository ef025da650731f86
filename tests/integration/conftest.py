"""
Integration test configuration with testcontainers.

A PostgreSQL 16 container is started once per session; every test gets a
freshly created schema that is dropped afterwards.

Usage:
    @pytest.mark.integration
    async def test_example(session_factory) -> None:
        ...

Note: Docker must be running for these fixtures to work.
"""

from collections.abc import AsyncGenerator, Generator

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from testcontainers.postgres import PostgresContainer

from ongflow.infrastructure.adapters.persistence import create_schema, drop_schema


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """Session-scoped PostgreSQL 16 container."""
    with PostgresContainer("postgres:16-alpine") as postgres:
        yield postgres


@pytest.fixture(scope="session")
def postgres_async_url(postgres_container: PostgresContainer) -> str:
    """Get async-compatible PostgreSQL connection URL.

    testcontainers returns a psycopg2 URL by default; convert to asyncpg.
    """
    sync_url = postgres_container.get_connection_url()
    async_url: str = sync_url.replace(
        "postgresql+psycopg2://", "postgresql+asyncpg://"
    ).replace("postgresql://", "postgresql+asyncpg://")
    return async_url


@pytest.fixture
async def session_factory(
    postgres_async_url: str,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh schema, dropped after the test."""
    engine = create_async_engine(postgres_async_url, echo=False)
    await create_schema(engine)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await drop_schema(engine)
    await engine.dispose()
