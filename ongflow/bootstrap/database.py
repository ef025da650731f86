"""SQLAlchemy async engine and session factory for PostgreSQL.

Usage:
    from ongflow.bootstrap.database import get_session_factory

    session_factory = get_session_factory(config.database_url)
    async with session_factory() as session:
        ...
"""

from __future__ import annotations

import os

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from structlog import get_logger

from ongflow.config._env import get_float_env, get_int_env

logger = get_logger(__name__)

DEFAULT_POOL_SIZE = 10
DEFAULT_MAX_OVERFLOW = 20
DEFAULT_POOL_TIMEOUT_SECONDS = 30.0

_session_factory: async_sessionmaker[AsyncSession] | None = None
_engine: AsyncEngine | None = None


def to_async_url(url: str) -> str:
    """Convert a PostgreSQL URL to the asyncpg driver form."""
    if url.startswith("postgresql+asyncpg://"):
        return url
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return f"postgresql+asyncpg://{url}"


def mask_password(url: str) -> str:
    """Hide the password component of a URL for logging."""
    if "@" not in url:
        return url
    credentials, host = url.rsplit("@", 1)
    if ":" not in credentials.split("://", 1)[-1]:
        return url
    user_part = credentials.rsplit(":", 1)[0]
    return f"{user_part}:***@{host}"


def pool_options() -> dict[str, int | float]:
    """Connection pool sizing read from the environment.

    A held project lock pins one pooled connection until its block exits,
    engine calls included, so the pool bounds how many projects can be
    inside a critical section at once.

    Environment Variables:
    - DATABASE_POOL_SIZE: Connections kept open (default: 10)
    - DATABASE_MAX_OVERFLOW: Extra connections opened under load (default: 20)
    - DATABASE_POOL_TIMEOUT: Seconds to wait for a free connection
      (default: 30)
    """
    return {
        "pool_size": get_int_env("DATABASE_POOL_SIZE", DEFAULT_POOL_SIZE),
        "max_overflow": get_int_env("DATABASE_MAX_OVERFLOW", DEFAULT_MAX_OVERFLOW),
        "pool_timeout": get_float_env(
            "DATABASE_POOL_TIMEOUT", DEFAULT_POOL_TIMEOUT_SECONDS
        ),
    }


def get_engine(database_url: str) -> AsyncEngine:
    """Return the process-wide engine, creating it on first call."""
    global _engine
    if _engine is None:
        url = to_async_url(database_url)
        logger.info("creating_database_engine", url=mask_password(url))
        _engine = create_async_engine(
            url,
            echo=os.environ.get("SQLALCHEMY_ECHO", "").lower() in ("1", "true", "yes"),
            pool_pre_ping=True,
            **pool_options(),
        )
    return _engine


def get_session_factory(database_url: str) -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory, creating it on first call.

    Args:
        database_url: PostgreSQL URL in any of the postgres://,
            postgresql:// or postgresql+asyncpg:// forms.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(database_url),
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("database_session_factory_created")
    return _session_factory


def reset_database_bootstrap() -> None:
    """Reset database singletons for testing."""
    global _session_factory, _engine
    _session_factory = None
    _engine = None


async def close_database_engine() -> None:
    """Dispose of the engine on shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
