"""Workflow engine session cache.

Sessions are values passed to every gateway call. This provider opens
them on demand and caches one per credential identity, so concurrent
requests for different identities never share or overwrite each other's
session, and concurrent requests for the same identity log in once.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from structlog import get_logger

from ongflow.application.ports.workflow_gateway import WorkflowGatewayProtocol
from ongflow.domain.errors import AuthenticationFailedError
from ongflow.domain.models.workflow import WorkflowCredentials, WorkflowSession

logger = get_logger(__name__)


class WorkflowSessionProvider:
    """Per-identity session cache in front of the workflow gateway.

    Example:
        >>> provider = WorkflowSessionProvider(gateway, config.credentials)
        >>> session = await provider.get_session()
        >>> tasks = await gateway.list_human_tasks(session, case_id)
    """

    def __init__(
        self,
        gateway: WorkflowGatewayProtocol,
        default_credentials: WorkflowCredentials,
    ) -> None:
        self._gateway = gateway
        self._default_credentials = default_credentials
        self._sessions: dict[str, WorkflowSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, identity: str) -> asyncio.Lock:
        lock = self._locks.get(identity)
        if lock is None:
            lock = self._locks.setdefault(identity, asyncio.Lock())
        return lock

    async def get_session(
        self, credentials: WorkflowCredentials | None = None
    ) -> WorkflowSession:
        """Return a cached session for the identity, logging in if needed.

        Args:
            credentials: Identity to use; defaults to the service account.

        Raises:
            AuthenticationFailedError: If the engine rejects the credentials.
            ExternalSystemUnavailableError: If the engine cannot be reached.
        """
        creds = credentials or self._default_credentials
        identity = creds.identity

        cached = self._sessions.get(identity)
        if cached is not None:
            return cached

        async with self._lock_for(identity):
            cached = self._sessions.get(identity)
            if cached is not None:
                return cached
            session = await self._gateway.authenticate(creds)
            self._sessions[identity] = session
            logger.info("workflow_session_opened", username=identity)
            return session

    def invalidate(self, credentials: WorkflowCredentials | None = None) -> None:
        """Drop the cached session so the next call logs in again."""
        creds = credentials or self._default_credentials
        if self._sessions.pop(creds.identity, None) is not None:
            logger.info("workflow_session_invalidated", username=creds.identity)

    @asynccontextmanager
    async def open_session(
        self, credentials: WorkflowCredentials | None = None
    ) -> AsyncIterator[WorkflowSession]:
        """Yield a cached session and drop it if the engine rejects it.

        A 401/403 raised inside the block invalidates the identity's
        session before the error propagates, so the next call logs in
        again instead of reusing the expired one.

        Example:
            >>> async with provider.open_session() as session:
            ...     tasks = await gateway.list_coverage_tasks(session, 7)
        """
        session = await self.get_session(credentials)
        try:
            yield session
        except AuthenticationFailedError:
            self.invalidate(credentials)
            raise
