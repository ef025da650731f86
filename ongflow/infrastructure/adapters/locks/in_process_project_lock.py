"""Per-project lock for a single-process deployment."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from ongflow.application.ports.project_lock import ProjectLockProtocol


class InProcessProjectLock(ProjectLockProtocol):
    """Keyed registry of asyncio locks, one per project id."""

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}

    @asynccontextmanager
    async def hold(self, project_id: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(project_id, asyncio.Lock())
        async with lock:
            yield
