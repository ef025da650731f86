"""Per-project lock port.

Serializes check-then-act sequences that span the local store and the
workflow engine (detecting the last unassigned coverage task, recomputing
completion). Holders must keep the critical section short: it wraps
network calls, so implementations should not be re-entrant-dependent.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol


class ProjectLockProtocol(Protocol):
    """Protocol for per-project mutual exclusion."""

    def hold(self, project_id: int) -> AbstractAsyncContextManager[None]:
        """Return an async context manager holding the lock for project_id."""
        ...
