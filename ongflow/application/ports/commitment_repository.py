"""Commitment repository port.

Many commitments may compete for one coverage task; ``assign`` guarantees
at most one of them ever holds the assigned status.
"""

from __future__ import annotations

from typing import Protocol

from ongflow.domain.models.commitment import Commitment


class CommitmentRepositoryProtocol(Protocol):
    """Protocol for commitment persistence."""

    async def save(
        self,
        task_id: str,
        organization_id: int,
        description: str,
    ) -> Commitment:
        """Insert a new pending commitment and return it with its id."""
        ...

    async def get(self, commitment_id: int) -> Commitment | None:
        """Retrieve a commitment by id, or None."""
        ...

    async def list_by_task(self, task_id: str) -> list[Commitment]:
        """List every commitment proposed for a coverage task, oldest first."""
        ...

    async def assign(self, commitment_id: int) -> Commitment:
        """Mark a commitment assigned.

        Raises:
            CommitmentNotFoundError: If the commitment doesn't exist.
            CommitmentAlreadyAssignedError: If any commitment of the same
                task (including this one) is already assigned.
        """
        ...

    async def assigned_task_ids(self, task_ids: list[str]) -> set[str]:
        """Return the subset of task_ids that have an assigned commitment."""
        ...
