"""In-memory stub for CommitmentRepositoryProtocol."""

from __future__ import annotations

import asyncio
import itertools

from ongflow.application.ports.commitment_repository import (
    CommitmentRepositoryProtocol,
)
from ongflow.domain.errors import (
    CommitmentAlreadyAssignedError,
    CommitmentNotFoundError,
)
from ongflow.domain.models.commitment import Commitment


class CommitmentRepositoryStub(CommitmentRepositoryProtocol):
    """In-memory commitment store enforcing one assigned commitment per task."""

    def __init__(self) -> None:
        self._commitments: dict[int, Commitment] = {}
        self._ids = itertools.count(1)
        # Lock for simulating atomic CAS operations
        self._cas_lock = asyncio.Lock()

    async def save(
        self,
        task_id: str,
        organization_id: int,
        description: str,
    ) -> Commitment:
        commitment = Commitment(
            id=next(self._ids),
            task_id=task_id,
            organization_id=organization_id,
            description=description,
        )
        self._commitments[commitment.id] = commitment
        return commitment

    async def get(self, commitment_id: int) -> Commitment | None:
        return self._commitments.get(commitment_id)

    async def list_by_task(self, task_id: str) -> list[Commitment]:
        return sorted(
            (c for c in self._commitments.values() if c.task_id == task_id),
            key=lambda c: c.id,
        )

    async def assign(self, commitment_id: int) -> Commitment:
        async with self._cas_lock:
            commitment = self._commitments.get(commitment_id)
            if commitment is None:
                raise CommitmentNotFoundError(commitment_id)
            holder = next(
                (
                    c
                    for c in self._commitments.values()
                    if c.task_id == commitment.task_id and c.is_assigned
                ),
                None,
            )
            if holder is not None:
                raise CommitmentAlreadyAssignedError(
                    commitment.task_id, assigned_commitment_id=holder.id
                )
            assigned = commitment.assigned()
            self._commitments[commitment_id] = assigned
            return assigned

    async def assigned_task_ids(self, task_ids: list[str]) -> set[str]:
        wanted = set(task_ids)
        return {
            c.task_id
            for c in self._commitments.values()
            if c.is_assigned and c.task_id in wanted
        }
