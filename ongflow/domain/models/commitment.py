"""Commitment domain model.

A commitment is an organization's proposal to cover one coverage task.
Any number may be pending for a task; at most one may be assigned.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum


class CommitmentStatus(Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, eq=True)
class Commitment:
    """A proposal against a coverage task.

    Attributes:
        id: Numeric identifier.
        task_id: External id of the coverage task.
        organization_id: Proposing organization.
        description: What the organization commits to.
        status: pending until chosen, then assigned.
        created_at: Creation timestamp (UTC).
        assigned_at: When the commitment was chosen, if it was.
    """

    id: int
    task_id: str
    organization_id: int
    description: str
    status: CommitmentStatus = field(default=CommitmentStatus.PENDING)
    created_at: datetime = field(default_factory=_utc_now)
    assigned_at: datetime | None = field(default=None)

    @property
    def is_assigned(self) -> bool:
        return self.status is CommitmentStatus.ASSIGNED

    def assigned(self) -> Commitment:
        return replace(self, status=CommitmentStatus.ASSIGNED, assigned_at=_utc_now())
