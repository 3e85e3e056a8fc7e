"""
Assignment Domain Entities
===========================

Pure Python domain entities for workload-based auto-assignment.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from itsm.config import AgentRole, DEFAULT_ELIGIBLE_ROLES
from itsm.assignment.domain.value_objects import WorkloadCalculator


@dataclass(frozen=True)
class Agent:
    """
    A tenant user who may receive ticket assignments.

    Created by user registration elsewhere; read-only to this module.
    """

    id: int
    tenant_id: int
    role: AgentRole
    username: str = ""
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        full_name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full_name or self.username

    def is_eligible(self, roles: Optional[List[str]] = None) -> bool:
        """Check whether the agent's role allows auto-assignment."""
        role = self.role.value if isinstance(self.role, AgentRole) else self.role
        return role in (roles or DEFAULT_ELIGIBLE_ROLES)


@dataclass
class WorkloadSnapshot:
    """
    Open-ticket counts per eligible agent for one tenant.

    Built fresh for every assignment decision and discarded afterwards.
    Every eligible agent is a key, idle agents with a count of 0.

    When the underlying reads failed the snapshot is empty and ``failure``
    carries the reason, so callers can tell "no eligible agents" apart from
    "no recommendation available".
    """

    tenant_id: int
    counts: Dict[int, int] = field(default_factory=dict)
    failure: Optional[str] = None

    @classmethod
    def failed(cls, tenant_id: int, reason: str) -> "WorkloadSnapshot":
        return cls(tenant_id=tenant_id, counts={}, failure=reason)

    @property
    def is_empty(self) -> bool:
        return not self.counts

    @property
    def read_failed(self) -> bool:
        return self.failure is not None

    @property
    def total_open(self) -> int:
        return sum(self.counts.values())

    def least_loaded(self) -> Optional[int]:
        """
        Agent with the fewest open tickets.

        Ties resolve to the smallest agent id, so repeated calls on the same
        snapshot always agree.
        """
        return WorkloadCalculator.select_least_loaded(self.counts)

    def to_dict(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "agents": [
                {"agent_id": agent_id, "open_tickets": count}
                for agent_id, count in sorted(self.counts.items())
            ],
            "total_open": self.total_open,
            "read_failed": self.read_failed,
        }
