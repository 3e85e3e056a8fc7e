"""
Assignment Application Services
================================

The Workload Balancer: computes per-agent open-ticket counts across the
three ticket categories and picks the least-loaded agent for a new ticket.

Following SOLID principles:
- Single Responsibility: the balancer only decides, it never writes
- Dependency Inversion: depends on repository interfaces, not SQLAlchemy
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from itsm.assignment.domain import Agent, AssignmentPolicy, WorkloadCalculator, WorkloadSnapshot
from itsm.config import TICKET_CATEGORIES
from itsm.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IAgentRepository(ABC):
    """Interface for reading tenant users who can take assignments."""

    @abstractmethod
    async def list_eligible_agents(self, tenant_id: int, roles: Sequence[str]) -> List[Agent]:
        """List agents of the tenant whose role is in ``roles``."""

    @abstractmethod
    async def get_by_id(self, agent_id: int) -> Optional[Agent]:
        """Get a single user by id, regardless of role."""


class ITicketCountRepository(ABC):
    """Interface for open-ticket aggregation."""

    @abstractmethod
    async def count_open_tickets_by_assignee(
        self,
        tenant_id: int,
        category: str,
        closed_statuses: Sequence[str]
    ) -> Dict[Optional[int], int]:
        """
        Count tickets of one category grouped by assignee.

        Only tickets of ``tenant_id`` whose status is not in
        ``closed_statuses`` are counted.
        """


class IAssignmentPolicyProvider(ABC):
    """Interface for assignment policy access."""

    @abstractmethod
    def get_policy(self) -> AssignmentPolicy:
        """Get current assignment policy."""


class StaticPolicyProvider(IAssignmentPolicyProvider):
    """Policy provider over a fixed policy object."""

    def __init__(self, policy: Optional[AssignmentPolicy] = None):
        self._policy = policy or AssignmentPolicy()

    def get_policy(self) -> AssignmentPolicy:
        return self._policy


# ========== Application Services ==========

class WorkloadBalancer:
    """
    Least-busy agent selection for auto-assignment.

    Stateless: each call reads a fresh snapshot. Two concurrent ticket
    creations may both pick the same agent; that is accepted.
    """

    def __init__(
        self,
        agent_repository: IAgentRepository,
        ticket_count_repository: ITicketCountRepository,
        policy_provider: Optional[IAssignmentPolicyProvider] = None
    ):
        self._agent_repo = agent_repository
        self._count_repo = ticket_count_repository
        self._policy_provider = policy_provider or StaticPolicyProvider()

    async def compute_workload(self, tenant_id: int) -> WorkloadSnapshot:
        """
        Compute open-ticket counts for every eligible agent of a tenant.

        Read failures are logged and turned into an empty snapshot whose
        ``failure`` field carries the reason; they never propagate.

        Args:
            tenant_id: Tenant identifier (existence is the caller's concern)

        Returns:
            WorkloadSnapshot keyed by exactly the eligible agents
        """
        policy = self._policy_provider.get_policy()

        try:
            with log_latency(logger, "compute_workload", tenant_id=tenant_id):
                agents = await self._agent_repo.list_eligible_agents(
                    tenant_id, policy.eligible_roles
                )
                if not agents:
                    return WorkloadSnapshot(tenant_id=tenant_id)

                per_category = []
                for category in TICKET_CATEGORIES:
                    counts = await self._count_repo.count_open_tickets_by_assignee(
                        tenant_id, category, policy.closed_statuses_for(category)
                    )
                    per_category.append(counts)

                workload = WorkloadCalculator.merge_counts(
                    (agent.id for agent in agents), per_category
                )
        except Exception as e:
            logger.error(
                "Failed to compute agent workload",
                extra={"tenant_id": tenant_id, "error": str(e), "error_type": type(e).__name__}
            )
            return WorkloadSnapshot.failed(tenant_id, str(e))

        return WorkloadSnapshot(tenant_id=tenant_id, counts=workload)

    async def select_next_agent(self, tenant_id: int) -> Optional[int]:
        """
        Pick the least-loaded eligible agent.

        Returns:
            Agent id, or None when no recommendation is available
        """
        snapshot = await self.compute_workload(tenant_id)
        return snapshot.least_loaded()

    async def auto_assign(self, tenant_id: int) -> Optional[int]:
        """
        Entry point for ticket-creation workflows.

        Same contract as ``select_next_agent``; None leaves the ticket
        unassigned.
        """
        agent_id = await self.select_next_agent(tenant_id)

        if agent_id is None:
            logger.info("No agent available for auto-assignment", extra={"tenant_id": tenant_id})
        else:
            logger.info(
                "Selected agent for auto-assignment",
                extra={"tenant_id": tenant_id, "agent_id": agent_id}
            )

        return agent_id
