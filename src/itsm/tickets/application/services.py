"""
Ticket Application Services
============================

Ticket intake: persist, auto-assign and notify.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from itsm.assignment.application import (
    IAgentRepository,
    IAssignmentPolicyProvider,
    StaticPolicyProvider,
    WorkloadBalancer,
)
from itsm.assignment.domain import Agent
from itsm.config import INITIAL_STATUSES, TICKET_CATEGORIES, TICKET_PREFIXES, settings
from itsm.core import RepositoryException, ValidationException
from itsm.notifications.application import DispatchResult, NotificationDispatcher
from itsm.notifications.domain import TicketNotification
from itsm.tickets.application.dto import TicketCreateRequest, TicketRecord
from itsm.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket persistence."""

    @abstractmethod
    async def create(
        self,
        category: str,
        request: TicketCreateRequest,
        status: str,
        assigned_to: Optional[int]
    ) -> TicketRecord:
        """Insert a ticket into the table for ``category``."""

    @abstractmethod
    async def get_tenant_name(self, tenant_id: int) -> Optional[str]:
        """Tenant display name, None if the tenant is unknown."""

    @abstractmethod
    async def commit(self) -> None:
        """Make created tickets durable."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard the current transaction, including any failed reads."""


def ticket_reference(record: TicketRecord) -> str:
    return f"{TICKET_PREFIXES[record.category]}-{record.id}"


def describe_user(agent: Optional[Agent]) -> Optional[str]:
    """'First Last (email)' for notifications."""
    if agent is None:
        return None
    return f"{agent.display_name} ({agent.email})" if agent.email else agent.display_name


class TicketCreationResult:
    """Outcome of ticket intake."""

    def __init__(
        self,
        ticket: TicketRecord,
        auto_assigned: bool = False,
        dispatch: Optional[DispatchResult] = None
    ):
        self.ticket = ticket
        self.auto_assigned = auto_assigned
        self.dispatch = dispatch


# ========== Application Services ==========

class TicketIntakeService:
    """
    Creates tickets and triggers assignment and notification.

    Only persistence errors fail creation. Assignment falls back to
    "unassigned", and notification errors are logged and dropped.

    The ticket is committed before notifying. Neither a failed assignment
    read nor a failed notification read can roll it back.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        agent_repository: IAgentRepository,
        balancer: WorkloadBalancer,
        dispatcher: Optional[NotificationDispatcher] = None,
        policy_provider: Optional[IAssignmentPolicyProvider] = None
    ):
        self._ticket_repo = ticket_repository
        self._agent_repo = agent_repository
        self._balancer = balancer
        self._dispatcher = dispatcher
        self._policy_provider = policy_provider or StaticPolicyProvider()

    async def create_ticket(self, category: str, request: TicketCreateRequest) -> TicketCreationResult:
        if category not in TICKET_CATEGORIES:
            raise ValidationException(
                f"Unknown ticket category: {category}",
                {"allowed": TICKET_CATEGORIES}
            )

        assigned_to = request.assigned_to
        auto_assigned = False
        if assigned_to is None:
            assigned_to = await self._balancer.auto_assign(request.tenant_id)
            auto_assigned = assigned_to is not None
            if not auto_assigned:
                # Nothing written yet; clears a transaction aborted by a masked read failure.
                await self._ticket_repo.rollback()

        record = await self._ticket_repo.create(
            category, request, INITIAL_STATUSES[category], assigned_to
        )
        await self._ticket_repo.commit()

        logger.info(
            "Ticket created",
            extra={
                "tenant_id": record.tenant_id,
                "ticket": ticket_reference(record),
                "assigned_to": record.assigned_to,
                "auto_assigned": auto_assigned
            }
        )

        dispatch = None
        if self._dispatcher is not None:
            try:
                dispatch = await self._notify(record)
            except Exception as e:
                logger.error(
                    "Ticket notification failed",
                    extra={"ticket": ticket_reference(record), "error": str(e), "error_type": type(e).__name__}
                )
            # Notification only reads.
            await self._discard_reads(record)

        return TicketCreationResult(record, auto_assigned, dispatch)

    async def _discard_reads(self, record: TicketRecord) -> None:
        try:
            await self._ticket_repo.rollback()
        except RepositoryException as e:
            logger.warning(
                "Failed to discard notification transaction",
                extra={"ticket": ticket_reference(record), "error": e.message}
            )

    async def _notify(self, record: TicketRecord) -> DispatchResult:
        assignee = None
        if record.assigned_to is not None:
            assignee = await self._agent_repo.get_by_id(record.assigned_to)
        creator = None
        if record.reported_by is not None:
            creator = await self._agent_repo.get_by_id(record.reported_by)

        tenant_name = await self._ticket_repo.get_tenant_name(record.tenant_id)

        notification = TicketNotification(
            ticket_type=record.category,
            ticket_id=record.id,
            title=record.title,
            description=record.description,
            status=record.status,
            priority=record.priority,
            tenant_name=tenant_name or settings.default_tenant_name,
            created_by=describe_user(creator),
            assigned_to=describe_user(assignee),
        )

        recipients = await self._recipients(record.tenant_id, assignee)
        return await self._dispatcher.dispatch(record.tenant_id, notification, recipients)

    async def _recipients(self, tenant_id: int, assignee: Optional[Agent]) -> List[str]:
        """The assignee, or every support agent when nobody is assigned."""
        if assignee is not None and assignee.email:
            return [assignee.email]

        policy = self._policy_provider.get_policy()
        staff = await self._agent_repo.list_eligible_agents(tenant_id, policy.eligible_roles)
        return [agent.email for agent in staff if agent.email]
