"""
Ticket Controllers (API Routes)
================================

Ticket intake endpoint. Creating a ticket without an assignee auto-assigns
it to the least-loaded agent and sends notifications.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from itsm.assignment.application import IAssignmentPolicyProvider, WorkloadBalancer
from itsm.assignment.infrastructure import SQLAlchemyAgentRepository, SQLAlchemyTicketCountRepository
from itsm.assignment.interfaces import get_policy_provider
from itsm.infrastructure.database import get_session
from itsm.notifications.application import DispatchResultResponse, NotificationDispatcher
from itsm.notifications.interfaces.controllers import get_dispatcher
from itsm.tickets.application import (
    TicketCreateRequest,
    TicketCreatedResponse,
    TicketIntakeService,
    TicketResponse,
    ticket_reference,
)
from itsm.tickets.application.dto import TicketCategoryStr
from itsm.tickets.infrastructure import SQLAlchemyTicketRepository

router = APIRouter(prefix="/tickets", tags=["Tickets"])


# ========== Dependencies ==========

async def get_intake_service(
    session: AsyncSession = Depends(get_session),
    policy_provider: IAssignmentPolicyProvider = Depends(get_policy_provider),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> TicketIntakeService:
    """Get ticket intake service instance."""
    agent_repo = SQLAlchemyAgentRepository(session)
    balancer = WorkloadBalancer(agent_repo, SQLAlchemyTicketCountRepository(session), policy_provider)
    return TicketIntakeService(
        SQLAlchemyTicketRepository(session),
        agent_repo,
        balancer,
        dispatcher,
        policy_provider
    )


# ========== Route Handlers ==========

@router.post(
    "/{category}",
    response_model=TicketCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create ticket",
    description="""
    Create an incident, service request or change request.

    When `assigned_to` is omitted the ticket goes to the eligible agent with
    the fewest open tickets (ties: lowest id). The assignee, or all support
    staff when nobody could be assigned, is emailed through the account
    mapped to the category. Notification failures never fail creation.
    """
)
async def create_ticket(
    request: TicketCreateRequest,
    category: TicketCategoryStr = Path(...),
    service: TicketIntakeService = Depends(get_intake_service)
):
    result = await service.create_ticket(category, request)
    ticket = result.ticket

    return TicketCreatedResponse(
        ticket=TicketResponse(
            id=ticket.id,
            reference=ticket_reference(ticket),
            category=ticket.category,
            tenant_id=ticket.tenant_id,
            title=ticket.title,
            description=ticket.description,
            status=ticket.status,
            priority=ticket.priority,
            assigned_to=ticket.assigned_to,
            reported_by=ticket.reported_by,
            created_at=ticket.created_at,
        ),
        auto_assigned=result.auto_assigned,
        notification=DispatchResultResponse(**result.dispatch.to_dict()) if result.dispatch else None
    )


tickets_router = router
