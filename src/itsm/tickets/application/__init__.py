"""
Tickets Application Layer
=========================

Contains:
- Services: TicketIntakeService
- Repository interfaces: ITicketRepository
- DTOs: Data transfer objects for API serialization
"""

from itsm.tickets.application.dto import (
    TicketCreateRequest,
    TicketRecord,
    TicketResponse,
    TicketCreatedResponse,
)
from itsm.tickets.application.services import (
    TicketIntakeService,
    TicketCreationResult,
    ITicketRepository,
    ticket_reference,
)

__all__ = [
    "TicketCreateRequest",
    "TicketRecord",
    "TicketResponse",
    "TicketCreatedResponse",
    "TicketIntakeService",
    "TicketCreationResult",
    "ITicketRepository",
    "ticket_reference",
]
