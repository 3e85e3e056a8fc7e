"""
Tickets Infrastructure Layer
============================

- Models: tenants, users and the three ticket tables
- Repositories: SQLAlchemy ticket persistence
"""

from itsm.tickets.infrastructure.models import (
    TenantModel,
    UserModel,
    IncidentModel,
    ServiceRequestModel,
    ChangeRequestModel,
    TICKET_MODELS,
)
from itsm.tickets.infrastructure.repositories import SQLAlchemyTicketRepository

__all__ = [
    "TenantModel",
    "UserModel",
    "IncidentModel",
    "ServiceRequestModel",
    "ChangeRequestModel",
    "TICKET_MODELS",
    "SQLAlchemyTicketRepository",
]
