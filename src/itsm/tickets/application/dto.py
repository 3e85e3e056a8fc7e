"""
Ticket Application DTOs
========================
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from itsm.notifications.application import DispatchResultResponse


PriorityStr = Literal["critical", "high", "medium", "low"]
TicketCategoryStr = Literal["incident", "service_request", "change_request"]


# ========== Request DTOs ==========

class TicketCreateRequest(BaseModel):
    """
    Request model for creating a ticket of any category.

    ``priority`` is stored as severity for incidents and as impact for
    change requests.
    """
    tenant_id: int = Field(..., ge=1)
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1)
    priority: PriorityStr = Field(default="medium")
    assigned_to: Optional[int] = Field(None, description="Leave empty to auto-assign")
    reported_by: Optional[int] = Field(None, description="Creating user id")
    request_type: Optional[str] = Field(None, description="Service requests only")
    change_type: Optional[str] = Field(None, description="Change requests only")
    risk: Optional[PriorityStr] = Field(None, description="Change requests only")


# ========== Internal DTOs ==========

@dataclass
class TicketRecord:
    """A persisted ticket, category-independent."""
    id: int
    category: str
    tenant_id: int
    title: str
    description: str
    status: str
    priority: str
    assigned_to: Optional[int]
    reported_by: Optional[int]
    created_at: datetime


# ========== Response DTOs ==========

class TicketResponse(BaseModel):
    id: int
    reference: str
    category: TicketCategoryStr
    tenant_id: int
    title: str
    description: str
    status: str
    priority: str
    assigned_to: Optional[int] = None
    reported_by: Optional[int] = None
    created_at: datetime


class TicketCreatedResponse(BaseModel):
    """Response for ticket creation."""
    ticket: TicketResponse
    auto_assigned: bool = False
    notification: Optional[DispatchResultResponse] = None
