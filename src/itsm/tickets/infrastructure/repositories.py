"""
Ticket Infrastructure Repositories
===================================

SQLAlchemy implementation of ticket persistence.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from itsm.config import Priority, TicketCategory
from itsm.core import RepositoryException
from itsm.tickets.application import ITicketRepository, TicketCreateRequest, TicketRecord
from itsm.tickets.infrastructure.models import (
    ChangeRequestModel,
    IncidentModel,
    ServiceRequestModel,
    TenantModel,
)


class SQLAlchemyTicketRepository(ITicketRepository):
    """Writes tickets into the table of their category."""

    def __init__(self, session: AsyncSession):
        self._session = session

    def _build_model(self, category: str, request: TicketCreateRequest, status: str, assigned_to: Optional[int]):
        common = dict(
            tenant_id=request.tenant_id,
            title=request.title,
            description=request.description,
            status=status,
            assigned_to=assigned_to,
        )

        if category == TicketCategory.INCIDENT.value:
            return IncidentModel(severity=request.priority, reported_by=request.reported_by, **common)
        if category == TicketCategory.SERVICE_REQUEST.value:
            return ServiceRequestModel(
                priority=request.priority,
                request_type=request.request_type or "general",
                requested_by=request.reported_by,
                **common
            )
        return ChangeRequestModel(
            impact=request.priority,
            risk=request.risk or Priority.MEDIUM.value,
            change_type=request.change_type or "normal",
            requested_by=request.reported_by,
            **common
        )

    async def create(
        self,
        category: str,
        request: TicketCreateRequest,
        status: str,
        assigned_to: Optional[int]
    ) -> TicketRecord:
        model = self._build_model(category, request, status, assigned_to)
        self._session.add(model)
        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to create {category}", {"tenant_id": request.tenant_id, "error": str(e)}
            ) from e

        return TicketRecord(
            id=model.id,
            category=category,
            tenant_id=model.tenant_id,
            title=model.title,
            description=model.description,
            status=model.status,
            priority=request.priority,
            assigned_to=model.assigned_to,
            reported_by=request.reported_by,
            created_at=model.created_at,
        )

    async def get_tenant_name(self, tenant_id: int) -> Optional[str]:
        try:
            tenant = await self._session.get(TenantModel, tenant_id)
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to load tenant {tenant_id}", {"error": str(e)}) from e
        return tenant.name if tenant else None

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            raise RepositoryException("Failed to commit ticket", {"error": str(e)}) from e

    async def rollback(self) -> None:
        try:
            await self._session.rollback()
        except SQLAlchemyError as e:
            raise RepositoryException("Failed to roll back transaction", {"error": str(e)}) from e
