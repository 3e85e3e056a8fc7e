"""
Assignment Infrastructure Repositories
=======================================

SQLAlchemy implementations of the agent and ticket-count repositories.
"""

from typing import Dict, List, Optional, Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from itsm.assignment.application import IAgentRepository, ITicketCountRepository
from itsm.assignment.domain import Agent
from itsm.core import RepositoryException, ValidationException
from itsm.tickets.infrastructure.models import TICKET_MODELS, UserModel


def _to_agent(model: UserModel) -> Agent:
    return Agent(
        id=model.id,
        tenant_id=model.tenant_id,
        role=model.role,
        username=model.username,
        email=model.email,
        first_name=model.first_name,
        last_name=model.last_name,
    )


class SQLAlchemyAgentRepository(IAgentRepository):
    """Reads assignable users from the 'users' table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_eligible_agents(self, tenant_id: int, roles: Sequence[str]) -> List[Agent]:
        stmt = (
            select(UserModel)
            .where(and_(UserModel.tenant_id == tenant_id, UserModel.role.in_(list(roles))))
            .order_by(UserModel.id)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise RepositoryException(
                "Failed to list eligible agents", {"tenant_id": tenant_id, "error": str(e)}
            ) from e

        return [_to_agent(model) for model in result.scalars().all()]

    async def get_by_id(self, agent_id: int) -> Optional[Agent]:
        try:
            model = await self._session.get(UserModel, agent_id)
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to load user {agent_id}", {"error": str(e)}
            ) from e

        return _to_agent(model) if model else None


class SQLAlchemyTicketCountRepository(ITicketCountRepository):
    """
    Open-ticket aggregation over the three ticket tables.

    One grouped COUNT(*) per category.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def count_open_tickets_by_assignee(
        self,
        tenant_id: int,
        category: str,
        closed_statuses: Sequence[str]
    ) -> Dict[Optional[int], int]:
        model = TICKET_MODELS.get(category)
        if model is None:
            raise ValidationException(f"Unknown ticket category: {category}")

        conditions = [
            model.tenant_id == tenant_id,
            model.assigned_to.is_not(None),
        ]
        if closed_statuses:
            conditions.append(model.status.not_in(list(closed_statuses)))

        stmt = (
            select(model.assigned_to, func.count())
            .where(and_(*conditions))
            .group_by(model.assigned_to)
        )

        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to count open {category} tickets",
                {"tenant_id": tenant_id, "error": str(e)}
            ) from e

        return {assignee: count for assignee, count in result.all()}
