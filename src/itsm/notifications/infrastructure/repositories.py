"""
Notification Infrastructure Repositories
=========================================

SQLAlchemy implementations of the notification settings repository and
the recipient directory.
"""

from typing import List, Optional, Sequence

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from itsm.core import RepositoryException
from itsm.notifications.application import INotificationSettingsRepository, IRecipientDirectory
from itsm.notifications.domain import EmailAccount, NotificationMapping
from itsm.notifications.infrastructure.models import EmailAccountModel, NotificationMappingModel
from itsm.tickets.infrastructure.models import TenantModel, UserModel


def _to_entity(model: EmailAccountModel) -> EmailAccount:
    return EmailAccount(
        id=model.id,
        name=model.name,
        host=model.host,
        port=model.port,
        user=model.user,
        password=model.password,
        from_address=model.from_address,
        secure=model.secure,
        is_default=model.is_default,
        tenant_id=model.tenant_id,
        created_at=model.created_at,
    )


class SQLAlchemyNotificationSettingsRepository(INotificationSettingsRepository):
    """
    SQLAlchemy implementation of notification settings persistence.

    Accounts are always returned ordered by (created_at, id); the router's
    "first account" fallback depends on it.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_accounts(self, tenant_id: int) -> List[EmailAccount]:
        stmt = (
            select(EmailAccountModel)
            .where(EmailAccountModel.tenant_id == tenant_id)
            .order_by(EmailAccountModel.created_at.asc(), EmailAccountModel.id.asc())
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise RepositoryException(
                "Failed to list email accounts", {"tenant_id": tenant_id, "error": str(e)}
            ) from e
        return [_to_entity(model) for model in result.scalars().all()]

    async def add_account(self, account: EmailAccount) -> EmailAccount:
        model = EmailAccountModel(
            id=account.id,
            tenant_id=account.tenant_id,
            name=account.name,
            host=account.host,
            port=account.port,
            user=account.user,
            password=account.password,
            from_address=account.from_address,
            secure=account.secure,
            is_default=account.is_default,
            created_at=account.created_at,
        )
        self._session.add(model)
        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException(
                "Failed to create email account", {"tenant_id": account.tenant_id, "error": str(e)}
            ) from e
        return _to_entity(model)

    async def update_default_flags(self, tenant_id: int, accounts: Sequence[EmailAccount]) -> None:
        flags = {account.id: account.is_default for account in accounts}

        stmt = select(EmailAccountModel).where(
            and_(EmailAccountModel.tenant_id == tenant_id, EmailAccountModel.id.in_(list(flags)))
        )
        try:
            result = await self._session.execute(stmt)
            for model in result.scalars().all():
                model.is_default = flags[model.id]
            await self._session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException(
                "Failed to update default email account", {"tenant_id": tenant_id, "error": str(e)}
            ) from e

    async def delete_account(self, tenant_id: int, account_id: str) -> bool:
        try:
            await self._session.execute(
                delete(NotificationMappingModel).where(
                    and_(
                        NotificationMappingModel.tenant_id == tenant_id,
                        NotificationMappingModel.email_account_id == account_id,
                    )
                )
            )
            result = await self._session.execute(
                delete(EmailAccountModel).where(
                    and_(EmailAccountModel.tenant_id == tenant_id, EmailAccountModel.id == account_id)
                )
            )
            await self._session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to delete email account {account_id}", {"error": str(e)}
            ) from e
        return result.rowcount > 0

    async def list_mappings(self, tenant_id: int) -> List[NotificationMapping]:
        stmt = (
            select(NotificationMappingModel)
            .where(NotificationMappingModel.tenant_id == tenant_id)
            .order_by(NotificationMappingModel.id.asc())
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise RepositoryException(
                "Failed to list notification mappings", {"tenant_id": tenant_id, "error": str(e)}
            ) from e

        return [
            NotificationMapping(type=model.notification_type, email_account_id=model.email_account_id)
            for model in result.scalars().all()
        ]

    async def save_mapping(self, tenant_id: int, mapping: NotificationMapping) -> None:
        stmt = select(NotificationMappingModel).where(
            and_(
                NotificationMappingModel.tenant_id == tenant_id,
                NotificationMappingModel.notification_type == mapping.type,
            )
        )
        try:
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                self._session.add(NotificationMappingModel(
                    tenant_id=tenant_id,
                    notification_type=mapping.type,
                    email_account_id=mapping.email_account_id,
                ))
            else:
                model.email_account_id = mapping.email_account_id
            await self._session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException(
                "Failed to save notification mapping",
                {"tenant_id": tenant_id, "type": mapping.type, "error": str(e)}
            ) from e


class SQLAlchemyRecipientDirectory(IRecipientDirectory):
    """Reads notification recipients from the 'users' and 'tenants' tables."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_staff_emails(self, tenant_id: int, roles: Sequence[str]) -> List[str]:
        stmt = (
            select(UserModel.email)
            .where(and_(UserModel.tenant_id == tenant_id, UserModel.role.in_(list(roles))))
            .order_by(UserModel.id)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise RepositoryException(
                "Failed to list notification recipients", {"tenant_id": tenant_id, "error": str(e)}
            ) from e

        return list(dict.fromkeys(email for email in result.scalars().all() if email))

    async def get_tenant_name(self, tenant_id: int) -> Optional[str]:
        try:
            tenant = await self._session.get(TenantModel, tenant_id)
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to load tenant {tenant_id}", {"error": str(e)}) from e
        return tenant.name if tenant else None
