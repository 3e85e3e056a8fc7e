"""
Notification Application Services
==================================

Settings management over the Notification Router, and delivery of ticket,
monitoring and system notifications through the resolved account and Slack.

Following SOLID principles:
- Single Responsibility: settings and delivery are separate services
- Dependency Inversion: depends on repository and sender interfaces
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from itsm.config import ALERT_AUDIENCE, NOTIFICATION_TYPES, TICKET_CATEGORIES, settings
from itsm.core import (
    NotificationDeliveryException,
    RepositoryException,
    ResourceNotFoundException,
    ValidationException,
)
from itsm.notifications.application.dto import EmailAccountCreate
from itsm.notifications.domain import (
    AlertNotification,
    EmailAccount,
    EmailTransportConfig,
    NotificationMapping,
    NotificationRouter,
    RoutableNotification,
    SystemNotification,
    TicketNotification,
)
from itsm.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class INotificationSettingsRepository(ABC):
    """Interface for a tenant's email accounts and notification mappings."""

    @abstractmethod
    async def list_accounts(self, tenant_id: int) -> List[EmailAccount]:
        """List accounts ordered by creation time, then id."""

    @abstractmethod
    async def add_account(self, account: EmailAccount) -> EmailAccount:
        """Persist a new account."""

    @abstractmethod
    async def update_default_flags(self, tenant_id: int, accounts: Sequence[EmailAccount]) -> None:
        """Persist the ``is_default`` flag of each given account."""

    @abstractmethod
    async def delete_account(self, tenant_id: int, account_id: str) -> bool:
        """Delete an account and every mapping pointing at it."""

    @abstractmethod
    async def list_mappings(self, tenant_id: int) -> List[NotificationMapping]:
        """List notification mappings of a tenant."""

    @abstractmethod
    async def save_mapping(self, tenant_id: int, mapping: NotificationMapping) -> None:
        """Insert or replace the mapping for ``mapping.type``."""


class IEmailSender(ABC):
    """Interface for outbound email delivery."""

    @abstractmethod
    async def send(
        self,
        config: EmailTransportConfig,
        recipients: Sequence[str],
        subject: str,
        html: str
    ) -> None:
        """Send one message. Raises NotificationDeliveryException on failure."""


class ISlackNotifier(ABC):
    """Interface for Slack channel notifications."""

    @abstractmethod
    async def post_ticket(self, notification: TicketNotification) -> bool:
        """Post a ticket notification. Returns False when not sent."""


class IRecipientDirectory(ABC):
    """Interface for looking up who gets notified."""

    @abstractmethod
    async def list_staff_emails(self, tenant_id: int, roles: Sequence[str]) -> List[str]:
        """Distinct non-empty emails of the tenant's users holding any of ``roles``."""

    @abstractmethod
    async def get_tenant_name(self, tenant_id: int) -> Optional[str]:
        """Tenant display name, None if the tenant is unknown."""


# ========== Application Services ==========

class NotificationSettingsService:
    """
    Persistent notification settings for one tenant at a time.

    Mapping and default-flag changes go through NotificationRouter so the
    stored collections follow the same rules as the in-memory ones.
    """

    def __init__(self, repository: INotificationSettingsRepository):
        self._repo = repository

    async def list_accounts(self, tenant_id: int) -> List[EmailAccount]:
        return await self._repo.list_accounts(tenant_id)

    async def list_mappings(self, tenant_id: int) -> List[NotificationMapping]:
        return await self._repo.list_mappings(tenant_id)

    async def create_account(self, tenant_id: int, data: EmailAccountCreate) -> EmailAccount:
        """
        Add an email account.

        The tenant's first account becomes the default. Creating an account
        with ``is_default`` moves the default flag to it.
        """
        existing = await self._repo.list_accounts(tenant_id)

        account = EmailAccount(
            id=str(uuid.uuid4()),
            name=data.name,
            host=data.host,
            port=data.port,
            user=data.user,
            password=data.password,
            from_address=data.from_address,
            secure=data.secure,
            is_default=False,
            tenant_id=tenant_id,
            created_at=datetime.now(timezone.utc),
        )
        account = await self._repo.add_account(account)

        if data.is_default or not existing:
            accounts = NotificationRouter.set_default_account(account.id, existing + [account])
            await self._repo.update_default_flags(tenant_id, accounts)
            account = next(a for a in accounts if a.id == account.id)

        logger.info(
            "Email account created",
            extra={"tenant_id": tenant_id, "account_id": account.id, "is_default": account.is_default}
        )
        return account

    async def delete_account(self, tenant_id: int, account_id: str) -> None:
        """
        Delete an account and its mappings.

        Deleting the default account promotes the oldest remaining account.
        """
        deleted = await self._repo.delete_account(tenant_id, account_id)
        if not deleted:
            raise ResourceNotFoundException("EmailAccount", account_id)

        remaining = await self._repo.list_accounts(tenant_id)
        if remaining and not any(a.is_default for a in remaining):
            promoted = NotificationRouter.set_default_account(remaining[0].id, remaining)
            await self._repo.update_default_flags(tenant_id, promoted)
            logger.info(
                "Default email account reassigned",
                extra={"tenant_id": tenant_id, "account_id": remaining[0].id}
            )

        logger.info("Email account deleted", extra={"tenant_id": tenant_id, "account_id": account_id})

    async def upsert_mapping(
        self,
        tenant_id: int,
        notification_type: str,
        email_account_id: str
    ) -> List[NotificationMapping]:
        """Route a notification type to an existing account of the tenant."""
        if notification_type not in NOTIFICATION_TYPES:
            raise ValidationException(
                f"Unknown notification type: {notification_type}",
                {"allowed": NOTIFICATION_TYPES}
            )

        accounts = await self._repo.list_accounts(tenant_id)
        if not any(a.id == email_account_id for a in accounts):
            raise ResourceNotFoundException("EmailAccount", email_account_id)

        mappings = NotificationRouter.upsert_mapping(
            notification_type, email_account_id, await self._repo.list_mappings(tenant_id)
        )
        await self._repo.save_mapping(
            tenant_id, NotificationMapping(type=notification_type, email_account_id=email_account_id)
        )

        logger.info(
            "Notification mapping updated",
            extra={"tenant_id": tenant_id, "notification_type": notification_type, "account_id": email_account_id}
        )
        return mappings

    async def set_default_account(self, tenant_id: int, account_id: str) -> List[EmailAccount]:
        accounts = await self._repo.list_accounts(tenant_id)
        if not any(a.id == account_id for a in accounts):
            raise ResourceNotFoundException("EmailAccount", account_id)

        updated = NotificationRouter.set_default_account(account_id, accounts)
        await self._repo.update_default_flags(tenant_id, updated)
        return updated

    async def resolve_account(self, tenant_id: int, notification_type: str) -> Optional[EmailAccount]:
        accounts = await self._repo.list_accounts(tenant_id)
        mappings = await self._repo.list_mappings(tenant_id)
        return NotificationRouter.resolve_account(notification_type, accounts, mappings)


@dataclass
class DispatchResult:
    """Outcome of one notification dispatch."""
    email_sent: bool = False
    slack_sent: bool = False
    account_id: Optional[str] = None
    recipients: List[str] = field(default_factory=list)
    skipped_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "email_sent": self.email_sent,
            "slack_sent": self.slack_sent,
            "account_id": self.account_id,
            "recipients": list(self.recipients),
            "skipped_reason": self.skipped_reason,
        }


class NotificationDispatcher:
    """
    Sends a notification by email and, for tickets, to Slack.

    The email account is resolved from the notification's type. Delivery
    failures are logged and reported in the DispatchResult; they are never
    raised to the caller.
    """

    def __init__(
        self,
        settings_repository: INotificationSettingsRepository,
        email_sender: IEmailSender,
        slack_notifier: Optional[ISlackNotifier] = None,
        fallback_config: Optional[EmailTransportConfig] = None,
        subject_prefix: str = ""
    ):
        self._repo = settings_repository
        self._sender = email_sender
        self._slack = slack_notifier
        self._fallback = fallback_config
        self._subject_prefix = subject_prefix

    @property
    def slack_enabled(self) -> bool:
        return self._slack is not None

    async def dispatch(
        self,
        tenant_id: int,
        notification: RoutableNotification,
        recipients: Sequence[str]
    ) -> DispatchResult:
        result = DispatchResult(recipients=_distinct(recipients))

        await self._send_email(tenant_id, notification, result)

        if self._slack is not None and isinstance(notification, TicketNotification):
            await self._post_slack(tenant_id, notification, result)

        return result

    async def send_test(
        self,
        tenant_id: int,
        notification: RoutableNotification,
        channel: str,
        recipient: Optional[str] = None
    ) -> DispatchResult:
        """
        Deliver a sample notification over a single channel.

        Raises:
            ValidationException: channel unavailable or missing recipient
        """
        if channel == "slack":
            if self._slack is None:
                raise ValidationException("Slack is not configured")
            if not isinstance(notification, TicketNotification):
                raise ValidationException(
                    "Slack test notifications are only available for ticket types",
                    {"type": notification.notification_type}
                )
            result = DispatchResult()
            await self._post_slack(tenant_id, notification, result)
            return result

        if channel != "email":
            raise ValidationException(f"Unsupported notification channel: {channel}")
        if not recipient:
            raise ValidationException("A recipient is required for email test notifications")

        result = DispatchResult(recipients=[recipient])
        await self._send_email(tenant_id, notification, result)
        return result

    async def _post_slack(
        self,
        tenant_id: int,
        notification: TicketNotification,
        result: DispatchResult
    ) -> None:
        try:
            result.slack_sent = await self._slack.post_ticket(notification)
        except Exception as e:
            logger.error(
                "Slack notification failed",
                extra={"tenant_id": tenant_id, "notification": notification.reference, "error": str(e)}
            )

    async def _send_email(
        self,
        tenant_id: int,
        notification: RoutableNotification,
        result: DispatchResult
    ) -> None:
        if not result.recipients:
            result.skipped_reason = "no_recipients"
            logger.info("No email recipients, skipping", extra={"notification": notification.reference})
            return

        try:
            accounts = await self._repo.list_accounts(tenant_id)
            mappings = await self._repo.list_mappings(tenant_id)
        except Exception as e:
            logger.error(
                "Failed to load notification settings",
                extra={"tenant_id": tenant_id, "error": str(e)}
            )
            accounts, mappings = [], []

        account = NotificationRouter.resolve_account(notification.notification_type, accounts, mappings)

        if account is not None:
            config = account.to_transport_config()
            result.account_id = account.id
        elif self._fallback is not None:
            config = self._fallback
        else:
            result.skipped_reason = "no_email_account"
            logger.warning(
                "No email account configured, skipping email",
                extra={"tenant_id": tenant_id, "notification": notification.reference}
            )
            return

        try:
            await self._sender.send(
                config,
                result.recipients,
                notification.subject(self._subject_prefix),
                notification.render_html()
            )
            result.email_sent = True
            logger.info(
                "Notification email sent",
                extra={
                    "tenant_id": tenant_id,
                    "notification": notification.reference,
                    "notification_type": notification.notification_type,
                    "account_id": result.account_id,
                    "recipient_count": len(result.recipients)
                }
            )
        except NotificationDeliveryException as e:
            result.skipped_reason = "delivery_failed"
            logger.error(
                "Notification email failed",
                extra={"tenant_id": tenant_id, "notification": notification.reference, "error": e.message}
            )


def _distinct(recipients: Sequence[Optional[str]]) -> List[str]:
    """Non-empty recipients, first occurrence order."""
    return list(dict.fromkeys(r for r in recipients if r))


def build_test_notification(
    notification_type: str,
    tenant_name: str,
    requested_by: Optional[str] = None
) -> RoutableNotification:
    """Sample notification for checking delivery of one notification type."""
    if notification_type in TICKET_CATEGORIES:
        return TicketNotification(
            ticket_type=notification_type,
            ticket_id=0,
            title=f"Test {notification_type} notification",
            description="This is a test notification to verify delivery is working correctly.",
            status="new",
            priority="medium",
            tenant_name=tenant_name,
            created_by=requested_by,
        )
    return SystemNotification(
        title=f"Test {notification_type} notification",
        message="This is a test notification to verify delivery is working correctly.",
        tenant_name=tenant_name,
        kind=notification_type,
    )


class NotificationTestService:
    """Sends sample notifications so administrators can verify delivery."""

    def __init__(self, dispatcher: NotificationDispatcher, directory: IRecipientDirectory):
        self._dispatcher = dispatcher
        self._directory = directory

    async def send_test(
        self,
        tenant_id: int,
        notification_type: str,
        channel: str,
        recipient: Optional[str] = None,
        requested_by: Optional[str] = None
    ) -> DispatchResult:
        tenant_name = await self._directory.get_tenant_name(tenant_id)
        notification = build_test_notification(
            notification_type, tenant_name or settings.default_tenant_name, requested_by
        )
        result = await self._dispatcher.send_test(tenant_id, notification, channel, recipient)

        logger.info(
            "Test notification processed",
            extra={
                "tenant_id": tenant_id,
                "notification_type": notification_type,
                "channel": channel,
                "email_sent": result.email_sent,
                "slack_sent": result.slack_sent,
            }
        )
        return result


class AlertNotificationService:
    """
    Emails monitoring alert lifecycle events.

    Raised and resolved alerts go to admins and agents; acknowledgements go
    to admins only.
    """

    def __init__(self, dispatcher: NotificationDispatcher, directory: IRecipientDirectory):
        self._dispatcher = dispatcher
        self._directory = directory

    async def notify(self, tenant_id: int, alert: AlertNotification) -> DispatchResult:
        roles = ALERT_AUDIENCE.get(alert.event)
        if roles is None:
            raise ValidationException(
                f"Unknown alert event: {alert.event}",
                {"allowed": list(ALERT_AUDIENCE)}
            )

        try:
            recipients = await self._directory.list_staff_emails(tenant_id, roles)
        except RepositoryException as e:
            logger.error(
                "Failed to load alert recipients",
                extra={"tenant_id": tenant_id, "alert": alert.reference, "error": e.message}
            )
            recipients = []

        return await self._dispatcher.dispatch(tenant_id, alert, recipients)
