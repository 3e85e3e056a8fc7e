"""
Notifications Infrastructure Layer
==================================

- Models: email_accounts and notification_mappings tables
- Repositories: SQLAlchemy notification settings and recipient directory
- External: SMTP sender and Slack client
"""

from itsm.notifications.infrastructure.models import EmailAccountModel, NotificationMappingModel
from itsm.notifications.infrastructure.repositories import (
    SQLAlchemyNotificationSettingsRepository,
    SQLAlchemyRecipientDirectory,
)
from itsm.notifications.infrastructure.external import (
    CircuitBreaker,
    CircuitState,
    SlackClient,
    SMTPEmailSender,
)

__all__ = [
    "EmailAccountModel",
    "NotificationMappingModel",
    "SQLAlchemyNotificationSettingsRepository",
    "SQLAlchemyRecipientDirectory",
    "CircuitBreaker",
    "CircuitState",
    "SlackClient",
    "SMTPEmailSender",
]
