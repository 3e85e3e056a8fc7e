"""
Notifications Application Layer
===============================

Contains:
- Services: NotificationSettingsService, NotificationDispatcher,
  AlertNotificationService, NotificationTestService
- Interfaces: settings repository, recipient directory, email sender, Slack notifier
- DTOs: Data transfer objects for API serialization
"""

from itsm.notifications.application.dto import (
    EmailAccountCreate,
    MappingUpdateRequest,
    AlertEventRequest,
    DeliveryCheckRequest,
    EmailAccountResponse,
    NotificationMappingResponse,
    ResolvedAccountResponse,
    DispatchResultResponse,
    DeliveryCheckResponse,
    NotificationStatusResponse,
)
from itsm.notifications.application.services import (
    NotificationSettingsService,
    NotificationDispatcher,
    NotificationTestService,
    AlertNotificationService,
    DispatchResult,
    build_test_notification,
    INotificationSettingsRepository,
    IRecipientDirectory,
    IEmailSender,
    ISlackNotifier,
)

__all__ = [
    # DTOs
    "EmailAccountCreate",
    "MappingUpdateRequest",
    "AlertEventRequest",
    "DeliveryCheckRequest",
    "EmailAccountResponse",
    "NotificationMappingResponse",
    "ResolvedAccountResponse",
    "DispatchResultResponse",
    "DeliveryCheckResponse",
    "NotificationStatusResponse",
    # Services
    "NotificationSettingsService",
    "NotificationDispatcher",
    "NotificationTestService",
    "AlertNotificationService",
    "DispatchResult",
    "build_test_notification",
    # Interfaces
    "INotificationSettingsRepository",
    "IRecipientDirectory",
    "IEmailSender",
    "ISlackNotifier",
]
