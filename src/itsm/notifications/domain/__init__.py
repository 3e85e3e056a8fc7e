"""
Notifications Domain Layer
==========================

Contains:
- Entities: EmailAccount, NotificationMapping
- Value Objects: EmailTransportConfig and the routable notifications
  (TicketNotification, AlertNotification, SystemNotification)
- Domain Services: NotificationRouter

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from itsm.notifications.domain.entities import EmailAccount, NotificationMapping
from itsm.notifications.domain.router import NotificationRouter
from itsm.notifications.domain.value_objects import (
    AlertNotification,
    EmailTransportConfig,
    RoutableNotification,
    SystemNotification,
    TicketNotification,
)

__all__ = [
    "EmailAccount",
    "NotificationMapping",
    "NotificationRouter",
    "EmailTransportConfig",
    "RoutableNotification",
    "TicketNotification",
    "AlertNotification",
    "SystemNotification",
]
