"""
Notification Domain Entities
=============================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from itsm.notifications.domain.value_objects import EmailTransportConfig


@dataclass
class EmailAccount:
    """
    An outbound SMTP account configured for a tenant.

    At most one account per tenant is flagged ``is_default``.
    """

    id: str
    name: str
    host: str
    port: int
    user: str
    password: str
    from_address: str
    secure: bool = False
    is_default: bool = False
    tenant_id: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_transport_config(self) -> EmailTransportConfig:
        return EmailTransportConfig(
            host=self.host,
            port=int(self.port),
            user=self.user,
            password=self.password,
            from_address=self.from_address,
            secure=self.secure,
        )


@dataclass(frozen=True)
class NotificationMapping:
    """Routes one notification type to one email account."""
    type: str
    email_account_id: str
