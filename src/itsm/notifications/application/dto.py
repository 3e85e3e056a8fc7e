"""
Notification Application DTOs
==============================

Pydantic models for the notification settings API. Passwords are accepted
on input and never serialized back.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from itsm.notifications.domain import EmailAccount, NotificationMapping


NotificationTypeStr = Literal["incident", "service_request", "change_request", "monitoring", "system"]
AlertEventStr = Literal["raised", "acknowledged", "resolved"]
ChannelStr = Literal["email", "slack"]


# ========== Request DTOs ==========

class EmailAccountCreate(BaseModel):
    """Request model for adding an email account."""
    name: str = Field(..., min_length=1, description="Display name")
    host: str = Field(..., min_length=1, description="SMTP host")
    port: int = Field(default=587, ge=1, le=65535, description="SMTP port")
    user: str = Field(default="", description="SMTP username")
    password: str = Field(default="", description="SMTP password")
    from_address: str = Field(..., min_length=3, description="Sender address")
    secure: bool = Field(default=False, description="Use implicit TLS")
    is_default: bool = Field(default=False, description="Make this the tenant default")


class MappingUpdateRequest(BaseModel):
    """Request model for routing a notification type."""
    email_account_id: str = Field(..., min_length=1)


class AlertEventRequest(BaseModel):
    """Request model for notifying a monitoring alert event."""
    alert_id: int = Field(..., ge=1)
    event: AlertEventStr = Field(..., description="raised, acknowledged or resolved")
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(default="")
    severity: Literal["critical", "warning", "info"] = Field(default="warning")
    source: str = Field(..., min_length=1, description="Monitoring source, e.g. a host or check name")
    actor: Optional[str] = Field(None, description="Who acknowledged or resolved the alert")
    metrics: Optional[Dict[str, Any]] = Field(None, description="Metric values shown on raised alerts")


class DeliveryCheckRequest(BaseModel):
    """Request model for sending a sample notification."""
    type: NotificationTypeStr
    channel: ChannelStr
    recipient: Optional[str] = Field(None, min_length=3, description="Email address; required for the email channel")
    requested_by: Optional[str] = Field(None, description="Display name shown as the creator")


# ========== Response DTOs ==========

class EmailAccountResponse(BaseModel):
    """Email account without its password."""
    id: str
    name: str
    host: str
    port: int
    user: str
    from_address: str
    secure: bool
    is_default: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, account: EmailAccount) -> "EmailAccountResponse":
        return cls(
            id=account.id,
            name=account.name,
            host=account.host,
            port=account.port,
            user=account.user,
            from_address=account.from_address,
            secure=account.secure,
            is_default=account.is_default,
            created_at=account.created_at,
        )


class NotificationMappingResponse(BaseModel):
    type: NotificationTypeStr
    email_account_id: str

    @classmethod
    def from_entity(cls, mapping: NotificationMapping) -> "NotificationMappingResponse":
        return cls(type=mapping.type, email_account_id=mapping.email_account_id)


class ResolvedAccountResponse(BaseModel):
    """Result of resolving the sending account for a notification type."""
    type: NotificationTypeStr
    account: Optional[EmailAccountResponse] = Field(
        None, description="Resolved account, null when the tenant has none"
    )


class DispatchResultResponse(BaseModel):
    email_sent: bool = False
    slack_sent: bool = False
    account_id: Optional[str] = None
    recipients: List[str] = Field(default_factory=list)
    skipped_reason: Optional[str] = None


class DeliveryCheckResponse(BaseModel):
    success: bool
    message: str
    result: DispatchResultResponse


class SlackStatus(BaseModel):
    configured: bool
    bot_token_configured: bool
    channel_id_configured: bool


class EmailStatus(BaseModel):
    configured: bool = Field(..., description="An account or the fallback SMTP server is available")
    accounts: int
    mappings: int
    default_account_id: Optional[str] = None
    fallback_configured: bool


class NotificationStatusResponse(BaseModel):
    """Which delivery channels are usable for a tenant. Never includes secrets."""
    slack: SlackStatus
    email: EmailStatus
