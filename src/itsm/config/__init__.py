"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="itsm-service", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/itsm",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Assignment ==========
    assignment_policy_path: Path = Field(
        default=Path("assignment_policy.yaml"),
        description="Path to the assignment policy YAML file"
    )
    assignment_policy_watch: bool = Field(
        default=True,
        description="Reload the assignment policy when the file changes"
    )

    # ========== Slack Integration ==========
    slack_bot_token: Optional[str] = Field(
        default=None,
        description="Slack bot token used for chat.postMessage"
    )
    slack_channel_id: Optional[str] = Field(
        default=None,
        description="Slack channel receiving ticket notifications"
    )
    slack_api_url: str = Field(
        default="https://slack.com/api/chat.postMessage",
        description="Slack Web API endpoint for posting messages"
    )
    slack_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for Slack API calls",
        ge=0.1,
        le=30
    )

    # ========== Fallback SMTP account ==========
    # Used only when a tenant has no email account configured at all.
    smtp_host: Optional[str] = Field(default=None, description="Fallback SMTP host")
    smtp_port: int = Field(default=587, description="Fallback SMTP port", ge=1, le=65535)
    smtp_user: str = Field(default="", description="Fallback SMTP username")
    smtp_password: str = Field(default="", description="Fallback SMTP password")
    smtp_from: str = Field(default="noreply@example.com", description="Fallback sender address")
    smtp_secure: bool = Field(default=False, description="Use implicit TLS for fallback SMTP")
    smtp_timeout_seconds: float = Field(default=10.0, description="SMTP socket timeout", gt=0)

    # ========== Notifications ==========
    notification_subject_prefix: str = Field(
        default="[ITSM]",
        description="Prefix for notification email subjects"
    )
    default_tenant_name: str = Field(
        default="IT Service Desk",
        description="Display name used when a tenant has no name"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @property
    def slack_configured(self) -> bool:
        return bool(self.slack_bot_token and self.slack_channel_id)

    @property
    def fallback_smtp_configured(self) -> bool:
        return bool(self.smtp_host)


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class AgentRole(str, Enum):
    """User roles within a tenant."""
    ADMIN = "admin"
    AGENT = "agent"
    USER = "user"


class TicketCategory(str, Enum):
    """The three ticket types that carry an assignee."""
    INCIDENT = "incident"
    SERVICE_REQUEST = "service_request"
    CHANGE_REQUEST = "change_request"


class NotificationType(str, Enum):
    """Notification event types that can be routed to an email account."""
    INCIDENT = "incident"
    SERVICE_REQUEST = "service_request"
    CHANGE_REQUEST = "change_request"
    MONITORING = "monitoring"
    SYSTEM = "system"


class AlertEvent(str, Enum):
    """Monitoring alert lifecycle events that trigger a notification."""
    RAISED = "raised"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class IncidentStatus(str, Enum):
    NEW = "new"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ServiceRequestStatus(str, Enum):
    NEW = "new"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ChangeRequestStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    SCHEDULED = "scheduled"
    IMPLEMENTING = "implementing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    """Ticket priority / severity levels."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ========== Defaults ==========

DEFAULT_ELIGIBLE_ROLES: List[str] = [AgentRole.ADMIN.value, AgentRole.AGENT.value]

# Terminal statuses per category; tickets in these states are not workload.
DEFAULT_CLOSED_STATUSES: Dict[str, List[str]] = {
    TicketCategory.INCIDENT.value: [IncidentStatus.CLOSED.value],
    TicketCategory.SERVICE_REQUEST.value: [
        ServiceRequestStatus.COMPLETED.value,
        ServiceRequestStatus.REJECTED.value,
        ServiceRequestStatus.CANCELLED.value,
    ],
    TicketCategory.CHANGE_REQUEST.value: [
        ChangeRequestStatus.COMPLETED.value,
        ChangeRequestStatus.FAILED.value,
        ChangeRequestStatus.REJECTED.value,
        ChangeRequestStatus.CANCELLED.value,
    ],
}

INITIAL_STATUSES: Dict[str, str] = {
    TicketCategory.INCIDENT.value: IncidentStatus.NEW.value,
    TicketCategory.SERVICE_REQUEST.value: ServiceRequestStatus.NEW.value,
    TicketCategory.CHANGE_REQUEST.value: ChangeRequestStatus.DRAFT.value,
}

TICKET_PREFIXES: Dict[str, str] = {
    TicketCategory.INCIDENT.value: "INC",
    TicketCategory.SERVICE_REQUEST.value: "SRQ",
    TicketCategory.CHANGE_REQUEST.value: "CHG",
}

TICKET_LABELS: Dict[str, str] = {
    TicketCategory.INCIDENT.value: "Incident",
    TicketCategory.SERVICE_REQUEST.value: "Service Request",
    TicketCategory.CHANGE_REQUEST.value: "Change Request",
}

TICKET_CATEGORIES = [c.value for c in TicketCategory]
NOTIFICATION_TYPES = [t.value for t in NotificationType]

# Roles emailed for each alert event; acknowledgements go to admins only.
ALERT_AUDIENCE: Dict[str, List[str]] = {
    AlertEvent.RAISED.value: [AgentRole.ADMIN.value, AgentRole.AGENT.value],
    AlertEvent.ACKNOWLEDGED.value: [AgentRole.ADMIN.value],
    AlertEvent.RESOLVED.value: [AgentRole.ADMIN.value, AgentRole.AGENT.value],
}
