"""
Notification Value Objects
===========================

Immutable values describing how and what to send.

Every outbound message is a RoutableNotification: its ``notification_type``
picks the email account, and it renders its own subject and HTML body.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from html import escape
from typing import Any, Mapping, Optional

from itsm.config import (
    AlertEvent,
    AlertSeverity,
    NotificationType,
    TICKET_LABELS,
    TICKET_PREFIXES,
)


def _with_prefix(prefix: str, subject: str) -> str:
    return f"{prefix} {subject}" if prefix else subject


@dataclass(frozen=True)
class EmailTransportConfig:
    """SMTP connection parameters for one outbound account."""
    host: str
    port: int
    user: str
    password: str
    from_address: str
    secure: bool = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.user)


class RoutableNotification(ABC):
    """A message that can be routed to an email account by its type."""

    @property
    @abstractmethod
    def notification_type(self) -> str:
        """One of NOTIFICATION_TYPES."""

    @property
    @abstractmethod
    def reference(self) -> str:
        """Short identifier used in logs."""

    @abstractmethod
    def subject(self, prefix: str = "") -> str:
        """Email subject line."""

    @abstractmethod
    def render_html(self) -> str:
        """Email body."""


@dataclass(frozen=True)
class TicketNotification(RoutableNotification):
    """
    A "new ticket" message, rendered for email and Slack.

    ``created_by`` and ``assigned_to`` are display strings; ``None`` means
    system-created and unassigned respectively.
    """
    ticket_type: str
    ticket_id: int
    title: str
    description: str
    status: str
    priority: str
    tenant_name: str
    created_by: Optional[str] = None
    assigned_to: Optional[str] = None

    @property
    def notification_type(self) -> str:
        return self.ticket_type

    @property
    def label(self) -> str:
        return TICKET_LABELS.get(self.ticket_type, self.ticket_type.replace("_", " ").title())

    @property
    def reference(self) -> str:
        """Human ticket reference, e.g. ``INC-12``."""
        prefix = TICKET_PREFIXES.get(self.ticket_type, "TKT")
        return f"{prefix}-{self.ticket_id}"

    def subject(self, prefix: str = "") -> str:
        action = "Assigned" if self.assigned_to else "Reported"
        return _with_prefix(prefix, f"New {self.label} {action}: {self.title}")

    def render_html(self) -> str:
        label = escape(self.label)
        assigned_row = (
            f'<p style="margin: 5px 0;"><strong>Assigned To:</strong> {escape(self.assigned_to)}</p>'
            if self.assigned_to else ""
        )

        return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background-color: #3b82f6; color: white; padding: 20px; text-align: center;">
    <h1 style="margin: 0;">{escape(self.tenant_name)} - New {label}</h1>
  </div>
  <div style="padding: 20px; border: 1px solid #e5e7eb; border-top: none;">
    <h2 style="color: #1f2937; margin-top: 0;">{escape(self.title)}</h2>
    <div style="margin-bottom: 20px;">
      <p style="margin: 5px 0;"><strong>ID:</strong> #{self.reference}</p>
      <p style="margin: 5px 0;"><strong>Status:</strong> {escape(self.status)}</p>
      <p style="margin: 5px 0;"><strong>Priority:</strong> {escape(self.priority)}</p>
      <p style="margin: 5px 0;"><strong>Created By:</strong> {escape(self.created_by or "System")}</p>
      {assigned_row}
    </div>
    <div style="background-color: #f9fafb; padding: 15px; border-radius: 5px; margin-bottom: 20px;">
      <h3 style="margin-top: 0; color: #4b5563;">Description:</h3>
      <p style="margin-bottom: 0;">{escape(self.description)}</p>
    </div>
  </div>
  <div style="background-color: #f3f4f6; padding: 15px; text-align: center; font-size: 12px; color: #6b7280;">
    <p style="margin: 0;">This is an automated message from your IT Service Management System.</p>
    <p style="margin: 5px 0;">Please do not reply directly to this email.</p>
  </div>
</div>
"""


SEVERITY_COLORS = {
    AlertSeverity.CRITICAL.value: "#d9534f",
    AlertSeverity.WARNING.value: "#f0ad4e",
    AlertSeverity.INFO.value: "#5bc0de",
}


@dataclass(frozen=True)
class AlertNotification(RoutableNotification):
    """
    A monitoring alert lifecycle message: raised, acknowledged or resolved.

    ``actor`` is the display name of whoever acknowledged or resolved the
    alert. ``metrics`` is shown only on the raised message.
    """
    alert_id: int
    event: str
    title: str
    description: str
    severity: str
    source: str
    actor: Optional[str] = None
    metrics: Optional[Mapping[str, Any]] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def notification_type(self) -> str:
        return NotificationType.MONITORING.value

    @property
    def reference(self) -> str:
        return f"ALERT-{self.alert_id}"

    def subject(self, prefix: str = "") -> str:
        if self.event == AlertEvent.ACKNOWLEDGED.value:
            return _with_prefix(prefix, f"Alert Acknowledged: {self.title}")
        if self.event == AlertEvent.RESOLVED.value:
            return _with_prefix(prefix, f"Alert Resolved: {self.title}")
        return _with_prefix(prefix, f"{self.severity.upper()} Monitoring Alert: {self.title}")

    def render_html(self) -> str:
        occurred = self.occurred_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
        origin = f"{escape(self.severity.upper())} from {escape(self.source)}"

        if self.event == AlertEvent.ACKNOWLEDGED.value:
            color, heading = "#5bc0de", "Alert Acknowledged"
            rows = [
                ("Original Alert", origin),
                ("Description", escape(self.description)),
                ("Acknowledged By", escape(self.actor or "Unknown User")),
            ]
            footer = "The alert has been acknowledged and is being addressed by the team."
        elif self.event == AlertEvent.RESOLVED.value:
            color, heading = "#5cb85c", "Alert Resolved"
            rows = [
                ("Original Alert", origin),
                ("Description", escape(self.description)),
                ("Resolved By", escape(self.actor or "Unknown User")),
            ]
            footer = "The alert has been resolved. No further action is needed."
        else:
            color = SEVERITY_COLORS.get(self.severity.lower(), SEVERITY_COLORS[AlertSeverity.INFO.value])
            heading = f"{escape(self.severity.upper())} Alert"
            rows = [
                ("Source", escape(self.source)),
                ("Description", escape(self.description)),
            ]
            if self.metrics:
                metrics = ", ".join(f"{key}={value}" for key, value in self.metrics.items())
                rows.append(("Metrics", escape(metrics)))
            footer = "Please log in to the service desk to acknowledge or resolve this alert."

        rows.append(("Time", escape(occurred)))
        body = "\n".join(f"  <p><strong>{label}:</strong> {value}</p>" for label, value in rows)

        return f"""
<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: {color};">{heading}: {escape(self.title)}</h2>
{body}
  <hr>
  <p>{footer}</p>
</div>
"""


@dataclass(frozen=True)
class SystemNotification(RoutableNotification):
    """Free-form message routed as ``system`` (or any other non-ticket type)."""
    title: str
    message: str
    tenant_name: str
    kind: str = NotificationType.SYSTEM.value

    @property
    def notification_type(self) -> str:
        return self.kind

    @property
    def reference(self) -> str:
        return self.kind.upper()

    def subject(self, prefix: str = "") -> str:
        return _with_prefix(prefix, self.title)

    def render_html(self) -> str:
        return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #1f2937;">{escape(self.tenant_name)}: {escape(self.title)}</h2>
  <p>{escape(self.message)}</p>
  <hr>
  <p style="font-size: 12px; color: #6b7280;">This is an automated message from your IT Service Management System.</p>
</div>
"""
