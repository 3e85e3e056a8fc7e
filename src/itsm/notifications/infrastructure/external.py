"""
Notification External Service Adapters
=======================================

- SlackClient: Slack Web API (chat.postMessage) with retry and circuit breaker
- SMTPEmailSender: outbound email over smtplib
"""

import asyncio
import smtplib
import ssl
import time
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional, Sequence

import httpx

from itsm.config import settings
from itsm.core import NotificationDeliveryException
from itsm.notifications.application import IEmailSender, ISlackNotifier
from itsm.notifications.domain import EmailTransportConfig, TicketNotification
from itsm.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


TICKET_STYLES: Dict[str, Dict[str, str]] = {
    "incident": {"text": "🚨 Incident", "color": "#E53E3E"},
    "service_request": {"text": "🔧 Service Request", "color": "#3182CE"},
    "change_request": {"text": "📝 Change Request", "color": "#805AD5"},
}

PRIORITY_INDICATORS: Dict[str, str] = {
    "critical": "🔴 Critical",
    "high": "🟠 High",
    "medium": "🟡 Medium",
    "low": "🟢 Low",
}

# Block Kit text limits
HEADER_TEXT_LIMIT = 150
SECTION_TEXT_LIMIT = 3000

# Slack errors that retrying cannot fix
PERMANENT_SLACK_ERRORS = frozenset({
    "invalid_auth",
    "not_authed",
    "account_inactive",
    "token_revoked",
    "missing_scope",
    "channel_not_found",
    "not_in_channel",
    "is_archived",
    "invalid_blocks",
    "msg_too_long",
})

# Rejections of a single message; not counted by the circuit breaker
MESSAGE_SLACK_ERRORS = frozenset({"invalid_blocks", "msg_too_long"})


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class SlackClient(ISlackNotifier):
    """
    Slack Web API client with circuit breaker and retry logic.

    Posts "new ticket" messages with:
    - Circuit breaker to prevent cascade failures
    - Exponential backoff retry
    - Timeout handling

    Slack answers HTTP 200 with ``{"ok": false}`` for API errors, so the
    body is checked as well as the status.
    """

    def __init__(
        self,
        bot_token: Optional[str] = None,
        channel_id: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._bot_token = bot_token if bot_token is not None else settings.slack_bot_token
        self._channel_id = channel_id if channel_id is not None else settings.slack_channel_id
        self._api_url = api_url or settings.slack_api_url
        self._timeout = timeout or settings.slack_timeout_seconds
        self._retry_delay = retry_delay
        self._transport = transport
        self._circuit_breaker = CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60
        )
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self._bot_token and self._channel_id)

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport
            )
        return self._http_client

    def build_message(self, notification: TicketNotification) -> Dict[str, Any]:
        """Build Slack Block Kit message."""
        style = TICKET_STYLES.get(
            notification.ticket_type,
            {"text": notification.label, "color": "#718096"}
        )
        priority_text = PRIORITY_INDICATORS.get(
            notification.priority.lower(), f"⚪ {notification.priority}"
        )

        context = f"Created by {notification.created_by or 'System'} | Tenant: {notification.tenant_name}"

        return {
            "channel": self._channel_id,
            "text": f"New {style['text']}: {notification.title}",
            "blocks": [
                {
                    "type": "header",
                    "text": {
                        "type": "plain_text",
                        "text": truncate(
                            f"{style['text']} {notification.reference}: {notification.title}",
                            HEADER_TEXT_LIMIT
                        ),
                        "emoji": True
                    }
                },
                {
                    "type": "section",
                    "fields": [
                        {"type": "mrkdwn", "text": f"*ID:*\n{notification.reference}"},
                        {"type": "mrkdwn", "text": f"*Status:*\n{notification.status}"},
                        {"type": "mrkdwn", "text": f"*Priority:*\n{priority_text}"},
                        {"type": "mrkdwn", "text": f"*Assigned To:*\n{notification.assigned_to or 'Unassigned'}"}
                    ]
                }
            ],
            "attachments": [
                {
                    "color": style["color"],
                    "blocks": [
                        {
                            "type": "section",
                            "text": {
                                "type": "mrkdwn",
                                "text": truncate(f"*Description:*\n{notification.description}", SECTION_TEXT_LIMIT)
                            }
                        },
                        {
                            "type": "context",
                            "elements": [{"type": "mrkdwn", "text": context}]
                        }
                    ]
                }
            ]
        }

    async def post_ticket(
        self,
        notification: TicketNotification,
        max_retries: int = 3
    ) -> bool:
        """
        Post a ticket notification to the configured channel.

        Returns:
            True if sent successfully, False otherwise
        """
        if not self.is_configured:
            logger.debug("Slack not configured, skipping notification")
            return False

        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, skipping Slack notification",
                extra={"ticket": notification.reference}
            )
            return False

        message = self.build_message(notification)
        headers = {"Authorization": f"Bearer {self._bot_token}"}

        for attempt in range(max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._api_url, json=message, headers=headers)

                if response.status_code == 200:
                    body = response.json()
                    if body.get("ok"):
                        self._circuit_breaker.record_success()
                        logger.info(
                            "Slack notification sent",
                            extra={"ticket": notification.reference, "ts": body.get("ts")}
                        )
                        return True

                    error = body.get("error")
                    if error in PERMANENT_SLACK_ERRORS:
                        logger.error(
                            "Slack API rejected notification",
                            extra={"error": error, "ticket": notification.reference}
                        )
                        if error not in MESSAGE_SLACK_ERRORS:
                            self._circuit_breaker.record_failure()
                        return False

                    logger.warning(
                        "Slack API returned an error",
                        extra={"error": error, "attempt": attempt + 1}
                    )
                else:
                    logger.warning(
                        "Slack API returned non-200",
                        extra={"status_code": response.status_code, "attempt": attempt + 1}
                    )

            except (httpx.HTTPError, ValueError) as e:
                logger.error(
                    "Slack notification failed",
                    extra={
                        "error": str(e),
                        "attempt": attempt + 1,
                        "ticket": notification.reference
                    }
                )

            if attempt < max_retries - 1:
                await asyncio.sleep(self._retry_delay * (2 ** attempt))

        self._circuit_breaker.record_failure()
        return False

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class SMTPEmailSender(IEmailSender):
    """
    Email delivery over SMTP.

    smtplib is blocking, so each send runs in a worker thread. Implicit TLS
    when the account is ``secure``, otherwise STARTTLS when the server
    offers it.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._timeout = timeout or settings.smtp_timeout_seconds

    def _build_message(
        self,
        config: EmailTransportConfig,
        recipients: Sequence[str],
        subject: str,
        html: str
    ) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = config.from_address
        msg["To"] = ", ".join(recipients)
        msg.attach(MIMEText(html, "html"))
        return msg

    def _send_sync(self, config: EmailTransportConfig, msg: MIMEMultipart) -> None:
        context = ssl.create_default_context()

        if config.secure:
            smtp = smtplib.SMTP_SSL(config.host, config.port, timeout=self._timeout, context=context)
        else:
            smtp = smtplib.SMTP(config.host, config.port, timeout=self._timeout)

        with smtp:
            if not config.secure:
                smtp.ehlo()
                # Plain relays (port 25, local MTAs) may not offer STARTTLS.
                if smtp.has_extn("starttls"):
                    smtp.starttls(context=context)
                    smtp.ehlo()
            if config.has_credentials:
                smtp.login(config.user, config.password)
            smtp.send_message(msg)

    async def send(
        self,
        config: EmailTransportConfig,
        recipients: Sequence[str],
        subject: str,
        html: str
    ) -> None:
        if not recipients:
            return

        msg = self._build_message(config, recipients, subject, html)
        try:
            await asyncio.to_thread(self._send_sync, config, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationDeliveryException(
                "email", str(e), {"host": config.host, "port": config.port}
            ) from e
