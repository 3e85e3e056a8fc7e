"""Tests for monitoring alert, system and test-delivery notifications."""

from datetime import datetime, timezone

import pytest

from itsm.assignment.domain import Agent
from itsm.core import ValidationException
from itsm.notifications.application import (
    AlertNotificationService,
    NotificationDispatcher,
    NotificationTestService,
    build_test_notification,
)
from itsm.notifications.domain import (
    AlertNotification,
    EmailAccount,
    NotificationMapping,
    SystemNotification,
    TicketNotification,
)

from tests.fakes import (
    FakeEmailSender,
    FakeRecipientDirectory,
    FakeSlackNotifier,
    InMemoryNotificationSettingsRepository,
)

OCCURRED = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)

STAFF = [
    Agent(id=101, tenant_id=1, role="admin", username="alice", email="alice@acme.test"),
    Agent(id=102, tenant_id=1, role="agent", username="bob", email="bob@acme.test"),
    Agent(id=103, tenant_id=1, role="user", username="carol", email="carol@acme.test"),
    Agent(id=201, tenant_id=2, role="admin", username="dave", email="dave@other.test"),
]


def account(account_id: str, host: str, is_default: bool = False, minutes: int = 0) -> EmailAccount:
    return EmailAccount(
        id=account_id,
        name=account_id,
        host=host,
        port=587,
        user="",
        password="",
        from_address=f"{account_id}@acme.test",
        is_default=is_default,
        tenant_id=1,
        created_at=datetime(2024, 1, 1, 0, minutes, tzinfo=timezone.utc),
    )


def alert(event: str = "raised", **overrides) -> AlertNotification:
    data = dict(
        alert_id=42,
        event=event,
        title="Disk usage high",
        description="/var is at 93%",
        severity="critical",
        source="db-01",
        occurred_at=OCCURRED,
    )
    data.update(overrides)
    return AlertNotification(**data)


def monitoring_repo() -> InMemoryNotificationSettingsRepository:
    return InMemoryNotificationSettingsRepository(
        [account("main", "smtp.acme.test", is_default=True), account("noc", "smtp.noc.test", minutes=1)],
        [NotificationMapping("monitoring", "noc")]
    )


class TestAlertNotification:
    def test_subject_per_event(self):
        assert alert().subject("[ITSM]") == "[ITSM] CRITICAL Monitoring Alert: Disk usage high"
        assert alert("acknowledged").subject() == "Alert Acknowledged: Disk usage high"
        assert alert("resolved").subject() == "Alert Resolved: Disk usage high"

    def test_routes_as_monitoring(self):
        assert alert().notification_type == "monitoring"
        assert alert().reference == "ALERT-42"

    def test_raised_html_lists_metrics(self):
        html = alert(metrics={"usage": "93%", "mount": "/var"}).render_html()

        assert "CRITICAL Alert: Disk usage high" in html
        assert "#d9534f" in html
        assert "<strong>Source:</strong> db-01" in html
        assert "usage=93%, mount=/var" in html
        assert "2024-03-01 09:30:00 UTC" in html

    def test_acknowledged_html_names_actor(self):
        html = alert("acknowledged", actor="Alice Admin").render_html()

        assert "Original Alert:</strong> CRITICAL from db-01" in html
        assert "Acknowledged By:</strong> Alice Admin" in html
        assert "Metrics" not in html

    def test_resolved_without_actor(self):
        html = alert("resolved").render_html()

        assert "Resolved By:</strong> Unknown User" in html

    def test_html_is_escaped(self):
        html = alert(title="<script>x</script>").render_html()

        assert "<script>" not in html
        assert "&lt;script&gt;" in html


class TestBuildTestNotification:
    def test_ticket_type_builds_ticket_notification(self):
        notification = build_test_notification("incident", "Acme IT", requested_by="alice")

        assert isinstance(notification, TicketNotification)
        assert notification.notification_type == "incident"
        assert notification.created_by == "alice"
        assert notification.subject() == "New Incident Reported: Test incident notification"

    def test_other_type_builds_system_notification(self):
        notification = build_test_notification("monitoring", "Acme IT")

        assert isinstance(notification, SystemNotification)
        assert notification.notification_type == "monitoring"
        assert notification.subject("[ITSM]") == "[ITSM] Test monitoring notification"
        assert "Acme IT" in notification.render_html()


class TestAlertNotificationService:
    async def test_raised_alert_emails_admins_and_agents_through_monitoring_account(self):
        sender = FakeEmailSender()
        slack = FakeSlackNotifier()
        directory = FakeRecipientDirectory(STAFF)
        service = AlertNotificationService(NotificationDispatcher(monitoring_repo(), sender, slack), directory)

        result = await service.notify(1, alert())

        assert result.email_sent
        assert result.account_id == "noc"
        assert result.recipients == ["alice@acme.test", "bob@acme.test"]
        assert sender.sent[0]["config"].host == "smtp.noc.test"
        assert not result.slack_sent
        assert slack.posted == []

    async def test_acknowledged_alert_goes_to_admins_only(self):
        directory = FakeRecipientDirectory(STAFF)
        service = AlertNotificationService(NotificationDispatcher(monitoring_repo(), FakeEmailSender()), directory)

        result = await service.notify(1, alert("acknowledged", actor="Alice Admin"))

        assert directory.requested_roles == [["admin"]]
        assert result.recipients == ["alice@acme.test"]

    async def test_unknown_event_rejected(self):
        service = AlertNotificationService(
            NotificationDispatcher(monitoring_repo(), FakeEmailSender()), FakeRecipientDirectory(STAFF)
        )

        with pytest.raises(ValidationException):
            await service.notify(1, alert("escalated"))

    async def test_directory_failure_skips_email(self):
        sender = FakeEmailSender()
        service = AlertNotificationService(
            NotificationDispatcher(monitoring_repo(), sender), FakeRecipientDirectory(fail=True)
        )

        result = await service.notify(1, alert())

        assert not result.email_sent
        assert result.skipped_reason == "no_recipients"
        assert sender.sent == []


class TestNotificationTestService:
    async def test_email_test_uses_mapped_account(self):
        sender = FakeEmailSender()
        directory = FakeRecipientDirectory(tenant_names={1: "Acme IT"})
        service = NotificationTestService(NotificationDispatcher(monitoring_repo(), sender), directory)

        result = await service.send_test(1, "monitoring", "email", recipient="ops@acme.test")

        assert result.email_sent
        assert result.account_id == "noc"
        assert sender.sent[0]["recipients"] == ["ops@acme.test"]
        assert sender.sent[0]["subject"] == "Test monitoring notification"

    async def test_email_test_requires_recipient(self):
        service = NotificationTestService(
            NotificationDispatcher(monitoring_repo(), FakeEmailSender()), FakeRecipientDirectory()
        )

        with pytest.raises(ValidationException):
            await service.send_test(1, "incident", "email")

    async def test_slack_test_posts_only_to_slack(self):
        sender = FakeEmailSender()
        slack = FakeSlackNotifier()
        service = NotificationTestService(
            NotificationDispatcher(monitoring_repo(), sender, slack), FakeRecipientDirectory()
        )

        result = await service.send_test(1, "change_request", "slack")

        assert result.slack_sent
        assert not result.email_sent
        assert sender.sent == []
        assert slack.posted[0].ticket_type == "change_request"

    async def test_slack_test_without_slack_rejected(self):
        service = NotificationTestService(
            NotificationDispatcher(monitoring_repo(), FakeEmailSender()), FakeRecipientDirectory()
        )

        with pytest.raises(ValidationException):
            await service.send_test(1, "incident", "slack")

    async def test_slack_test_for_non_ticket_type_rejected(self):
        service = NotificationTestService(
            NotificationDispatcher(monitoring_repo(), FakeEmailSender(), FakeSlackNotifier()),
            FakeRecipientDirectory()
        )

        with pytest.raises(ValidationException):
            await service.send_test(1, "monitoring", "slack")
