"""SQLAlchemy repository tests on in-memory SQLite."""

from datetime import datetime, timedelta, timezone

import pytest

from itsm.assignment.application import WorkloadBalancer
from itsm.assignment.infrastructure import SQLAlchemyAgentRepository, SQLAlchemyTicketCountRepository
from itsm.config import DEFAULT_CLOSED_STATUSES
from itsm.core import ValidationException
from itsm.notifications.domain import EmailAccount, NotificationMapping
from itsm.notifications.infrastructure import SQLAlchemyNotificationSettingsRepository, SQLAlchemyRecipientDirectory
from itsm.tickets.application import TicketCreateRequest
from itsm.tickets.infrastructure import (
    ChangeRequestModel,
    IncidentModel,
    ServiceRequestModel,
    SQLAlchemyTicketRepository,
)


def incident(tenant_id, assigned_to, status="new"):
    return IncidentModel(tenant_id=tenant_id, title="i", description="d", status=status, assigned_to=assigned_to)


def service_request(tenant_id, assigned_to, status="new"):
    return ServiceRequestModel(tenant_id=tenant_id, title="s", description="d", status=status, assigned_to=assigned_to)


def change_request(tenant_id, assigned_to, status="draft"):
    return ChangeRequestModel(tenant_id=tenant_id, title="c", description="d", status=status, assigned_to=assigned_to)


@pytest.mark.usefixtures("seeded")
class TestAgentRepository:
    async def test_lists_eligible_agents_of_tenant(self, session):
        agents = await SQLAlchemyAgentRepository(session).list_eligible_agents(1, ["admin", "agent"])
        assert [a.id for a in agents] == [101, 102]

    async def test_role_filter(self, session):
        agents = await SQLAlchemyAgentRepository(session).list_eligible_agents(1, ["agent"])
        assert [a.id for a in agents] == [102]

    async def test_get_by_id(self, session):
        agent = await SQLAlchemyAgentRepository(session).get_by_id(101)
        assert agent.display_name == "Alice Admin"
        assert await SQLAlchemyAgentRepository(session).get_by_id(999) is None


@pytest.mark.usefixtures("seeded")
class TestTicketCountRepository:
    async def test_excludes_closed_other_tenants_and_unassigned(self, session):
        session.add_all([
            incident(1, 101),
            incident(1, 101, status="resolved"),
            incident(1, 101, status="closed"),
            incident(1, None),
            incident(2, 201),
        ])
        await session.flush()

        counts = await SQLAlchemyTicketCountRepository(session).count_open_tickets_by_assignee(
            1, "incident", DEFAULT_CLOSED_STATUSES["incident"]
        )

        assert counts == {101: 2}

    async def test_category_closed_families(self, session):
        session.add_all([
            service_request(1, 102, status="completed"),
            service_request(1, 102, status="cancelled"),
            service_request(1, 102, status="pending_approval"),
            change_request(1, 102, status="failed"),
            change_request(1, 102, status="scheduled"),
        ])
        await session.flush()

        repo = SQLAlchemyTicketCountRepository(session)
        srq = await repo.count_open_tickets_by_assignee(1, "service_request", DEFAULT_CLOSED_STATUSES["service_request"])
        chg = await repo.count_open_tickets_by_assignee(1, "change_request", DEFAULT_CLOSED_STATUSES["change_request"])

        assert srq == {102: 1}
        assert chg == {102: 1}

    async def test_unknown_category(self, session):
        with pytest.raises(ValidationException):
            await SQLAlchemyTicketCountRepository(session).count_open_tickets_by_assignee(1, "problem", [])


@pytest.mark.usefixtures("seeded")
class TestBalancerOnDatabase:
    async def test_three_incidents_and_one_request_go_to_idle_agent(self, session):
        session.add_all([incident(1, 101), incident(1, 101), incident(1, 101), service_request(1, 101)])
        await session.flush()

        balancer = WorkloadBalancer(SQLAlchemyAgentRepository(session), SQLAlchemyTicketCountRepository(session))

        snapshot = await balancer.compute_workload(1)
        assert snapshot.counts == {101: 4, 102: 0}
        assert await balancer.auto_assign(1) == 102

    async def test_tenant_without_agents(self, session):
        balancer = WorkloadBalancer(SQLAlchemyAgentRepository(session), SQLAlchemyTicketCountRepository(session))

        snapshot = await balancer.compute_workload(3)

        assert snapshot.is_empty
        assert not snapshot.read_failed


@pytest.mark.usefixtures("seeded")
class TestTicketRepository:
    async def test_creates_incident_with_severity(self, session):
        repo = SQLAlchemyTicketRepository(session)
        request = TicketCreateRequest(tenant_id=1, title="Down", description="All down", priority="critical")

        record = await repo.create("incident", request, "new", 102)

        model = await session.get(IncidentModel, record.id)
        assert model.severity == "critical"
        assert model.assigned_to == 102
        assert record.priority == "critical"

    async def test_tenant_name(self, session):
        repo = SQLAlchemyTicketRepository(session)
        assert await repo.get_tenant_name(1) == "Acme IT"
        assert await repo.get_tenant_name(99) is None

    async def test_committed_ticket_survives_later_rollback(self, session, session_maker):
        repo = SQLAlchemyTicketRepository(session)
        request = TicketCreateRequest(tenant_id=1, title="VPN", description="No tunnel", priority="high")

        record = await repo.create("service_request", request, "new", None)
        await repo.commit()
        await repo.rollback()

        async with session_maker() as other:
            model = await other.get(ServiceRequestModel, record.id)
        assert model is not None
        assert model.priority == "high"

    async def test_rollback_discards_uncommitted_ticket(self, session, session_maker):
        repo = SQLAlchemyTicketRepository(session)
        request = TicketCreateRequest(tenant_id=1, title="VPN", description="No tunnel", priority="high")

        record = await repo.create("incident", request, "new", None)
        await repo.rollback()

        async with session_maker() as other:
            assert await other.get(IncidentModel, record.id) is None


def email_account(account_id, minutes, is_default=False):
    return EmailAccount(
        id=account_id,
        name=account_id,
        host="smtp.example.com",
        port=587,
        user="u",
        password="p",
        from_address=f"{account_id}@example.com",
        is_default=is_default,
        tenant_id=1,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


@pytest.mark.usefixtures("seeded")
class TestNotificationSettingsRepository:
    async def test_accounts_ordered_by_creation(self, session):
        repo = SQLAlchemyNotificationSettingsRepository(session)
        await repo.add_account(email_account("late", 5))
        await repo.add_account(email_account("early", 1))

        accounts = await repo.list_accounts(1)

        assert [a.id for a in accounts] == ["early", "late"]
        assert await repo.list_accounts(2) == []

    async def test_update_default_flags(self, session):
        repo = SQLAlchemyNotificationSettingsRepository(session)
        a = await repo.add_account(email_account("a", 1, is_default=True))
        b = await repo.add_account(email_account("b", 2))
        a.is_default, b.is_default = False, True

        await repo.update_default_flags(1, [a, b])

        assert [x.id for x in await repo.list_accounts(1) if x.is_default] == ["b"]

    async def test_save_mapping_replaces(self, session):
        repo = SQLAlchemyNotificationSettingsRepository(session)
        await repo.add_account(email_account("a", 1))
        await repo.add_account(email_account("b", 2))

        await repo.save_mapping(1, NotificationMapping("incident", "a"))
        await repo.save_mapping(1, NotificationMapping("incident", "b"))

        assert await repo.list_mappings(1) == [NotificationMapping("incident", "b")]

    async def test_delete_account_removes_mappings(self, session):
        repo = SQLAlchemyNotificationSettingsRepository(session)
        await repo.add_account(email_account("a", 1))
        await repo.save_mapping(1, NotificationMapping("incident", "a"))

        assert await repo.delete_account(1, "a") is True
        assert await repo.list_mappings(1) == []
        assert await repo.delete_account(1, "a") is False


@pytest.mark.usefixtures("seeded")
class TestRecipientDirectory:
    async def test_staff_emails_by_role(self, session):
        directory = SQLAlchemyRecipientDirectory(session)

        assert await directory.list_staff_emails(1, ["admin"]) == ["alice@acme.test"]
        assert await directory.list_staff_emails(1, ["admin", "agent"]) == ["alice@acme.test", "bob@acme.test"]
        assert await directory.list_staff_emails(2, ["admin"]) == []

    async def test_tenant_name(self, session):
        directory = SQLAlchemyRecipientDirectory(session)

        assert await directory.get_tenant_name(2) == "Globex"
        assert await directory.get_tenant_name(99) is None
