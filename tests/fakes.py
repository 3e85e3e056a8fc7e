"""
In-memory implementations of the repository and delivery interfaces.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from itsm.assignment.application import IAgentRepository, ITicketCountRepository
from itsm.assignment.domain import Agent
from itsm.core import NotificationDeliveryException, RepositoryException
from itsm.notifications.application import (
    IEmailSender,
    INotificationSettingsRepository,
    IRecipientDirectory,
    ISlackNotifier,
)
from itsm.notifications.domain import (
    EmailAccount,
    EmailTransportConfig,
    NotificationMapping,
    NotificationRouter,
    TicketNotification,
)
from itsm.tickets.application import ITicketRepository, TicketCreateRequest, TicketRecord


class FakeAgentRepository(IAgentRepository):
    def __init__(self, agents: Sequence[Agent] = (), fail: bool = False):
        self.agents = list(agents)
        self.fail = fail
        self.calls = 0

    async def list_eligible_agents(self, tenant_id: int, roles: Sequence[str]) -> List[Agent]:
        self.calls += 1
        if self.fail:
            raise RepositoryException("users table unavailable")
        return [a for a in self.agents if a.tenant_id == tenant_id and a.is_eligible(list(roles))]

    async def get_by_id(self, agent_id: int) -> Optional[Agent]:
        return next((a for a in self.agents if a.id == agent_id), None)


class FakeTicketCountRepository(ITicketCountRepository):
    """Returns canned counts per category and records the closed statuses it was asked with."""

    def __init__(self, counts: Optional[Dict[str, Dict[Optional[int], int]]] = None, fail_on: Optional[str] = None):
        self.counts = counts or {}
        self.fail_on = fail_on
        self.requested: Dict[str, List[str]] = {}

    async def count_open_tickets_by_assignee(
        self,
        tenant_id: int,
        category: str,
        closed_statuses: Sequence[str]
    ) -> Dict[Optional[int], int]:
        self.requested[category] = list(closed_statuses)
        if category == self.fail_on:
            raise RepositoryException(f"{category} table unavailable")
        return dict(self.counts.get(category, {}))


class InMemoryNotificationSettingsRepository(INotificationSettingsRepository):
    def __init__(self, accounts: Sequence[EmailAccount] = (), mappings: Sequence[NotificationMapping] = ()):
        self.accounts: List[EmailAccount] = list(accounts)
        self.mappings: List[NotificationMapping] = list(mappings)

    async def list_accounts(self, tenant_id: int) -> List[EmailAccount]:
        return sorted(
            (a for a in self.accounts if a.tenant_id in (None, tenant_id)),
            key=lambda a: (a.created_at, a.id)
        )

    async def add_account(self, account: EmailAccount) -> EmailAccount:
        self.accounts.append(account)
        return account

    async def update_default_flags(self, tenant_id: int, accounts: Sequence[EmailAccount]) -> None:
        flags = {a.id: a.is_default for a in accounts}
        for account in self.accounts:
            if account.id in flags:
                account.is_default = flags[account.id]

    async def delete_account(self, tenant_id: int, account_id: str) -> bool:
        before = len(self.accounts)
        self.accounts = [a for a in self.accounts if a.id != account_id]
        self.mappings = [m for m in self.mappings if m.email_account_id != account_id]
        return len(self.accounts) < before

    async def list_mappings(self, tenant_id: int) -> List[NotificationMapping]:
        return list(self.mappings)

    async def save_mapping(self, tenant_id: int, mapping: NotificationMapping) -> None:
        self.mappings = NotificationRouter.upsert_mapping(mapping.type, mapping.email_account_id, self.mappings)


class FakeEmailSender(IEmailSender):
    def __init__(self, fail: bool = False, events: Optional[List[str]] = None):
        self.fail = fail
        self.sent: List[dict] = []
        self.events = events if events is not None else []

    async def send(
        self,
        config: EmailTransportConfig,
        recipients: Sequence[str],
        subject: str,
        html: str
    ) -> None:
        self.events.append("email")
        if self.fail:
            raise NotificationDeliveryException("email", "connection refused", {"host": config.host})
        self.sent.append({
            "config": config,
            "recipients": list(recipients),
            "subject": subject,
            "html": html,
        })


class FakeSlackNotifier(ISlackNotifier):
    def __init__(self, result: bool = True, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.posted: List[TicketNotification] = []

    async def post_ticket(self, notification: TicketNotification) -> bool:
        if self.error is not None:
            raise self.error
        self.posted.append(notification)
        return self.result


class FakeTicketRepository(ITicketRepository):
    """Records create, commit and rollback calls in ``events``."""

    def __init__(self, tenant_names: Optional[Dict[int, str]] = None, events: Optional[List[str]] = None):
        self.tenant_names = tenant_names or {}
        self.created: List[TicketRecord] = []
        self.events = events if events is not None else []

    async def create(
        self,
        category: str,
        request: TicketCreateRequest,
        status: str,
        assigned_to: Optional[int]
    ) -> TicketRecord:
        record = TicketRecord(
            id=len(self.created) + 1,
            category=category,
            tenant_id=request.tenant_id,
            title=request.title,
            description=request.description,
            status=status,
            priority=request.priority,
            assigned_to=assigned_to,
            reported_by=request.reported_by,
            created_at=datetime.now(timezone.utc),
        )
        self.created.append(record)
        self.events.append("create")
        return record

    async def get_tenant_name(self, tenant_id: int) -> Optional[str]:
        return self.tenant_names.get(tenant_id)

    async def commit(self) -> None:
        self.events.append("commit")

    async def rollback(self) -> None:
        self.events.append("rollback")


class FakeRecipientDirectory(IRecipientDirectory):
    def __init__(self, agents: Sequence[Agent] = (), tenant_names: Optional[Dict[int, str]] = None,
                 fail: bool = False):
        self.agents = list(agents)
        self.tenant_names = tenant_names or {}
        self.fail = fail
        self.requested_roles: List[List[str]] = []

    async def list_staff_emails(self, tenant_id: int, roles: Sequence[str]) -> List[str]:
        self.requested_roles.append(list(roles))
        if self.fail:
            raise RepositoryException("users table unavailable")
        emails = [a.email for a in self.agents if a.tenant_id == tenant_id and a.role in roles and a.email]
        return list(dict.fromkeys(emails))

    async def get_tenant_name(self, tenant_id: int) -> Optional[str]:
        return self.tenant_names.get(tenant_id)
