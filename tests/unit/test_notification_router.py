"""Tests for NotificationRouter account resolution and settings transforms."""

from datetime import datetime, timedelta, timezone

import pytest

from itsm.config import NotificationType
from itsm.notifications.domain import EmailAccount, NotificationMapping, NotificationRouter

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def account(account_id: str, is_default: bool = False, minutes: int = 0) -> EmailAccount:
    return EmailAccount(
        id=account_id,
        name=f"Account {account_id}",
        host="smtp.example.com",
        port=587,
        user="mailer",
        password="secret",
        from_address=f"{account_id}@example.com",
        is_default=is_default,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


@pytest.fixture
def accounts():
    return [account("A", minutes=0), account("B", is_default=True, minutes=1), account("C", minutes=2)]


class TestResolveAccount:
    def test_mapped_account_wins(self, accounts):
        mappings = [NotificationMapping("incident", "C")]
        assert NotificationRouter.resolve_account("incident", accounts, mappings).id == "C"

    def test_default_when_type_unmapped(self, accounts):
        mappings = [NotificationMapping("incident", "C")]
        assert NotificationRouter.resolve_account("system", accounts, mappings).id == "B"

    def test_mapping_to_missing_account_falls_back_to_default(self, accounts):
        mappings = [NotificationMapping("incident", "X")]
        assert NotificationRouter.resolve_account("incident", accounts, mappings).id == "B"

    def test_first_account_when_no_default(self):
        accounts = [account("A"), account("B", minutes=1)]
        assert NotificationRouter.resolve_account("monitoring", accounts, []).id == "A"

    def test_none_without_accounts(self):
        mappings = [NotificationMapping("incident", "A")]
        assert NotificationRouter.resolve_account("incident", [], mappings) is None

    def test_accepts_dict_mappings(self, accounts):
        assert NotificationRouter.resolve_account("change_request", accounts, {"change_request": "A"}).id == "A"

    def test_accepts_enum_type(self, accounts):
        mappings = [NotificationMapping("service_request", "A")]
        resolved = NotificationRouter.resolve_account(NotificationType.SERVICE_REQUEST, accounts, mappings)
        assert resolved.id == "A"

    def test_same_inputs_same_result(self, accounts):
        mappings = [NotificationMapping("incident", "C")]
        first = NotificationRouter.resolve_account("incident", accounts, mappings)
        second = NotificationRouter.resolve_account("incident", accounts, mappings)
        assert first is second


class TestUpsertMapping:
    def test_appends_new_type(self):
        result = NotificationRouter.upsert_mapping("incident", "A", [NotificationMapping("system", "B")])
        assert result == [NotificationMapping("system", "B"), NotificationMapping("incident", "A")]

    def test_replaces_existing_type_in_place(self):
        mappings = [
            NotificationMapping("incident", "A"),
            NotificationMapping("system", "B"),
        ]
        result = NotificationRouter.upsert_mapping("incident", "C", mappings)
        assert result == [NotificationMapping("incident", "C"), NotificationMapping("system", "B")]

    def test_idempotent(self):
        once = NotificationRouter.upsert_mapping("incident", "A", [])
        twice = NotificationRouter.upsert_mapping("incident", "A", once)
        assert once == twice == [NotificationMapping("incident", "A")]

    def test_at_most_one_entry_per_type(self):
        mappings = [NotificationMapping("incident", "A"), NotificationMapping("incident", "B")]
        result = NotificationRouter.upsert_mapping("incident", "C", mappings)
        assert result == [NotificationMapping("incident", "C")]

    def test_input_not_modified(self):
        mappings = [NotificationMapping("incident", "A")]
        NotificationRouter.upsert_mapping("incident", "B", mappings)
        assert mappings == [NotificationMapping("incident", "A")]


class TestSetDefaultAccount:
    def test_exactly_one_default(self, accounts):
        result = NotificationRouter.set_default_account("C", accounts)
        assert [a.id for a in result if a.is_default] == ["C"]

    def test_keeps_order_and_other_fields(self, accounts):
        result = NotificationRouter.set_default_account("A", accounts)
        assert [a.id for a in result] == ["A", "B", "C"]
        assert result[0].from_address == "A@example.com"

    def test_unknown_id_returns_accounts_unchanged(self, accounts):
        result = NotificationRouter.set_default_account("missing", accounts)
        assert [a.is_default for a in result] == [False, True, False]

    def test_does_not_mutate_input(self, accounts):
        NotificationRouter.set_default_account("A", accounts)
        assert [a.is_default for a in accounts] == [False, True, False]

    def test_default_is_then_resolved_for_unmapped_type(self, accounts):
        updated = NotificationRouter.set_default_account("C", accounts)
        assert NotificationRouter.resolve_account("system", updated, []).id == "C"
