"""
Notification Router
====================

Pure functions choosing the outbound email account for a notification type
and maintaining the per-type mapping and default flag.

Callers pass the tenant's collections explicitly; nothing here keeps state.
"""

from dataclasses import replace
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Sequence, Union

from itsm.notifications.domain.entities import EmailAccount, NotificationMapping

MappingsInput = Union[Iterable[NotificationMapping], Mapping[str, str]]


def _type_value(notification_type) -> str:
    return notification_type.value if isinstance(notification_type, Enum) else str(notification_type)


def _mapped_account_id(notification_type: str, mappings: MappingsInput) -> Optional[str]:
    if isinstance(mappings, Mapping):
        return mappings.get(notification_type)

    for mapping in mappings:
        if _type_value(mapping.type) == notification_type:
            return mapping.email_account_id
    return None


class NotificationRouter:
    """Account resolution and settings transforms."""

    @staticmethod
    def resolve_account(
        notification_type,
        accounts: Sequence[EmailAccount],
        mappings: MappingsInput
    ) -> Optional[EmailAccount]:
        """
        Pick the account to send a notification of the given type through.

        Resolution order:
        1. The mapped account, if a mapping exists and the account is present
        2. The account flagged default
        3. The first account in ``accounts`` order
        4. None when there are no accounts

        A mapping that points at a deleted account falls through silently.
        """
        type_value = _type_value(notification_type)

        account_id = _mapped_account_id(type_value, mappings)
        if account_id:
            for account in accounts:
                if account.id == account_id:
                    return account

        for account in accounts:
            if account.is_default:
                return account

        return accounts[0] if accounts else None

    @staticmethod
    def upsert_mapping(
        notification_type,
        email_account_id: str,
        mappings: Iterable[NotificationMapping]
    ) -> List[NotificationMapping]:
        """
        Map a type to an account, replacing any existing entry for that type.

        Entries for other types keep their position. A new type is appended.
        """
        type_value = _type_value(notification_type)
        new_mapping = NotificationMapping(type=type_value, email_account_id=email_account_id)

        result: List[NotificationMapping] = []
        replaced = False
        for mapping in mappings:
            if _type_value(mapping.type) == type_value:
                if not replaced:
                    result.append(new_mapping)
                    replaced = True
                continue
            result.append(mapping)

        if not replaced:
            result.append(new_mapping)
        return result

    @staticmethod
    def set_default_account(
        account_id: str,
        accounts: Sequence[EmailAccount]
    ) -> List[EmailAccount]:
        """
        Flag exactly one account as default.

        An unknown ``account_id`` returns the accounts unchanged, so an
        existing default is never cleared by mistake.
        """
        if not any(account.id == account_id for account in accounts):
            return list(accounts)

        return [
            replace(account, is_default=(account.id == account_id))
            for account in accounts
        ]
