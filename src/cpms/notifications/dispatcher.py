"""Notification fan-out.

An event either targets one account or is broadcast to every Admin and
SuperAdmin. Each recipient's preference for the event category is checked
independently; a missing preference row means every category is enabled.
Broadcasts use one bulk preference lookup and one batched insert.

Delivery is best-effort: there is no deduplication and a storage failure
part-way through is propagated without undoing earlier writes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

import structlog

from cpms.db.models import (
    CATEGORY_ALERTS,
    CATEGORY_PARTNERSHIPS,
    CATEGORY_SYSTEM,
    PRIVILEGED_ROLES,
)
from cpms.notifications.store import NotificationRecord

if TYPE_CHECKING:
    from cpms.accounts.store import AccountStore
    from cpms.db.models import NotificationPreference
    from cpms.notifications.store import NotificationStore, PreferenceStore

logger = structlog.get_logger()

# Category -> NotificationPreference attribute
PREFERENCE_FLAGS: dict[str, str] = {
    CATEGORY_PARTNERSHIPS: "partnership",
    CATEGORY_SYSTEM: "system",
    CATEGORY_ALERTS: "alerts",
}


@dataclass(frozen=True)
class NotificationEvent:
    title: str | None
    message: str | None
    category: str | None
    target_account_id: int | None = None


@dataclass(frozen=True)
class Dispatched:
    """Event accepted; `delivered` of `recipients` passed the preference check."""

    recipients: int
    delivered: int


@dataclass(frozen=True)
class InvalidEvent:
    reason: str


DispatchResult = Union[Dispatched, InvalidEvent]


def should_deliver(preference: NotificationPreference | None, category: str) -> bool:
    """Check if a notification of `category` should be stored for this preference."""
    if preference is None:
        return True
    return bool(getattr(preference, PREFERENCE_FLAGS[category]))


def validate_event(event: NotificationEvent) -> str | None:
    """Return why the event cannot be dispatched, or None if it can."""
    if not event.title or not event.message or not event.category:
        return "title, message and category are required"
    if event.category not in PREFERENCE_FLAGS:
        return f"unknown category: {event.category}"
    return None


class NotificationDispatcher:
    """Resolves an event's audience and persists one notification per recipient."""

    def __init__(
        self,
        accounts: AccountStore,
        preferences: PreferenceStore,
        notifications: NotificationStore,
    ) -> None:
        self.accounts = accounts
        self.preferences = preferences
        self.notifications = notifications

    async def dispatch(self, event: NotificationEvent) -> DispatchResult:
        """Fan an event out to its audience."""
        reason = validate_event(event)
        if reason is not None:
            logger.warning("notification_event_invalid", reason=reason, title=event.title)
            return InvalidEvent(reason=reason)

        if event.target_account_id is not None:
            result = await self._dispatch_targeted(event, event.target_account_id)
        else:
            result = await self._dispatch_broadcast(event)

        logger.info(
            "notifications_dispatched",
            category=event.category,
            target_account_id=event.target_account_id,
            recipients=result.recipients,
            delivered=result.delivered,
        )
        return result

    async def _dispatch_targeted(self, event: NotificationEvent, account_id: int) -> Dispatched:
        preference = await self.preferences.find_by_account_id(account_id)
        if not should_deliver(preference, event.category or ""):
            return Dispatched(recipients=1, delivered=0)
        await self.notifications.create(self._record(event, account_id))
        return Dispatched(recipients=1, delivered=1)

    async def _dispatch_broadcast(self, event: NotificationEvent) -> Dispatched:
        recipients = await self.accounts.find_by_roles(PRIVILEGED_ROLES)
        account_ids = [account.id for account in recipients]
        preferences = await self.preferences.find_by_account_ids(account_ids)

        records = [
            self._record(event, account_id)
            for account_id in account_ids
            if should_deliver(preferences.get(account_id), event.category or "")
        ]
        delivered = await self.notifications.create_many(records)
        return Dispatched(recipients=len(account_ids), delivered=delivered)

    @staticmethod
    def _record(event: NotificationEvent, account_id: int) -> NotificationRecord:
        return NotificationRecord(
            account_id=account_id,
            title=event.title or "",
            message=event.message or "",
            category=event.category or "",
        )
