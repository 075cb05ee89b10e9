"""Shared FastAPI dependencies.

Store dependencies are resolved per request from the request's database
session; tests override these to swap in in-memory stores.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cpms.accounts.store import AccountStore, SqlAccountStore
from cpms.database import get_session
from cpms.notifications.dispatcher import NotificationDispatcher
from cpms.notifications.store import (
    NotificationStore,
    PreferenceStore,
    SqlNotificationStore,
    SqlPreferenceStore,
)

async def get_account_store(db: AsyncSession = Depends(get_session)) -> AccountStore:  # noqa: B008
    """Account store bound to the request session."""
    return SqlAccountStore(db)


async def get_preference_store(db: AsyncSession = Depends(get_session)) -> PreferenceStore:  # noqa: B008
    """Notification preference store bound to the request session."""
    return SqlPreferenceStore(db)


async def get_notification_store(db: AsyncSession = Depends(get_session)) -> NotificationStore:  # noqa: B008
    """Notification store bound to the request session."""
    return SqlNotificationStore(db)


async def get_dispatcher(
    accounts: AccountStore = Depends(get_account_store),  # noqa: B008
    preferences: PreferenceStore = Depends(get_preference_store),  # noqa: B008
    notifications: NotificationStore = Depends(get_notification_store),  # noqa: B008
) -> NotificationDispatcher:
    """Notification dispatcher wired to the request's stores."""
    return NotificationDispatcher(accounts, preferences, notifications)
