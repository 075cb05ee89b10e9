"""
Notification and notification-preference persistence.

The dispatcher and the notification router depend only on the Protocols;
the Sql* classes bind them to an AsyncSession. Stores flush but never
commit; the caller owns the transaction.

Read-side methods take `account_id=None` to mean "every account" (the
SuperAdmin view).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Protocol

from sqlalchemy import delete, func, insert, select, update

from cpms.db.models import Notification, NotificationPreference

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

PREFERENCE_KEYS = ("system", "partnership", "alerts")


@dataclass(frozen=True)
class NotificationRecord:
    """A notification about to be written for one account."""

    account_id: int
    title: str
    message: str
    category: str


class PreferenceStore(Protocol):
    """Read/write contract for notification preferences."""

    async def find_by_account_id(self, account_id: int) -> NotificationPreference | None: ...

    async def find_by_account_ids(self, account_ids: Sequence[int]) -> dict[int, NotificationPreference]: ...

    async def upsert(self, account_id: int, preferences: dict[str, bool]) -> NotificationPreference: ...


class NotificationStore(Protocol):
    """Write contract used by the dispatcher plus the owner-facing read side."""

    async def create(self, record: NotificationRecord) -> Notification: ...

    async def create_many(self, records: Sequence[NotificationRecord]) -> int: ...

    async def list_page(
        self,
        account_id: int | None,
        page: int = 1,
        per_page: int = 20,
        category: str | None = None,
        is_read: bool | None = None,
    ) -> tuple[list[Notification], int]: ...

    async def count_unread(self, account_id: int | None) -> int: ...

    async def mark_as_read(self, notification_id: int, account_id: int | None) -> Notification | None: ...

    async def mark_all_as_read(self, account_id: int | None) -> int: ...

    async def delete(self, notification_id: int, account_id: int | None) -> bool: ...


# ---------------------------------------------------------------------------
# SQL implementations
# ---------------------------------------------------------------------------


class SqlPreferenceStore:
    """PreferenceStore backed by `notification_preferences`."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_by_account_id(self, account_id: int) -> NotificationPreference | None:
        result = await self._db.execute(
            select(NotificationPreference).where(NotificationPreference.account_id == account_id)
        )
        return result.scalar_one_or_none()

    async def find_by_account_ids(self, account_ids: Sequence[int]) -> dict[int, NotificationPreference]:
        """Bulk lookup; accounts without a row are absent from the result."""
        if not account_ids:
            return {}
        result = await self._db.execute(
            select(NotificationPreference).where(NotificationPreference.account_id.in_(list(account_ids)))
        )
        return {pref.account_id: pref for pref in result.scalars()}

    async def upsert(self, account_id: int, preferences: dict[str, bool]) -> NotificationPreference:
        """Create the row (all enabled) if needed, then apply the given flags."""
        pref = await self.find_by_account_id(account_id)
        if pref is None:
            pref = NotificationPreference(account_id=account_id, system=True, partnership=True, alerts=True)
            self._db.add(pref)
        for key in PREFERENCE_KEYS:
            if key in preferences:
                setattr(pref, key, bool(preferences[key]))
        pref.updated_at = datetime.now(timezone.utc)
        await self._db.flush()
        return pref


def _scope(stmt: Any, account_id: int | None, category: str | None = None, is_read: bool | None = None) -> Any:  # noqa: ANN401
    """Apply owner/category/read filters to a select, update, or delete."""
    if account_id is not None:
        stmt = stmt.where(Notification.account_id == account_id)
    if category is not None:
        stmt = stmt.where(Notification.category == category)
    if is_read is not None:
        stmt = stmt.where(Notification.is_read.is_(is_read))
    return stmt


class SqlNotificationStore:
    """NotificationStore backed by `notifications`."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def create(self, record: NotificationRecord) -> Notification:
        notification = Notification(
            account_id=record.account_id,
            title=record.title,
            message=record.message,
            category=record.category,
            is_read=False,
            created_at=datetime.now(timezone.utc),
        )
        self._db.add(notification)
        await self._db.flush()
        return notification

    async def create_many(self, records: Sequence[NotificationRecord]) -> int:
        """Batched insert. Returns the number of rows written."""
        if not records:
            return 0
        now = datetime.now(timezone.utc)
        await self._db.execute(
            insert(Notification),
            [
                {
                    "account_id": r.account_id,
                    "title": r.title,
                    "message": r.message,
                    "category": r.category,
                    "is_read": False,
                    "created_at": now,
                }
                for r in records
            ],
        )
        return len(records)

    async def list_page(
        self,
        account_id: int | None,
        page: int = 1,
        per_page: int = 20,
        category: str | None = None,
        is_read: bool | None = None,
    ) -> tuple[list[Notification], int]:
        """Notifications, most recent first, with the total matching count."""
        total_result = await self._db.execute(
            _scope(select(func.count()).select_from(Notification), account_id, category, is_read)
        )
        total = total_result.scalar_one()

        result = await self._db.execute(
            _scope(select(Notification), account_id, category, is_read)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(result.scalars().all()), total

    async def count_unread(self, account_id: int | None) -> int:
        result = await self._db.execute(
            _scope(select(func.count()).select_from(Notification), account_id, is_read=False)
        )
        return result.scalar_one()

    async def mark_as_read(self, notification_id: int, account_id: int | None) -> Notification | None:
        """Mark one notification as read. Returns it, or None if not in scope."""
        result = await self._db.execute(
            _scope(update(Notification).where(Notification.id == notification_id), account_id)
            .values(is_read=True)
            .returning(Notification)
            .execution_options(synchronize_session="fetch")
        )
        await self._db.flush()
        return result.scalar_one_or_none()

    async def mark_all_as_read(self, account_id: int | None) -> int:
        """Mark all unread notifications as read. Returns count updated."""
        result = await self._db.execute(
            _scope(update(Notification), account_id, is_read=False)
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        await self._db.flush()
        return result.rowcount

    async def delete(self, notification_id: int, account_id: int | None) -> bool:
        result = await self._db.execute(
            _scope(delete(Notification).where(Notification.id == notification_id), account_id)
            .execution_options(synchronize_session="fetch")
        )
        await self._db.flush()
        return result.rowcount > 0


async def get_or_create_preferences(store: PreferenceStore, account_id: int) -> NotificationPreference:
    """Settings read creates the all-enabled row on first access."""
    pref = await store.find_by_account_id(account_id)
    if pref is None:
        pref = await store.upsert(account_id, {})
    return pref
