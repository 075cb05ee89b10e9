"""Shared test fixtures.

Route and service tests run against in-memory stores that implement the
store Protocols; the FastAPI app is wired to them with dependency overrides,
so no database or Redis is needed.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Iterable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from cpms.auth.jwt import create_access_token
from cpms.auth.lockout import LockoutPolicy, apply_failure, apply_success
from cpms.auth.password import hash_password
from cpms.database import get_session
from cpms.db.models import ROLE_ADMIN, ROLE_SUPERADMIN, Account, Notification, NotificationPreference
from cpms.dependencies import (
    get_account_store,
    get_dispatcher,
    get_notification_store,
    get_preference_store,
)
from cpms.main import create_app
from cpms.notifications.dispatcher import NotificationDispatcher
from cpms.notifications.store import PREFERENCE_KEYS, NotificationRecord

DEFAULT_PASSWORD = "CampusP@ss1"

# Hashing is slow on purpose; hash the default password once per run
_DEFAULT_HASH = hash_password(DEFAULT_PASSWORD)


# ---------------------------------------------------------------------------
# In-memory stores
# ---------------------------------------------------------------------------


class InMemoryAccountStore:
    def __init__(self) -> None:
        self.accounts: dict[int, Account] = {}
        self.saves = 0
        self._next_id = 1

    async def find_by_email(self, email: str) -> Account | None:
        return next((a for a in self.accounts.values() if a.email == email), None)

    async def find_by_id(self, account_id: int) -> Account | None:
        return self.accounts.get(account_id)

    async def find_by_roles(self, roles: Iterable[str]) -> list[Account]:
        wanted = set(roles)
        return [a for _id, a in sorted(self.accounts.items()) if a.role in wanted]

    async def list_all(self) -> list[Account]:
        return [a for _id, a in sorted(self.accounts.items())]

    async def save(self, account: Account) -> Account:
        if account.id is None:
            account.id = self._next_id
        self._next_id = max(self._next_id, account.id + 1)
        account.updated_at = datetime.now(timezone.utc)
        if account.created_at is None:
            account.created_at = account.updated_at
        self.accounts[account.id] = account
        self.saves += 1
        return account

    async def delete(self, account_id: int) -> bool:
        return self.accounts.pop(account_id, None) is not None

    async def record_failure(self, account_id: int, now: datetime, policy: LockoutPolicy) -> Account:
        return apply_failure(self.accounts[account_id], now, policy)

    async def record_success(self, account_id: int) -> Account:
        return apply_success(self.accounts[account_id])


class InMemoryPreferenceStore:
    def __init__(self) -> None:
        self.preferences: dict[int, NotificationPreference] = {}

    async def find_by_account_id(self, account_id: int) -> NotificationPreference | None:
        return self.preferences.get(account_id)

    async def find_by_account_ids(self, account_ids: Sequence[int]) -> dict[int, NotificationPreference]:
        return {i: self.preferences[i] for i in account_ids if i in self.preferences}

    async def upsert(self, account_id: int, preferences: dict[str, bool]) -> NotificationPreference:
        pref = self.preferences.get(account_id)
        if pref is None:
            pref = NotificationPreference(account_id=account_id, system=True, partnership=True, alerts=True)
            self.preferences[account_id] = pref
        for key in PREFERENCE_KEYS:
            if key in preferences:
                setattr(pref, key, bool(preferences[key]))
        return pref


class InMemoryNotificationStore:
    def __init__(self) -> None:
        self.notifications: list[Notification] = []
        self._next_id = 1
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _in_scope(self, n: Notification, account_id: int | None) -> bool:
        return account_id is None or n.account_id == account_id

    async def create(self, record: NotificationRecord) -> Notification:
        self._clock += timedelta(seconds=1)
        notification = Notification(
            id=self._next_id,
            account_id=record.account_id,
            title=record.title,
            message=record.message,
            category=record.category,
            is_read=False,
            created_at=self._clock,
        )
        self._next_id += 1
        self.notifications.append(notification)
        return notification

    async def create_many(self, records: Sequence[NotificationRecord]) -> int:
        for record in records:
            await self.create(record)
        return len(records)

    async def list_page(
        self,
        account_id: int | None,
        page: int = 1,
        per_page: int = 20,
        category: str | None = None,
        is_read: bool | None = None,
    ) -> tuple[list[Notification], int]:
        matching = [
            n
            for n in self.notifications
            if self._in_scope(n, account_id)
            and (category is None or n.category == category)
            and (is_read is None or n.is_read is is_read)
        ]
        matching.sort(key=lambda n: (n.created_at, n.id), reverse=True)
        start = (page - 1) * per_page
        return matching[start : start + per_page], len(matching)

    async def count_unread(self, account_id: int | None) -> int:
        return sum(1 for n in self.notifications if self._in_scope(n, account_id) and not n.is_read)

    async def mark_as_read(self, notification_id: int, account_id: int | None) -> Notification | None:
        for n in self.notifications:
            if n.id == notification_id and self._in_scope(n, account_id):
                n.is_read = True
                return n
        return None

    async def mark_all_as_read(self, account_id: int | None) -> int:
        count = 0
        for n in self.notifications:
            if self._in_scope(n, account_id) and not n.is_read:
                n.is_read = True
                count += 1
        return count

    async def delete(self, notification_id: int, account_id: int | None) -> bool:
        for n in self.notifications:
            if n.id == notification_id and self._in_scope(n, account_id):
                self.notifications.remove(n)
                return True
        return False


class FakeSession:
    """Stands in for AsyncSession where routers touch the session directly."""

    def __init__(self) -> None:
        self.added: list[Any] = []
        self.commits = 0
        self.rollbacks = 0
        self._next_id = 1

    def add(self, obj: Any) -> None:
        self.added.append(obj)

    async def get(self, model: type, ident: Any) -> Any:
        return next((o for o in self.added if isinstance(o, model) and o.id == ident), None)

    async def flush(self) -> None:
        for obj in self.added:
            if getattr(obj, "id", None) is None:
                obj.id = self._next_id
                self._next_id += 1

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def execute(self, *_args: Any, **_kwargs: Any) -> Any:
        return None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def account_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def preference_store() -> InMemoryPreferenceStore:
    return InMemoryPreferenceStore()


@pytest.fixture
def notification_store() -> InMemoryNotificationStore:
    return InMemoryNotificationStore()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def dispatcher(
    account_store: InMemoryAccountStore,
    preference_store: InMemoryPreferenceStore,
    notification_store: InMemoryNotificationStore,
) -> NotificationDispatcher:
    return NotificationDispatcher(account_store, preference_store, notification_store)


@pytest.fixture
def make_account(account_store: InMemoryAccountStore) -> Callable[..., Any]:
    """Factory that stores an account. Every account's password is DEFAULT_PASSWORD."""

    async def _make(
        email: str = "admin@university.edu",
        role: str = ROLE_ADMIN,
        campus_id: str | None = "campus-north",
        status: str = "active",
        **fields: Any,
    ) -> Account:
        account = Account(
            first_name=fields.pop("first_name", "Ada"),
            last_name=fields.pop("last_name", "Lovelace"),
            email=email,
            password_hash=fields.pop("password_hash", _DEFAULT_HASH),
            role=role,
            campus_id=None if role == ROLE_SUPERADMIN else campus_id,
            status=status,
            failed_login_attempts=fields.pop("failed_login_attempts", 0),
            last_failed_login=fields.pop("last_failed_login", None),
            account_locked_until=fields.pop("account_locked_until", None),
            **fields,
        )
        return await account_store.save(account)

    return _make


@pytest.fixture
def app(
    account_store: InMemoryAccountStore,
    preference_store: InMemoryPreferenceStore,
    notification_store: InMemoryNotificationStore,
    dispatcher: NotificationDispatcher,
    fake_session: FakeSession,
) -> Any:
    """App with every store dependency pointed at the in-memory fakes."""
    application = create_app()

    async def _session() -> AsyncGenerator[FakeSession, None]:
        yield fake_session

    application.dependency_overrides[get_session] = _session
    application.dependency_overrides[get_account_store] = lambda: account_store
    application.dependency_overrides[get_preference_store] = lambda: preference_store
    application.dependency_overrides[get_notification_store] = lambda: notification_store
    application.dependency_overrides[get_dispatcher] = lambda: dispatcher
    return application


@pytest_asyncio.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the ASGI app (no lifespan, so no DB or Redis)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def auth_headers(account: Account) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(account)}"}


@pytest.fixture
def headers_for() -> Callable[[Account], dict[str, str]]:
    """Bearer headers for an account."""
    return auth_headers
