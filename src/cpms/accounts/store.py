"""
Account persistence.

`AccountStore` is the contract the authentication and notification code
depends on; `SqlAccountStore` implements it over an AsyncSession.

Failed-login bookkeeping is a single conditional UPDATE ... RETURNING so two
concurrent wrong-password requests cannot both read the same counter and
write back the same increment.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import case, delete, or_, select, update

from cpms.db.models import Account

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from cpms.auth.lockout import LockoutPolicy


class AccountStore(Protocol):
    """Read/write contract for account records."""

    async def find_by_email(self, email: str) -> Account | None: ...

    async def find_by_id(self, account_id: int) -> Account | None: ...

    async def find_by_roles(self, roles: Iterable[str]) -> list[Account]: ...

    async def list_all(self) -> list[Account]: ...

    async def save(self, account: Account) -> Account: ...

    async def delete(self, account_id: int) -> bool: ...

    async def record_failure(self, account_id: int, now: datetime, policy: LockoutPolicy) -> Account: ...

    async def record_success(self, account_id: int) -> Account: ...


class SqlAccountStore:
    """AccountStore backed by the `accounts` table."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_by_email(self, email: str) -> Account | None:
        """Exact match on the stored email."""
        result = await self._db.execute(select(Account).where(Account.email == email))
        return result.scalar_one_or_none()

    async def find_by_id(self, account_id: int) -> Account | None:
        result = await self._db.execute(select(Account).where(Account.id == account_id))
        return result.scalar_one_or_none()

    async def find_by_roles(self, roles: Iterable[str]) -> list[Account]:
        result = await self._db.execute(
            select(Account).where(Account.role.in_(list(roles))).order_by(Account.id)
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[Account]:
        result = await self._db.execute(select(Account).order_by(Account.id))
        return list(result.scalars().all())

    async def save(self, account: Account) -> Account:
        account.updated_at = datetime.now(timezone.utc)
        if account.created_at is None:
            account.created_at = account.updated_at
        self._db.add(account)
        await self._db.flush()
        return account

    async def delete(self, account_id: int) -> bool:
        """Hard delete. Notifications and preferences cascade; partnerships keep a null creator."""
        result = await self._db.execute(
            delete(Account).where(Account.id == account_id).execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0

    async def record_failure(self, account_id: int, now: datetime, policy: LockoutPolicy) -> Account:
        """Count one failed attempt and lock the account once the threshold is hit.

        The counter restarts at 1 when the previous failure is older than the
        reset window. Both CASE branches read the pre-update row, so the lock
        decision uses the same count that is written.
        """
        window_start = now - policy.reset_window
        next_count = case(
            (
                or_(
                    Account.last_failed_login.is_(None),
                    Account.last_failed_login < window_start,
                ),
                1,
            ),
            else_=Account.failed_login_attempts + 1,
        )
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(
                failed_login_attempts=next_count,
                last_failed_login=now,
                account_locked_until=case(
                    (next_count >= policy.max_failed_attempts, now + policy.lockout_duration),
                    else_=Account.account_locked_until,
                ),
                updated_at=now,
            )
            .returning(Account)
            .execution_options(synchronize_session="fetch", populate_existing=True)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one()

    async def record_success(self, account_id: int) -> Account:
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(
                failed_login_attempts=0,
                last_failed_login=None,
                account_locked_until=None,
                updated_at=datetime.now(timezone.utc),
            )
            .returning(Account)
            .execution_options(synchronize_session="fetch", populate_existing=True)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one()
