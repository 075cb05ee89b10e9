"""
Account lockout state machine.

States:
    unlocked -- account_locked_until is None or in the past
    locked   -- account_locked_until is in the future

A failed credential check counts toward the lock threshold unless the
previous failure is older than the reset window, in which case counting
restarts at 1. Reaching the threshold locks the account for the lockout
duration. A successful check clears all three lockout fields.

An expired lock is not cleared on read; the stale timestamp stays on the
row until the next failure or success rewrites it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import structlog

from cpms.config import Settings, get_settings

if TYPE_CHECKING:
    from cpms.accounts.store import AccountStore
    from cpms.db.models import Account

logger = structlog.get_logger()


@dataclass(frozen=True)
class LockoutPolicy:
    """Thresholds for the lockout state machine."""

    max_failed_attempts: int = 5
    lockout_duration: timedelta = timedelta(minutes=15)
    reset_window: timedelta = timedelta(minutes=10)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> LockoutPolicy:
        settings = settings or get_settings()
        return cls(
            max_failed_attempts=settings.lockout_max_failed_attempts,
            lockout_duration=timedelta(minutes=settings.lockout_duration_minutes),
            reset_window=timedelta(minutes=settings.lockout_reset_window_minutes),
        )

    @property
    def lockout_minutes(self) -> int:
        return math.ceil(self.lockout_duration.total_seconds() / 60)


@dataclass(frozen=True)
class LockoutStatus:
    """Result of a lockout check."""

    locked: bool
    remaining_minutes: int = 0


def is_locked(account: Account, now: datetime) -> bool:
    """Return True while account_locked_until is in the future."""
    return account.account_locked_until is not None and now < account.account_locked_until


def remaining_lockout_minutes(account: Account, now: datetime) -> int:
    """Minutes until the lock expires, rounded up, never negative."""
    if account.account_locked_until is None:
        return 0
    remaining = (account.account_locked_until - now).total_seconds() / 60
    return max(0, math.ceil(remaining))


def check_lockout(account: Account, now: datetime) -> LockoutStatus:
    """Report the lockout state without touching the account."""
    if not is_locked(account, now):
        return LockoutStatus(locked=False)
    return LockoutStatus(locked=True, remaining_minutes=remaining_lockout_minutes(account, now))


def remaining_attempts(account: Account, policy: LockoutPolicy) -> int:
    """Failures left before the account locks."""
    return max(0, policy.max_failed_attempts - account.failed_login_attempts)


def should_reset_attempts(account: Account, now: datetime, policy: LockoutPolicy) -> bool:
    """True when the previous failure no longer counts toward the threshold."""
    if account.last_failed_login is None:
        return True
    return account.last_failed_login < now - policy.reset_window


def apply_failure(account: Account, now: datetime, policy: LockoutPolicy) -> Account:
    """Apply one failed attempt to the account's lockout fields in place.

    This is the in-process form of the transition; SqlAccountStore performs
    the same transition as a single UPDATE statement.
    """
    if should_reset_attempts(account, now, policy):
        account.failed_login_attempts = 1
    else:
        account.failed_login_attempts += 1
    account.last_failed_login = now
    if account.failed_login_attempts >= policy.max_failed_attempts:
        account.account_locked_until = now + policy.lockout_duration
    return account


def apply_success(account: Account) -> Account:
    """Clear the lockout fields in place."""
    account.failed_login_attempts = 0
    account.last_failed_login = None
    account.account_locked_until = None
    return account


async def record_failure(
    accounts: AccountStore,
    account: Account,
    now: datetime,
    policy: LockoutPolicy | None = None,
) -> Account:
    """Persist a failed attempt and return the updated account."""
    policy = policy or LockoutPolicy.from_settings()
    updated = await accounts.record_failure(account.id, now, policy)
    if is_locked(updated, now) and updated.failed_login_attempts >= policy.max_failed_attempts:
        logger.warning(
            "account_locked",
            account_id=updated.id,
            failed_attempts=updated.failed_login_attempts,
            locked_until=updated.account_locked_until.isoformat() if updated.account_locked_until else None,
        )
    return updated


async def record_success(accounts: AccountStore, account: Account) -> Account:
    """Persist a successful attempt and return the updated account."""
    return await accounts.record_success(account.id)
