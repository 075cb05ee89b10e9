"""
Authentication business logic.

`authenticate` turns an email/password pair into a tagged login result.
It never raises for an expected outcome and never formats HTTP responses;
the router maps each result type to a status code.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Union

import structlog

from cpms.auth.jwt import create_access_token
from cpms.auth.lockout import (
    LockoutPolicy,
    check_lockout,
    record_failure,
    record_success,
    remaining_attempts,
)
from cpms.auth.password import (
    DUMMY_HASH,
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)

if TYPE_CHECKING:
    from cpms.accounts.store import AccountStore
    from cpms.db.models import Account

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Login results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoginSuccess:
    token: str
    account: Account


@dataclass(frozen=True)
class InvalidCredentials:
    remaining_attempts: int


@dataclass(frozen=True)
class AccountLocked:
    remaining_minutes: int


@dataclass(frozen=True)
class AccountNotFound:
    pass


LoginResult = Union[LoginSuccess, InvalidCredentials, AccountLocked, AccountNotFound]


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate(
    accounts: AccountStore,
    email: str,
    password: str,
    *,
    now: datetime | None = None,
    policy: LockoutPolicy | None = None,
    verify: Callable[[str, str], bool] = verify_password,
    issue_token: Callable[[Account], str] = create_access_token,
) -> LoginResult:
    """
    Authenticate an account with email + password.

    Order matters: the lock check happens before any password comparison,
    so a locked account never reveals whether the password was right and
    the stored counters are left untouched.
    """
    now = now or datetime.now(timezone.utc)
    policy = policy or LockoutPolicy.from_settings()

    account = await accounts.find_by_email(email)
    if account is None:
        # Same hashing cost as a real mismatch
        verify(password, DUMMY_HASH)
        logger.info("login_failed", reason="unknown_email")
        return AccountNotFound()

    lockout = check_lockout(account, now)
    if lockout.locked:
        logger.info(
            "login_locked_rejected",
            account_id=account.id,
            remaining_minutes=lockout.remaining_minutes,
        )
        return AccountLocked(remaining_minutes=lockout.remaining_minutes)

    if not verify(password, account.password_hash):
        account = await record_failure(accounts, account, now, policy)
        remaining = remaining_attempts(account, policy)
        logger.info(
            "login_failed",
            reason="bad_password",
            account_id=account.id,
            failed_attempts=account.failed_login_attempts,
            remaining_attempts=remaining,
        )
        if remaining <= 0:
            return AccountLocked(remaining_minutes=policy.lockout_minutes)
        return InvalidCredentials(remaining_attempts=remaining)

    account = await record_success(accounts, account)

    if check_needs_rehash(account.password_hash):
        account.password_hash = hash_password(password)
        await accounts.save(account)
        logger.info("password_rehashed", account_id=account.id)

    logger.info("login_succeeded", account_id=account.id, role=account.role)
    return LoginSuccess(token=issue_token(account), account=account)


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


async def reset_password(
    accounts: AccountStore,
    account: Account,
    new_password: str,
    confirm_password: str,
) -> Account:
    """
    Replace the account's password.

    Raises:
        ValueError: If the confirmation does not match.
        PasswordStrengthError: If the new password is too weak.
    """
    if new_password != confirm_password:
        msg = "Passwords don't match"
        raise ValueError(msg)
    validate_password_strength(new_password)

    account.password_hash = hash_password(new_password)
    await accounts.save(account)
    logger.info("password_reset", account_id=account.id)
    return account
