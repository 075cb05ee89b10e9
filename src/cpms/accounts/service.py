"""Account administration business logic."""

from __future__ import annotations

import secrets
import string
from typing import TYPE_CHECKING

import structlog

from cpms.auth.password import hash_password
from cpms.db.models import CATEGORY_SYSTEM, PRIVILEGED_ROLES, ROLE_SUPERADMIN, Account
from cpms.notifications.dispatcher import NotificationEvent

if TYPE_CHECKING:
    from cpms.accounts.store import AccountStore
    from cpms.notifications.dispatcher import NotificationDispatcher

logger = structlog.get_logger()

_PASSWORD_ALPHABET = string.ascii_letters + string.digits
_PASSWORD_SPECIALS = "!@#$%^&*"


def generate_password(length: int = 12) -> str:
    """Random password that satisfies the strength policy."""
    required = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice(_PASSWORD_SPECIALS),
    ]
    rest = [secrets.choice(_PASSWORD_ALPHABET + _PASSWORD_SPECIALS) for _ in range(length - len(required))]
    chars = required + rest
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


async def create_account(
    accounts: AccountStore,
    email: str,
    first_name: str,
    last_name: str,
    role: str,
    campus_id: str | None = None,
    status: str = "active",
) -> tuple[Account, str]:
    """
    Create an account with a generated password.

    Returns:
        Tuple of (account, plaintext_password). The password is not stored
        anywhere and cannot be recovered later.

    Raises:
        ValueError: If the role is unknown, an Admin has no campus, or the
            email is already registered.
    """
    if role not in PRIVILEGED_ROLES:
        msg = f"Invalid role: {role}"
        raise ValueError(msg)
    if role != ROLE_SUPERADMIN and not campus_id:
        msg = "campus_id is required for Admin accounts"
        raise ValueError(msg)

    if await accounts.find_by_email(email) is not None:
        msg = "Email is already registered"
        raise ValueError(msg)

    password = generate_password()
    account = Account(
        email=email,
        first_name=first_name,
        last_name=last_name,
        password_hash=hash_password(password),
        role=role,
        campus_id=None if role == ROLE_SUPERADMIN else campus_id,
        status=status,
        failed_login_attempts=0,
    )
    await accounts.save(account)
    logger.info("account_created", account_id=account.id, role=role, campus_id=account.campus_id)
    return account, password


async def assign_account(
    accounts: AccountStore,
    dispatcher: NotificationDispatcher,
    email: str,
    first_name: str,
    last_name: str,
    role: str,
    campus_id: str | None = None,
) -> tuple[Account, str]:
    """Create an active account and tell the new account holder about it."""
    account, password = await create_account(accounts, email, first_name, last_name, role, campus_id)
    await dispatcher.dispatch(
        NotificationEvent(
            title="User Account Created",
            message=f"A new user account has been created for {account.first_name} {account.last_name}",
            category=CATEGORY_SYSTEM,
            target_account_id=account.id,
        )
    )
    return account, password


async def update_account(accounts: AccountStore, account_id: int, changes: dict) -> Account | None:
    """Apply field changes to an account. Returns None if it does not exist.

    Raises:
        ValueError: If the new email belongs to another account, or the
            result would be an Admin with no campus.
    """
    account = await accounts.find_by_id(account_id)
    if account is None:
        return None

    email = changes.get("email")
    if email is not None and email != account.email:
        existing = await accounts.find_by_email(email)
        if existing is not None and existing.id != account.id:
            msg = "Email is already registered"
            raise ValueError(msg)

    role = changes.get("role", account.role)
    campus_id = changes.get("campus_id", account.campus_id)
    if role != ROLE_SUPERADMIN and not campus_id:
        msg = "campus_id is required for Admin accounts"
        raise ValueError(msg)

    for field in ("email", "first_name", "last_name", "status"):
        if field in changes:
            setattr(account, field, changes[field])
    account.role = role
    account.campus_id = None if role == ROLE_SUPERADMIN else campus_id

    await accounts.save(account)
    logger.info("account_updated", account_id=account.id, fields=sorted(changes))
    return account


async def delete_account(accounts: AccountStore, account_id: int) -> bool:
    deleted = await accounts.delete(account_id)
    if deleted:
        logger.info("account_deleted", account_id=account_id)
    return deleted
