"""Pre-register SuperAdmin accounts.

Reads CPMS_SUPERADMIN_EMAILS (JSON list) and creates an active SuperAdmin
for every email not already registered. Generated passwords are printed
once and never stored in plaintext.

Usage: python -m cpms.accounts.bootstrap
"""

from __future__ import annotations

import asyncio

import structlog

from cpms.accounts.service import create_account
from cpms.accounts.store import AccountStore, SqlAccountStore
from cpms.config import get_settings
from cpms.database import close_db, get_session_factory, init_db
from cpms.db.models import ROLE_SUPERADMIN
from cpms.middleware.logging import setup_logging

logger = structlog.get_logger()


async def register_superadmins(store: AccountStore, emails: list[str]) -> dict[str, str | None]:
    """Create missing SuperAdmins. Maps email -> new password, or None if it already existed."""
    created: dict[str, str | None] = {}
    for email in emails:
        if await store.find_by_email(email) is not None:
            created[email] = None
            continue
        _account, password = await create_account(
            store,
            email=email,
            first_name="Super",
            last_name=email.split("@", 1)[0],
            role=ROLE_SUPERADMIN,
        )
        created[email] = password
    return created


async def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    if not settings.superadmin_emails:
        logger.warning("no_superadmin_emails_configured")
        return

    await init_db(settings.database_url)
    try:
        async with get_session_factory()() as db:
            created = await register_superadmins(SqlAccountStore(db), settings.superadmin_emails)
            await db.commit()
    finally:
        await close_db()

    for email, password in created.items():
        if password is None:
            print(f"SuperAdmin {email}: already registered (use reset password to change)")  # noqa: T201
        else:
            print(f"SuperAdmin {email}: {password}")  # noqa: T201


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
