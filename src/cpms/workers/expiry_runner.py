"""Standalone runner for the partnership expiry notifier.

Scans for Active partnerships nearing the end of their term and broadcasts
an Alerts notification for each, then sleeps until the next scan.

Usage: python -m cpms.workers.expiry_runner [--once]
"""

from __future__ import annotations

import asyncio
import signal
import sys

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cpms.accounts.store import SqlAccountStore
from cpms.config import get_settings
from cpms.database import close_db, get_session_factory, init_db
from cpms.middleware.logging import setup_logging
from cpms.notifications.dispatcher import NotificationDispatcher
from cpms.notifications.store import SqlNotificationStore, SqlPreferenceStore
from cpms.partnerships.service import notify_expiring_partnerships

logger = structlog.get_logger()


async def run_scan(session_factory: async_sessionmaker[AsyncSession]) -> int:
    """One expiry scan in its own session and transaction."""
    async with session_factory() as db:
        dispatcher = NotificationDispatcher(
            SqlAccountStore(db),
            SqlPreferenceStore(db),
            SqlNotificationStore(db),
        )
        count = await notify_expiring_partnerships(db, dispatcher)
        await db.commit()
        return count


async def main(once: bool = False) -> None:
    """Run the expiry notifier until SIGINT/SIGTERM."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    session_factory = get_session_factory()

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    interval = settings.expiry_scan_interval_hours * 3600
    logger.info("expiry_runner_started", interval_seconds=interval)

    try:
        while not stop.is_set():
            try:
                await run_scan(session_factory)
            except Exception:
                logger.exception("expiry_scan_failed")
            if once:
                break
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
    finally:
        await close_db()
        logger.info("expiry_runner_stopped")


def run() -> None:
    asyncio.run(main(once="--once" in sys.argv[1:]))


if __name__ == "__main__":
    run()
