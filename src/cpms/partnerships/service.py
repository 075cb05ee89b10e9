"""Partnership events: creation, updates and expiry alerts.

Only the partnership actions that raise notifications live here.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from cpms.config import get_settings
from cpms.db.models import (
    CATEGORY_ALERTS,
    CATEGORY_PARTNERSHIPS,
    ROLE_SUPERADMIN,
    Account,
    Partnership,
)
from cpms.notifications.dispatcher import NotificationEvent

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from cpms.notifications.dispatcher import NotificationDispatcher

logger = structlog.get_logger()

DEFAULT_CAMPUS = "default_campus"


async def create_partnership(
    db: AsyncSession,
    creator: Account,
    partner_institution: str,
    potential_start_date: date | None = None,
    duration_years: int | None = None,
    description: str | None = None,
    status: str = "Pending",
) -> Partnership:
    """Insert a partnership scoped to the creator's campus."""
    partnership = Partnership(
        partner_institution=partner_institution,
        status=status,
        campus_id=DEFAULT_CAMPUS if creator.role == ROLE_SUPERADMIN else (creator.campus_id or DEFAULT_CAMPUS),
        potential_start_date=potential_start_date,
        duration_years=duration_years,
        description=description,
        created_by=creator.id,
        created_at=datetime.now(timezone.utc),
    )
    db.add(partnership)
    await db.flush()
    logger.info("partnership_created", partnership_id=partnership.id, campus_id=partnership.campus_id)
    return partnership


def partnership_created_event(partnership: Partnership) -> NotificationEvent:
    return NotificationEvent(
        title="New Partnership Request",
        message=f"{partnership.partner_institution} has requested a new partnership",
        category=CATEGORY_PARTNERSHIPS,
    )


class PartnershipNotFoundError(LookupError):
    pass


async def update_partnership(
    db: AsyncSession,
    editor: Account,
    partnership_id: int,
    changes: dict,
) -> Partnership:
    """Apply field changes to a partnership.

    Admins may only edit partnerships they created; SuperAdmins may edit any.

    Raises:
        PermissionError: An Admin targets a partnership that is missing or
            not theirs.
        PartnershipNotFoundError: A SuperAdmin targets a missing partnership.
    """
    partnership = await db.get(Partnership, partnership_id)
    if editor.role != ROLE_SUPERADMIN:
        if partnership is None or partnership.created_by != editor.id:
            msg = "Not authorized to update this partnership"
            raise PermissionError(msg)
    elif partnership is None:
        msg = "Partnership not found"
        raise PartnershipNotFoundError(msg)

    for field, value in changes.items():
        setattr(partnership, field, value)
    await db.flush()
    logger.info("partnership_updated", partnership_id=partnership.id, fields=sorted(changes))
    return partnership


def partnership_updated_event(partnership: Partnership) -> NotificationEvent:
    return NotificationEvent(
        title="Partnership Updated",
        message=f"Partnership {partnership.partner_institution} has been updated",
        category=CATEGORY_PARTNERSHIPS,
    )


def expiration_date(start: date, duration_years: int) -> date:
    """Start date plus whole years; 29 February rolls to 1 March in non-leap years."""
    year = start.year + duration_years
    try:
        return start.replace(year=year)
    except ValueError:
        return date(year, 3, 1)


def is_expiring_soon(partnership: Partnership, now: datetime, notice: timedelta) -> bool:
    """True when the partnership expires in (now, now + notice]."""
    if partnership.potential_start_date is None or not partnership.duration_years:
        return False
    if partnership.duration_years <= 0:
        return False
    expires = datetime.combine(
        expiration_date(partnership.potential_start_date, partnership.duration_years),
        time.min,
        tzinfo=timezone.utc,
    )
    return now < expires <= now + notice


async def find_expiring_partnerships(
    db: AsyncSession,
    now: datetime,
    notice: timedelta,
) -> list[Partnership]:
    """Active partnerships whose term ends within the notice period."""
    result = await db.execute(
        select(Partnership).where(
            Partnership.status == "Active",
            Partnership.potential_start_date.is_not(None),
            Partnership.duration_years.is_not(None),
        )
    )
    return [p for p in result.scalars() if is_expiring_soon(p, now, notice)]


async def notify_expiring_partnerships(
    db: AsyncSession,
    dispatcher: NotificationDispatcher,
    now: datetime | None = None,
) -> int:
    """Broadcast one Alerts notification per partnership nearing expiry.

    Returns the number of partnerships alerted on.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    notice_days = settings.partnership_expiry_notice_days
    expiring = await find_expiring_partnerships(db, now, timedelta(days=notice_days))
    for partnership in expiring:
        await dispatcher.dispatch(
            NotificationEvent(
                title="Partnership Expiring Soon",
                message=f"The partnership with {partnership.partner_institution} will expire in {notice_days} days.",
                category=CATEGORY_ALERTS,
            )
        )
    logger.info("expiry_scan_complete", expiring=len(expiring))
    return len(expiring)
