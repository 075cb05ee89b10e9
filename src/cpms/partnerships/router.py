"""Partnership endpoints that raise notifications — /api/v1/partnerships."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from cpms.auth.dependencies import require_active_account
from cpms.database import get_session
from cpms.db.models import Account, Partnership
from cpms.dependencies import get_dispatcher
from cpms.notifications.dispatcher import NotificationDispatcher, NotificationEvent
from cpms.partnerships.schemas import CreatePartnershipRequest, PartnershipResponse, UpdatePartnershipRequest
from cpms.partnerships.service import (
    PartnershipNotFoundError,
    create_partnership,
    partnership_created_event,
    partnership_updated_event,
    update_partnership,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/partnerships", tags=["Partnerships"])


def _partnership_response(partnership: Partnership) -> PartnershipResponse:
    return PartnershipResponse(
        id=partnership.id,
        partner_institution=partnership.partner_institution,
        status=partnership.status,
        campus_id=partnership.campus_id,
        potential_start_date=partnership.potential_start_date,
        duration_years=partnership.duration_years,
        description=partnership.description,
        created_by=partnership.created_by,
        created_at=partnership.created_at,
    )


async def _notify(
    db: AsyncSession,
    dispatcher: NotificationDispatcher,
    event: NotificationEvent,
    partnership_id: int,
) -> None:
    """Dispatch after the partnership is committed; failures are logged, not raised."""
    try:
        await dispatcher.dispatch(event)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("partnership_notification_failed", partnership_id=partnership_id, title=event.title)


@router.post("", response_model=PartnershipResponse, status_code=201)
async def create_partnership_endpoint(
    body: CreatePartnershipRequest,
    account: Account = Depends(require_active_account),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    db: AsyncSession = Depends(get_session),
) -> PartnershipResponse:
    """Record a partnership request and notify admins."""
    partnership = await create_partnership(
        db,
        account,
        partner_institution=body.partner_institution,
        potential_start_date=body.potential_start_date,
        duration_years=body.duration_years,
        description=body.description,
        status=body.status,
    )
    await db.commit()

    await _notify(db, dispatcher, partnership_created_event(partnership), partnership.id)
    return _partnership_response(partnership)


@router.put("/{partnership_id}", response_model=PartnershipResponse)
async def update_partnership_endpoint(
    partnership_id: int,
    body: UpdatePartnershipRequest,
    account: Account = Depends(require_active_account),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    db: AsyncSession = Depends(get_session),
) -> PartnershipResponse:
    """Edit a partnership and notify admins of the change."""
    try:
        partnership = await update_partnership(db, account, partnership_id, body.model_dump(exclude_none=True))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except PartnershipNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()

    await _notify(db, dispatcher, partnership_updated_event(partnership), partnership.id)
    return _partnership_response(partnership)
