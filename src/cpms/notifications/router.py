"""Notification API endpoints — /api/v1/notifications."""

from __future__ import annotations

import math

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cpms.auth.dependencies import get_current_account, require_roles
from cpms.database import get_session
from cpms.db.models import ROLE_SUPERADMIN, Account, Notification
from cpms.dependencies import get_dispatcher, get_notification_store, get_preference_store
from cpms.notifications.dispatcher import InvalidEvent, NotificationDispatcher, NotificationEvent
from cpms.notifications.schemas import (
    Category,
    NotificationListResponse,
    NotificationPreferences,
    NotificationPreferencesUpdate,
    NotificationResponse,
    SendNotificationRequest,
    SendNotificationResponse,
    UnreadCountResponse,
)
from cpms.notifications.store import NotificationStore, PreferenceStore, get_or_create_preferences

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


def _owner_scope(account: Account) -> int | None:
    """SuperAdmin sees every notification; Admin sees only their own."""
    return None if account.role == ROLE_SUPERADMIN else account.id


def _notification_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        account_id=n.account_id,
        title=n.title,
        message=n.message,
        category=n.category,
        is_read=n.is_read,
        created_at=n.created_at,
    )


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    category: Category | None = Query(None),
    is_read: bool | None = Query(None),
    account: Account = Depends(get_current_account),
    store: NotificationStore = Depends(get_notification_store),
) -> NotificationListResponse:
    """List notifications (paginated, most recent first)."""
    notifications, total = await store.list_page(
        _owner_scope(account), page=page, per_page=per_page, category=category, is_read=is_read
    )
    return NotificationListResponse(
        notifications=[_notification_response(n) for n in notifications],
        total=total,
        page=page,
        per_page=per_page,
        pages=math.ceil(total / per_page),
    )


@router.get("/unread", response_model=list[NotificationResponse])
async def list_unread(
    account: Account = Depends(get_current_account),
    store: NotificationStore = Depends(get_notification_store),
) -> list[NotificationResponse]:
    """Unread notifications, most recent first (first 100)."""
    notifications, _total = await store.list_page(_owner_scope(account), per_page=100, is_read=False)
    return [_notification_response(n) for n in notifications]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    account: Account = Depends(get_current_account),
    store: NotificationStore = Depends(get_notification_store),
) -> UnreadCountResponse:
    """Get unread notification count."""
    return UnreadCountResponse(unread_count=await store.count_unread(_owner_scope(account)))


@router.post("", response_model=SendNotificationResponse, status_code=201)
async def send_notification(
    body: SendNotificationRequest,
    _admin: Account = Depends(require_roles(ROLE_SUPERADMIN)),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    db: AsyncSession = Depends(get_session),
) -> SendNotificationResponse:
    """Send a notification to one account, or broadcast to all admins."""
    result = await dispatcher.dispatch(
        NotificationEvent(
            title=body.title,
            message=body.message,
            category=body.category,
            target_account_id=body.account_id,
        )
    )
    if isinstance(result, InvalidEvent):
        raise HTTPException(status_code=400, detail=result.reason)
    await db.commit()
    return SendNotificationResponse(recipients=result.recipients, delivered=result.delivered)


@router.get("/settings", response_model=NotificationPreferences)
async def get_settings_endpoint(
    account: Account = Depends(get_current_account),
    preferences: PreferenceStore = Depends(get_preference_store),
    db: AsyncSession = Depends(get_session),
) -> NotificationPreferences:
    """Current account's notification preferences (created on first read)."""
    pref = await get_or_create_preferences(preferences, account.id)
    await db.commit()
    return NotificationPreferences(system=pref.system, partnership=pref.partnership, alerts=pref.alerts)


@router.put("/settings", response_model=NotificationPreferences)
async def update_settings_endpoint(
    body: NotificationPreferencesUpdate,
    account: Account = Depends(get_current_account),
    preferences: PreferenceStore = Depends(get_preference_store),
    db: AsyncSession = Depends(get_session),
) -> NotificationPreferences:
    """Update the current account's notification preferences."""
    pref = await preferences.upsert(account.id, body.model_dump(exclude_none=True))
    await db.commit()
    return NotificationPreferences(system=pref.system, partnership=pref.partnership, alerts=pref.alerts)


@router.patch("/read-all")
async def mark_all_read(
    account: Account = Depends(get_current_account),
    store: NotificationStore = Depends(get_notification_store),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Mark all notifications in scope as read."""
    count = await store.mark_all_as_read(_owner_scope(account))
    await db.commit()
    return {"detail": f"Marked {count} notifications as read"}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    account: Account = Depends(get_current_account),
    store: NotificationStore = Depends(get_notification_store),
    db: AsyncSession = Depends(get_session),
) -> NotificationResponse:
    """Mark a notification as read."""
    notification = await store.mark_as_read(notification_id, _owner_scope(account))
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return _notification_response(notification)


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    account: Account = Depends(get_current_account),
    store: NotificationStore = Depends(get_notification_store),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Delete a notification owned by the caller (or any, for SuperAdmin)."""
    if not await store.delete(notification_id, _owner_scope(account)):
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return {"detail": "Notification deleted"}
