"""Pydantic schemas for notification endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Category = Literal["Partnerships", "System", "Alerts"]


class NotificationResponse(BaseModel):
    id: int
    account_id: int
    title: str
    message: str
    category: str
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    page: int
    per_page: int
    pages: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class SendNotificationRequest(BaseModel):
    """Manual send. Without account_id the event is broadcast to all admins."""

    title: str = Field(..., min_length=1, max_length=256)
    message: str = Field(..., min_length=1, max_length=5000)
    category: Category
    account_id: int | None = None


class SendNotificationResponse(BaseModel):
    recipients: int
    delivered: int


class NotificationPreferences(BaseModel):
    system: bool = True
    partnership: bool = True
    alerts: bool = True


class NotificationPreferencesUpdate(BaseModel):
    """Partial update; omitted flags keep their current value."""

    system: bool | None = None
    partnership: bool | None = None
    alerts: bool | None = None
