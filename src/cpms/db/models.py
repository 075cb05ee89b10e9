"""ORM models for accounts, notifications, and partnerships.

Tables are created by the Alembic migrations in alembic/versions.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cpms.db.base import Base

ROLE_ADMIN = "Admin"
ROLE_SUPERADMIN = "SuperAdmin"
PRIVILEGED_ROLES = (ROLE_ADMIN, ROLE_SUPERADMIN)

ACCOUNT_STATUSES = ("pending", "active", "inactive")

CATEGORY_PARTNERSHIPS = "Partnerships"
CATEGORY_SYSTEM = "System"
CATEGORY_ALERTS = "Alerts"
NOTIFICATION_CATEGORIES = (CATEGORY_PARTNERSHIPS, CATEGORY_SYSTEM, CATEGORY_ALERTS)

PARTNERSHIP_STATUSES = ("Pending", "Active", "Rejected", "Expired")


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class Account(Base):
    """Maps to the 'accounts' table."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default=ROLE_ADMIN)
    campus_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="pending")

    # --- Lockout ---
    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_failed_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    account_locked_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    preference: Mapped[NotificationPreference | None] = relationship(
        "NotificationPreference", back_populates="account", uselist=False
    )


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationPreference(Base):
    """Per-account notification category switches. Missing row means all enabled."""

    __tablename__ = "notification_preferences"

    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    partnership: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    account: Mapped[Account] = relationship("Account", back_populates="preference")


class Notification(Base):
    """One delivered notification. Broadcasts are stored as one row per recipient."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Partnerships
# ---------------------------------------------------------------------------


class Partnership(Base):
    """Partnership record. Only the fields that drive notifications are modelled."""

    __tablename__ = "partnerships"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    partner_institution: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="Pending")
    campus_id: Mapped[str] = mapped_column(String(64), nullable=False)
    potential_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    duration_years: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
