"""Accounts, notification preferences, and notifications.

Creates accounts (with lockout columns), notification_preferences and
notifications tables.

Revision ID: 001_accounts_notifications
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_accounts_notifications"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create account and notification tables."""
    # --- accounts ---
    op.create_table(
        "accounts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("role", sa.String(16), server_default="Admin", nullable=False),
        sa.Column("campus_id", sa.String(64), nullable=True),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("failed_login_attempts", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_failed_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("account_locked_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_accounts_email", "accounts", ["email"], unique=True)
    op.create_index("ix_accounts_role", "accounts", ["role"])

    op.execute(
        "ALTER TABLE accounts ADD CONSTRAINT ck_accounts_role "
        "CHECK (role IN ('Admin', 'SuperAdmin'))"
    )
    op.execute(
        "ALTER TABLE accounts ADD CONSTRAINT ck_accounts_status "
        "CHECK (status IN ('pending', 'active', 'inactive'))"
    )
    op.execute(
        "ALTER TABLE accounts ADD CONSTRAINT ck_accounts_campus "
        "CHECK (role = 'SuperAdmin' OR campus_id IS NOT NULL)"
    )
    op.execute(
        "ALTER TABLE accounts ADD CONSTRAINT ck_accounts_failed_attempts "
        "CHECK (failed_login_attempts >= 0)"
    )

    # --- notification_preferences ---
    op.create_table(
        "notification_preferences",
        sa.Column(
            "account_id",
            sa.BigInteger(),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("system", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("partnership", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("alerts", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.BigInteger(), sa.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_notifications_account_id", "notifications", ["account_id"])
    op.create_index("ix_notifications_account_unread", "notifications", ["account_id", "is_read"])
    op.execute(
        "ALTER TABLE notifications ADD CONSTRAINT ck_notifications_category "
        "CHECK (category IN ('Partnerships', 'System', 'Alerts'))"
    )


def downgrade() -> None:
    """Drop account and notification tables."""
    op.drop_table("notifications")
    op.drop_table("notification_preferences")
    op.drop_index("ix_accounts_role", table_name="accounts")
    op.drop_index("ix_accounts_email", table_name="accounts")
    op.drop_table("accounts")
