"""Partnerships table (fields that drive notifications).

Revision ID: 002_partnerships
Revises: 001_accounts_notifications
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002_partnerships"
down_revision: str | None = "001_accounts_notifications"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the partnerships table."""
    op.create_table(
        "partnerships",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("partner_institution", sa.String(200), nullable=False),
        sa.Column("status", sa.String(16), server_default="Pending", nullable=False),
        sa.Column("campus_id", sa.String(64), nullable=False),
        sa.Column("potential_start_date", sa.Date(), nullable=True),
        sa.Column("duration_years", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by", sa.BigInteger(), sa.ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_partnerships_campus_id", "partnerships", ["campus_id"])
    op.create_index("ix_partnerships_status", "partnerships", ["status"])
    op.execute(
        "ALTER TABLE partnerships ADD CONSTRAINT ck_partnerships_status "
        "CHECK (status IN ('Pending', 'Active', 'Rejected', 'Expired'))"
    )


def downgrade() -> None:
    """Drop the partnerships table."""
    op.drop_index("ix_partnerships_status", table_name="partnerships")
    op.drop_index("ix_partnerships_campus_id", table_name="partnerships")
    op.drop_table("partnerships")
