"""Track signup source addresses and add rate_limits table.

Revision ID: 002_rate_limits
Revises: 001_prologue_subscribers
Create Date: 2026-10-08 00:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "002_rate_limits"
down_revision = "001_prologue_subscribers"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("ALTER TABLE prologue_subscribers ADD COLUMN IF NOT EXISTS ip_address TEXT")
    op.create_table(
        "rate_limits",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ip_address", sa.Text(), nullable=False),
        sa.Column(
            "attempted_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        if_not_exists=True,
    )
    # Window lookups: WHERE ip_address = ? AND attempted_at > ?
    op.create_index(
        "ix_rate_limits_ip_attempted_at",
        "rate_limits",
        ["ip_address", "attempted_at"],
        if_not_exists=True,
    )


def downgrade() -> None:
    op.drop_index("ix_rate_limits_ip_attempted_at", table_name="rate_limits")
    op.drop_table("rate_limits")
    op.drop_column("prologue_subscribers", "ip_address")
