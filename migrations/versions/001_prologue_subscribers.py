"""Create prologue_subscribers table.

Revision ID: 001_prologue_subscribers
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import context, op

revision = "001_prologue_subscribers"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # IF NOT EXISTS: the table may predate this migration (startup schema ensure or the old site).
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS prologue_subscribers (
            id SERIAL PRIMARY KEY,
            email TEXT UNIQUE NOT NULL,
            subscribed_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )


def downgrade() -> None:
    """Drop prologue_subscribers, refusing while it still holds subscribers.

    upgrade() cannot tell whether it created the table, so a populated table is
    treated as data this revision does not own.
    """
    if context.is_offline_mode():
        op.drop_table("prologue_subscribers")
        return
    populated = op.get_bind().execute(sa.text("SELECT EXISTS (SELECT 1 FROM prologue_subscribers)")).scalar()
    if populated:
        raise RuntimeError(
            "prologue_subscribers still has rows; export or delete them before downgrading past "
            f"{revision}"
        )
    op.drop_table("prologue_subscribers")
