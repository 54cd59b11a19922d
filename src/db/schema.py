from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from src.db.connection import Base
from src.db.rate_limits import RateLimitAttempt  # noqa: F401
from src.db.subscribers import Subscriber  # noqa: F401

logger = logging.getLogger(__name__)

# Tables created before source addresses were tracked lack this column.
ADD_IP_ADDRESS_COLUMN = "ALTER TABLE prologue_subscribers ADD COLUMN IF NOT EXISTS ip_address TEXT"
# create_all skips indexes of a table that already exists.
CREATE_RATE_LIMIT_INDEX = (
    "CREATE INDEX IF NOT EXISTS ix_rate_limits_ip_attempted_at ON rate_limits (ip_address, attempted_at)"
)


async def ensure_schema(engine: AsyncEngine) -> None:
    """Create the signup tables if missing and backfill late-added columns and indexes.

    Safe to run on every startup; each statement is a no-op once applied.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
        await conn.execute(text(ADD_IP_ADDRESS_COLUMN))
        await conn.execute(text(CREATE_RATE_LIMIT_INDEX))
    logger.info("Signup schema ensured")
