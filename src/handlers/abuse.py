from __future__ import annotations

import logging
from datetime import timedelta

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, get_settings
from src.db.rate_limits import count_recent_attempts, prune_attempts, record_attempt

logger = logging.getLogger(__name__)


class RateLimitResult(BaseModel):
    allowed: bool
    reason: str | None = None
    attempts: int = 0


def is_honeypot_triggered(value: str | None) -> bool:
    return bool(value)


async def check_signup_rate(
    db: AsyncSession,
    source_address: str,
    settings: Settings | None = None,
) -> RateLimitResult:
    active_settings = settings or get_settings()
    window = timedelta(hours=active_settings.signup_rate_limit_window_hours)
    count = await count_recent_attempts(db, source_address, window=window)
    if count >= active_settings.signup_rate_limit_max:
        return RateLimitResult(allowed=False, reason="signup_hourly_limit", attempts=count)
    return RateLimitResult(allowed=True, attempts=count)


async def record_signup_attempt(
    db: AsyncSession,
    source_address: str,
    settings: Settings | None = None,
) -> None:
    """Log an accepted attempt, then drop attempts past the retention window."""
    active_settings = settings or get_settings()
    await record_attempt(db, source_address)

    retention = timedelta(hours=active_settings.rate_limit_retention_hours)
    try:
        async with db.begin_nested():
            pruned = await prune_attempts(db, older_than=retention)
    except SQLAlchemyError:
        logger.warning("Pruning old rate limit attempts failed; continuing", exc_info=True)
        return
    if pruned:
        logger.info("Pruned %d rate limit attempts", pruned)
