from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import DateTime, Index, Integer, Text, delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from src.db.connection import Base


class RateLimitAttempt(Base):
    __tablename__ = "rate_limits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ip_address: Mapped[str] = mapped_column(Text, nullable=False)
    attempted_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.current_timestamp(),
        nullable=False,
    )

    __table_args__ = (Index("ix_rate_limits_ip_attempted_at", "ip_address", "attempted_at"),)


# Windows are evaluated against the database clock so that every app instance
# agrees on what "the last hour" means.
async def count_recent_attempts(session: AsyncSession, ip_address: str, *, window: timedelta) -> int:
    result = await session.execute(
        select(func.count(RateLimitAttempt.id)).where(
            RateLimitAttempt.ip_address == ip_address,
            RateLimitAttempt.attempted_at > func.now() - window,
        )
    )
    return int(result.scalar_one())


async def record_attempt(session: AsyncSession, ip_address: str) -> None:
    await session.execute(insert(RateLimitAttempt).values(ip_address=ip_address))


async def prune_attempts(session: AsyncSession, *, older_than: timedelta) -> int:
    """Delete attempts older than ``older_than``. Returns the number of rows removed."""
    result = await session.execute(
        delete(RateLimitAttempt).where(RateLimitAttempt.attempted_at < func.now() - older_than)
    )
    return int(result.rowcount or 0)
