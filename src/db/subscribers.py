from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, Text, func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from src.db.connection import Base


class Subscriber(Base):
    __tablename__ = "prologue_subscribers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    subscribed_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.current_timestamp(),
        nullable=False,
    )


async def insert_subscriber(session: AsyncSession, *, email: str, ip_address: str) -> int | None:
    """Insert a subscriber unless the email is already stored.

    Returns the new row id, or None when the email already existed. Existing
    rows are left untouched.
    """
    stmt = (
        insert(Subscriber)
        .values(email=email, ip_address=ip_address)
        .on_conflict_do_nothing(index_elements=[Subscriber.email])
        .returning(Subscriber.id)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()

