"""Lock table ORM mapping."""

from datetime import datetime

from sqlalchemy import DateTime, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for Lockbox tables."""


class CacheLock(Base):
    """A time-bounded claim on a resource key.

    The primary key on ``lock_key`` is the only thing that keeps two callers
    from holding the same key at once.
    """

    __tablename__ = "cache_locks"

    lock_key: Mapped[str] = mapped_column(Text, primary_key=True)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    holder_id: Mapped[str] = mapped_column(Text, nullable=False)
