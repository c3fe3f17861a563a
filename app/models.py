"""
SQLAlchemy ORM Models for the Playback Scheduler

This module defines the database model for scheduled playback entries.
"""
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class Base(DeclarativeBase):
    """Base class for all ORM models"""
    pass


class UTCDateTime(TypeDecorator):
    """Stores naive UTC in SQLite and always hands back timezone-aware UTC."""
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Recurrence(str, Enum):
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Schedule(Base):
    """A single scheduled playback occurrence"""
    __tablename__ = "schedules"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    channel: Mapped[str] = mapped_column(String, nullable=False)
    start_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    duration_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    recurrence: Mapped[str] = mapped_column(String, nullable=False, default=Recurrence.NONE.value)
    program_url: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)

    # None is treated the same as False by the claim update
    preplay_published: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=False)

    __table_args__ = (
        Index("idx_schedules_user_start", "user_id", "start_at"),
        Index("idx_schedules_channel_start", "channel", "start_at"),
        Index("idx_schedules_start", "start_at"),
    )

    def __repr__(self) -> str:
        return f"<Schedule(id={self.id}, user_id={self.user_id}, start_at={self.start_at})>"
