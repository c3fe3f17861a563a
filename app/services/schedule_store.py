"""
Schedule Store

All database access for scheduled entries, including the atomic conditional
update that the claim protocol relies on.
"""
import logging
from datetime import datetime, timezone
from typing import cast

from sqlalchemy import delete, or_, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import session_scope
from app.models import Schedule


logger = logging.getLogger(__name__)


class ScheduleStore:
    """Async repository over the `schedules` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_all(self) -> list[Schedule]:
        return await self._select(select(Schedule))

    async def find_by_user(self, user_id: str) -> list[Schedule]:
        return await self._select(select(Schedule).where(Schedule.user_id == user_id))

    async def find_by_channel(self, channel: str) -> list[Schedule]:
        return await self._select(select(Schedule).where(Schedule.channel == channel))

    async def find_upcoming(
        self,
        since: datetime,
        limit: int,
        *,
        user_id: str | None = None,
        channel: str | None = None,
    ) -> list[Schedule]:
        """
        Entries starting at or after `since`, earliest first.

        Args:
            since: Lower bound (inclusive) on start time
            limit: Maximum number of rows
            user_id: Restrict to one owner (takes precedence over channel)
            channel: Restrict to one channel
        """
        stmt = select(Schedule).where(
            Schedule.start_at.is_not(None),
            Schedule.start_at >= since,
        )
        if user_id:
            stmt = stmt.where(Schedule.user_id == user_id)
        elif channel:
            stmt = stmt.where(Schedule.channel == channel)

        stmt = stmt.order_by(Schedule.start_at, Schedule.id).limit(limit)
        return await self._select(stmt)

    async def get(self, schedule_id: str) -> Schedule | None:
        async with session_scope(self._session_factory) as session:
            return await session.get(Schedule, schedule_id)

    async def save(self, schedule: Schedule) -> Schedule:
        async with session_scope(self._session_factory) as session:
            merged = await session.merge(schedule)
            await session.flush()
        logger.debug("Saved schedule id=%s", merged.id)
        return merged

    async def delete(self, schedule_id: str) -> int:
        """Delete one entry. Returns the number of rows removed (0 or 1)."""
        async with session_scope(self._session_factory) as session:
            result = cast(
                CursorResult,
                await session.execute(delete(Schedule).where(Schedule.id == schedule_id)),
            )
        deleted = result.rowcount or 0
        logger.debug("Deleted schedule id=%s (rows=%s)", schedule_id, deleted)
        return deleted

    async def claim_preplay(self, schedule_id: str, now: datetime | None = None) -> int:
        """
        Atomically flip the pre-playback flag from false/absent to true.

        This is a single conditional UPDATE, never read-then-write, so any
        number of concurrent callers sees at most one modified row.

        Args:
            schedule_id: Entry to claim
            now: Value written to updated_at

        Returns:
            Number of rows modified: 1 when this caller won the claim, 0 when the
            entry was already claimed or no longer exists
        """
        stmt = (
            update(Schedule)
            .where(
                Schedule.id == schedule_id,
                or_(
                    Schedule.preplay_published.is_(False),
                    Schedule.preplay_published.is_(None),
                ),
            )
            .values(
                preplay_published=True,
                updated_at=now or datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )

        async with session_scope(self._session_factory) as session:
            result = cast(CursorResult, await session.execute(stmt))

        return result.rowcount or 0

    async def _select(self, stmt) -> list[Schedule]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())
