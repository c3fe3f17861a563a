"""
Now-Playing Service

Resolves, for one viewer, the entry playing right now (and how far into it
"now" is) plus the next entry to start. The resolver itself is pure.
"""
from datetime import datetime, timedelta, timezone
from typing import Iterable
import logging

from app.models import Schedule
from app.schemas import NowPlayingResponse, NowPlayingStatus, ScheduleEntryView
from app.services.schedule_store import ScheduleStore
from app.utils.timezone import ensure_utc

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MIN = 30


def _duration(schedule: Schedule, default_duration_min: int) -> int:
    return schedule.duration_min if schedule.duration_min is not None else default_duration_min


def _to_view(schedule: Schedule, duration: int, skip_start_min: int) -> ScheduleEntryView:
    return ScheduleEntryView(
        id=schedule.id,
        video_url=schedule.program_url,
        start_time=ensure_utc(schedule.start_at),
        duration_min=duration,
        skip_start_min=skip_start_min,
    )


def resolve_now_playing(
    schedules: Iterable[Schedule],
    now: datetime,
    default_duration_min: int = DEFAULT_DURATION_MIN,
) -> NowPlayingResponse:
    """
    Compute the active and next entries at `now`

    An entry is active when start <= now < start + duration. If several are
    active the one starting last (ties by id) wins. The next entry is the
    earliest one starting strictly after now.

    Args:
        schedules: The viewer's entries, in any order
        now: Reference instant
        default_duration_min: Duration used for entries without one

    Returns:
        PLAY with the active entry and elapsed whole minutes, or NONE; either
        way with the next entry when there is one
    """
    now = ensure_utc(now)
    timed = sorted(
        (s for s in schedules if s.start_at is not None),
        key=lambda s: (ensure_utc(s.start_at), s.id),
    )

    active: Schedule | None = None
    upcoming: Schedule | None = None

    for schedule in timed:
        start = ensure_utc(schedule.start_at)
        end = start + timedelta(minutes=_duration(schedule, default_duration_min))

        if start <= now < end:
            active = schedule
        elif start > now and upcoming is None:
            # Sorted ascending, so the first future entry is the earliest
            upcoming = schedule

    next_view = None
    if upcoming is not None:
        next_view = _to_view(upcoming, _duration(upcoming, default_duration_min), 0)

    if active is None:
        return NowPlayingResponse(status=NowPlayingStatus.NONE, entry=None, next_entry=next_view)

    elapsed_seconds = int((now - ensure_utc(active.start_at)).total_seconds())
    active_view = _to_view(active, _duration(active, default_duration_min), elapsed_seconds // 60)
    return NowPlayingResponse(status=NowPlayingStatus.PLAY, entry=active_view, next_entry=next_view)


async def get_now_playing(
    store: ScheduleStore,
    user_id: str,
    *,
    now: datetime | None = None,
    default_duration_min: int = DEFAULT_DURATION_MIN,
) -> NowPlayingResponse:
    """Load a viewer's entries and resolve what is playing"""
    now = now or datetime.now(timezone.utc)
    schedules = await store.find_by_user(user_id)
    result = resolve_now_playing(schedules, now, default_duration_min)
    logger.debug(
        "Now playing for user=%s: status=%s entry=%s next=%s",
        user_id,
        result.status.value,
        result.entry.id if result.entry else None,
        result.next_entry.id if result.next_entry else None,
    )
    return result
