"""
Schedule Service

Business logic behind the schedule CRUD endpoints: creating entries from local
date/time input and mapping stored rows to API responses.
"""
from datetime import datetime, timezone
from uuid import uuid4
import logging

from app.models import Recurrence, Schedule
from app.schemas import ScheduleRequest, ScheduleResponse
from app.services.schedule_store import ScheduleStore
from app.utils.timezone import parse_local_datetime

logger = logging.getLogger(__name__)


class ScheduleNotFoundError(LookupError):
    """Raised when a schedule id does not exist"""

    def __init__(self, schedule_id: str):
        super().__init__(f"Schedule not found: {schedule_id}")
        self.schedule_id = schedule_id


def to_response(schedule: Schedule) -> ScheduleResponse:
    return ScheduleResponse(
        id=schedule.id,
        user_id=schedule.user_id,
        title=schedule.title,
        channel=schedule.channel,
        start_at=schedule.start_at,
        duration_min=schedule.duration_min,
        recurrence=schedule.recurrence or Recurrence.NONE.value,
        program_url=schedule.program_url,
        notes=schedule.notes,
        created_at=schedule.created_at,
        updated_at=schedule.updated_at,
    )


async def create_schedule(
    store: ScheduleStore,
    request: ScheduleRequest,
    *,
    tz_name: str = "UTC",
    default_duration_min: int = 30,
) -> ScheduleResponse:
    """
    Create a new, unclaimed entry

    Args:
        store: Schedule store
        request: Validated create request
        tz_name: Timezone the request's local date/time are expressed in
        default_duration_min: Duration stored when the request has none

    Raises:
        DateFormatError: If date/time do not form a valid calendar instant
    """
    start_at = parse_local_datetime(request.date, request.time, tz_name)
    now = datetime.now(timezone.utc)

    schedule = Schedule(
        id=str(uuid4()),
        user_id=request.user_id,
        title=request.title,
        channel=request.channel,
        start_at=start_at,
        duration_min=request.duration_min if request.duration_min is not None else default_duration_min,
        recurrence=Recurrence(request.recurrence).value,
        program_url=request.program_url,
        notes=request.notes,
        preplay_published=False,
        created_at=now,
        updated_at=now,
    )

    logger.info(
        "Creating schedule userId=%s title=%s startAt=%s",
        schedule.user_id,
        schedule.title,
        start_at.isoformat(),
    )
    saved = await store.save(schedule)
    return to_response(saved)


async def get_schedule(store: ScheduleStore, schedule_id: str) -> ScheduleResponse:
    schedule = await store.get(schedule_id)
    if schedule is None:
        raise ScheduleNotFoundError(schedule_id)
    return to_response(schedule)


async def list_schedules(
    store: ScheduleStore,
    *,
    user_id: str | None = None,
    channel: str | None = None,
) -> list[ScheduleResponse]:
    """List entries by owner, else by channel, else all"""
    if user_id and user_id.strip():
        schedules = await store.find_by_user(user_id)
    elif channel and channel.strip():
        schedules = await store.find_by_channel(channel)
    else:
        schedules = await store.find_all()
    return [to_response(schedule) for schedule in schedules]


async def list_upcoming(
    store: ScheduleStore,
    *,
    user_id: str | None = None,
    channel: str | None = None,
    limit: int | None = None,
    default_limit: int = 10,
    now: datetime | None = None,
) -> list[ScheduleResponse]:
    """Entries starting from now onwards, earliest first"""
    effective_limit = limit if limit is not None and limit > 0 else default_limit
    since = now or datetime.now(timezone.utc)

    schedules = await store.find_upcoming(
        since,
        effective_limit,
        user_id=user_id.strip() if user_id and user_id.strip() else None,
        channel=channel.strip() if channel and channel.strip() else None,
    )
    return [to_response(schedule) for schedule in schedules]


async def delete_schedule(store: ScheduleStore, schedule_id: str) -> None:
    deleted = await store.delete(schedule_id)
    if deleted:
        logger.info("Deleted schedule id=%s", schedule_id)
