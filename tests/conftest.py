"""
Playback Scheduler Test Configuration

Shared fixtures and configuration for all tests.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import _create_session_factory, create_engine_for_path
from app.models import Base, Schedule
from app.schemas import PrePlaybackEvent
from app.services.claim_coordinator import ClaimCoordinator
from app.services.event_publisher import EventDispatcher
from app.services.preplay_scan_service import PrePlaybackScanner
from app.services.schedule_store import ScheduleStore


NOW = datetime(2025, 10, 9, 20, 0, 0, tzinfo=timezone.utc)


# ============ Schedule Builders ============


def make_schedule(
    schedule_id: str,
    start_at: datetime | None,
    *,
    duration_min: int | None = 30,
    user_id: str = "u1",
    channel: str = "ch1",
    program_url: str | None = None,
    preplay_published: bool | None = False,
) -> Schedule:
    """Build a detached Schedule row."""
    return Schedule(
        id=schedule_id,
        user_id=user_id,
        title=f"Program {schedule_id}",
        channel=channel,
        start_at=start_at,
        duration_min=duration_min,
        recurrence="NONE",
        program_url=program_url or f"http://media.test/{schedule_id}.mp4",
        preplay_published=preplay_published,
        created_at=NOW - timedelta(days=1),
        updated_at=NOW - timedelta(days=1),
    )


# ============ Publisher Doubles ============


class RecordingPublisher:
    """Collects published events; optionally fails every publish."""

    def __init__(self, fail: bool = False):
        self.events: list[PrePlaybackEvent] = []
        self.fail = fail

    async def publish(self, event, exchange=None, routing_key=None) -> bool:
        if self.fail:
            raise ConnectionError("sink unavailable")
        self.events.append(event)
        return True


# ============ Database Fixtures ============


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """File-backed SQLite so concurrent sessions use separate connections."""
    engine = create_engine_for_path(str(tmp_path / "scheduler-test.db"), busy_timeout_sec=30)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield _create_session_factory(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def store(session_factory) -> ScheduleStore:
    return ScheduleStore(session_factory)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def scanner(store: ScheduleStore, publisher: RecordingPublisher) -> PrePlaybackScanner:
    return PrePlaybackScanner(
        store,
        ClaimCoordinator(store, clock=lambda: NOW),
        EventDispatcher(publisher),
        clock=lambda: NOW,
    )
