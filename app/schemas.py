from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScheduleRequest(CamelModel):
    """Create-schedule request"""
    user_id: str = Field(..., min_length=1, max_length=100, description="Owner of the entry")
    title: str = Field(..., min_length=1, max_length=200)
    channel: str = Field(..., min_length=1, max_length=100)
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="Local date, yyyy-MM-dd")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="Local time, HH:mm")
    duration_min: int | None = Field(None, ge=1, description="Duration in minutes (default 30)")
    recurrence: str = Field(..., pattern=r"^(NONE|DAILY|WEEKLY|MONTHLY)$")
    program_url: str | None = Field(None, max_length=1000)
    notes: str | None = Field(None, max_length=2000)


class ScheduleResponse(CamelModel):
    """Stored schedule entry"""
    id: str
    user_id: str
    title: str
    channel: str
    start_at: datetime | None
    duration_min: int | None
    recurrence: str
    program_url: str | None
    notes: str | None
    created_at: datetime | None
    updated_at: datetime | None


class PrePlaybackEvent(CamelModel):
    """Immutable notification payload built when an entry is claimed"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    schedule_id: str
    user_id: str
    channel: str
    program_url: str | None
    start_at: datetime
    duration_min: int | None


class NowPlayingStatus(str, Enum):
    PLAY = "PLAY"
    NONE = "NONE"


class ScheduleEntryView(CamelModel):
    """Projection of an entry for playback clients"""
    id: str
    video_url: str | None
    start_time: datetime = Field(..., description="Start instant with explicit UTC offset")
    duration_min: int
    skip_start_min: int = Field(0, description="Minutes already elapsed since start")


class NowPlayingResponse(CamelModel):
    """What is playing now and what plays next"""
    status: NowPlayingStatus
    entry: ScheduleEntryView | None = None
    next_entry: ScheduleEntryView | None = None


class ScanSummaryResponse(CamelModel):
    """Outcome of one scan cycle"""
    scan_number: int
    status: str
    started_at: datetime
    window_start: datetime
    window_end: datetime
    candidates: int
    claimed: int
    already_claimed: int
    claim_errors: int
    dispatched: int
    dispatch_failures: int
    dropped: int = 0
    error: str | None = None


class SchedulerStatusResponse(CamelModel):
    """Scan heartbeat state"""
    running: bool
    next_scan: datetime | None
    last_scan: datetime | None
    scan_count: int
    last_summary: ScanSummaryResponse | None = None


class ErrorResponse(BaseModel):
    """Standard error body"""
    error: str = Field(..., description="Human-readable error message")
    message: str | None = Field(None, description="Underlying exception message")
