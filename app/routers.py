from datetime import datetime, timedelta, timezone
from typing import Annotated
import logging

from fastapi import APIRouter, Depends, Query, Response, status

from app.config import settings
from app.dependencies import (
    get_event_publisher,
    get_playback_scheduler,
    get_scanner,
    get_schedule_store,
)
from app.schemas import (
    NowPlayingResponse,
    PrePlaybackEvent,
    ScanSummaryResponse,
    ScheduleRequest,
    ScheduleResponse,
    SchedulerStatusResponse,
)
from app.services import schedule_service
from app.services.event_publisher import PrePlaybackEventPublisher
from app.services.now_playing_service import get_now_playing
from app.services.preplay_scan_service import PrePlaybackScanner
from app.services.schedule_store import ScheduleStore
from app.services.scheduler_service import PlaybackScheduler


logger = logging.getLogger(__name__)

StoreDep = Annotated[ScheduleStore, Depends(get_schedule_store)]
ScannerDep = Annotated[PrePlaybackScanner, Depends(get_scanner)]
SchedulerDep = Annotated[PlaybackScheduler, Depends(get_playback_scheduler)]
PublisherDep = Annotated[PrePlaybackEventPublisher, Depends(get_event_publisher)]

main_router = APIRouter()
schedules_router = APIRouter(prefix="/api/schedules", tags=["schedules"])
debug_router = APIRouter(prefix="/api/debug", tags=["debug"])


@main_router.get("/")
async def root(scheduler: SchedulerDep) -> dict:
    """Root endpoint with service information"""
    next_run = scheduler.get_next_run_time()

    return {
        "service": "Playback Scheduler",
        "version": "0.1.0",
        "next_scheduled_scan": next_run.isoformat() if next_run else None,
        "endpoints": {
            "scan": "/scan - Manually trigger a pre-playback scan",
            "schedules": "/api/schedules - Create and list schedule entries",
            "now": "/api/schedules/now?userId= - What is playing now and next",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check(scheduler: SchedulerDep, scanner: ScannerDep) -> dict:
    """Health check endpoint"""
    next_run = scheduler.get_next_run_time()
    last_scan = scanner.last_scan
    return {
        "status": "ok",
        "scheduler_running": scheduler.running,
        "next_scan": next_run.isoformat() if next_run else None,
        "last_scan": last_scan.isoformat() if last_scan else None,
        "scan_count": scanner.scan_count,
    }


@main_router.post("/scan", response_model=ScanSummaryResponse)
async def trigger_scan(scanner: ScannerDep) -> ScanSummaryResponse:
    """
    Manually run one pre-playback scan cycle

    Claims are atomic, so this is safe while the timer is also scanning
    """
    logger.info("Manual scan triggered via API")
    summary = await scanner.run_cycle()
    return summary.to_response()


@main_router.get("/api/scheduler/status", response_model=SchedulerStatusResponse)
async def scheduler_status(scheduler: SchedulerDep, scanner: ScannerDep) -> SchedulerStatusResponse:
    last_summary = scanner.last_summary
    return SchedulerStatusResponse(
        running=scheduler.running,
        next_scan=scheduler.get_next_run_time(),
        last_scan=scanner.last_scan,
        scan_count=scanner.scan_count,
        last_summary=last_summary.to_response() if last_summary else None,
    )


@schedules_router.post("", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
async def create(request: ScheduleRequest, store: StoreDep) -> ScheduleResponse:
    logger.info("Create schedule called for userId=%s channel=%s", request.user_id, request.channel)
    return await schedule_service.create_schedule(
        store,
        request,
        tz_name=settings.schedule_timezone,
        default_duration_min=settings.default_duration_min,
    )


@schedules_router.get("/now", response_model=NowPlayingResponse)
async def now_playing(
    store: StoreDep,
    user_id: Annotated[str, Query(alias="userId", min_length=1)],
) -> NowPlayingResponse:
    """What is playing right now for a viewer, and what plays next"""
    return await get_now_playing(
        store,
        user_id,
        default_duration_min=settings.default_duration_min,
    )


@schedules_router.get("", response_model=list[ScheduleResponse])
async def list_schedules(
    store: StoreDep,
    user_id: Annotated[str | None, Query(alias="userId")] = None,
    channel: Annotated[str | None, Query()] = None,
) -> list[ScheduleResponse]:
    return await schedule_service.list_schedules(store, user_id=user_id, channel=channel)


@schedules_router.get("/upcoming", response_model=list[ScheduleResponse])
async def upcoming(
    store: StoreDep,
    user_id: Annotated[str | None, Query(alias="userId")] = None,
    channel: Annotated[str | None, Query()] = None,
    limit: Annotated[int | None, Query()] = None,
) -> list[ScheduleResponse]:
    return await schedule_service.list_upcoming(
        store,
        user_id=user_id,
        channel=channel,
        limit=limit,
        default_limit=settings.upcoming_default_limit,
    )


@schedules_router.get("/{schedule_id}", response_model=ScheduleResponse)
async def get_one(schedule_id: str, store: StoreDep) -> ScheduleResponse:
    return await schedule_service.get_schedule(store, schedule_id)


@schedules_router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete(schedule_id: str, store: StoreDep) -> Response:
    await schedule_service.delete_schedule(store, schedule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@debug_router.post("/publish-test")
async def publish_test(
    publisher: PublisherDep,
    schedule_id: Annotated[str, Query(alias="id")] = "manual1",
    user_id: Annotated[str, Query(alias="userId")] = "u1",
) -> dict:
    """Publish a synthetic pre-playback event to check the sink wiring"""
    event = PrePlaybackEvent(
        schedule_id=schedule_id,
        user_id=user_id,
        channel="debug-channel",
        program_url="http://example.com/video.mp4",
        start_at=datetime.now(timezone.utc) + timedelta(minutes=5),
        duration_min=30,
    )
    delivered = await publisher.publish(event)
    return {"status": "published" if delivered else "dropped", "scheduleId": schedule_id}
