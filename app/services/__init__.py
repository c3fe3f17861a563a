"""
Services package for the Playback Scheduler

This package contains all business logic and service layer components.
"""
from app.services.claim_coordinator import ClaimCoordinator, ClaimOutcome
from app.services.event_publisher import (
    DispatchOutcome,
    EventDispatcher,
    PrePlaybackEventPublisher,
    build_event,
)
from app.services.now_playing_service import get_now_playing, resolve_now_playing
from app.services.preplay_scan_service import PrePlaybackScanner, ScanSummary, select_in_window
from app.services.schedule_store import ScheduleStore
from app.services.scheduler_service import PlaybackScheduler

__all__ = [
    'ClaimCoordinator',
    'ClaimOutcome',
    'DispatchOutcome',
    'EventDispatcher',
    'PrePlaybackEventPublisher',
    'build_event',
    'get_now_playing',
    'resolve_now_playing',
    'PrePlaybackScanner',
    'ScanSummary',
    'select_in_window',
    'ScheduleStore',
    'PlaybackScheduler',
]
