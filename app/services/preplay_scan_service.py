"""
Pre-playback scanning

One scan cycle selects entries whose start falls in the lookahead window,
claims each one atomically and dispatches an event for every claim won.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Literal

from app.models import Schedule
from app.schemas import ScanSummaryResponse
from app.services.claim_coordinator import ClaimCoordinator, ClaimOutcome
from app.services.event_publisher import DispatchOutcome, EventDispatcher
from app.services.schedule_store import ScheduleStore
from app.utils.logging_helpers import log_scan_heartbeat, log_scan_summary, log_scan_window
from app.utils.timezone import calculate_scan_window, ensure_utc


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScanSummary:
    scan_number: int
    started_at: datetime
    window_start: datetime
    window_end: datetime
    status: Literal["success", "failed"] = "success"
    candidates: int = 0
    claimed: int = 0
    already_claimed: int = 0
    claim_errors: int = 0
    dispatched: int = 0
    dispatch_failures: int = 0
    dropped: int = 0
    error: str | None = None

    def to_response(self) -> ScanSummaryResponse:
        return ScanSummaryResponse(
            scan_number=self.scan_number,
            status=self.status,
            started_at=self.started_at,
            window_start=self.window_start,
            window_end=self.window_end,
            candidates=self.candidates,
            claimed=self.claimed,
            already_claimed=self.already_claimed,
            claim_errors=self.claim_errors,
            dispatched=self.dispatched,
            dispatch_failures=self.dispatch_failures,
            dropped=self.dropped,
            error=self.error,
        )


def select_in_window(
    schedules: Iterable[Schedule],
    window_start: datetime,
    window_end: datetime,
) -> list[Schedule]:
    """Entries with window_start <= start_at < window_end; entries without a start are dropped"""
    return [
        schedule
        for schedule in schedules
        if schedule.start_at is not None
        and window_start <= ensure_utc(schedule.start_at) < window_end
    ]


class PrePlaybackScanner:
    """Runs scan cycles and keeps the heartbeat state for observability."""

    def __init__(
        self,
        store: ScheduleStore,
        coordinator: ClaimCoordinator,
        dispatcher: EventDispatcher,
        *,
        lookahead_start_min: int = 5,
        lookahead_width_min: int = 1,
        max_concurrency: int = 8,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._coordinator = coordinator
        self._dispatcher = dispatcher
        self._lookahead_start_min = lookahead_start_min
        self._lookahead_width_min = lookahead_width_min
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._last_scan: datetime | None = None
        self._scan_count = 0
        self._last_summary: ScanSummary | None = None

    @property
    def last_scan(self) -> datetime | None:
        return self._last_scan

    @property
    def scan_count(self) -> int:
        return self._scan_count

    @property
    def last_summary(self) -> ScanSummary | None:
        return self._last_summary

    async def run_cycle(self, now: datetime | None = None) -> ScanSummary:
        """
        Execute one scan cycle.

        Per-entry failures are counted in the summary; a failure while listing
        entries marks the summary failed. Nothing is raised to the caller so the
        timer keeps ticking.

        Args:
            now: Reference instant, defaults to the scanner clock
        """
        now = ensure_utc(now or self._clock())

        # No await between these updates: overlapping cycles cannot interleave them
        self._last_scan = now
        self._scan_count += 1
        scan_number = self._scan_count

        window_start, window_end = calculate_scan_window(
            now, self._lookahead_start_min, self._lookahead_width_min
        )
        summary = ScanSummary(
            scan_number=scan_number,
            started_at=now,
            window_start=window_start,
            window_end=window_end,
        )
        log_scan_heartbeat(logger, scan_number, now)
        log_scan_window(logger, scan_number, window_start, window_end)

        try:
            schedules = await self._store.find_all()
            candidates = select_in_window(schedules, window_start, window_end)
            summary.candidates = len(candidates)
            logger.info("[SCHEDULER] scan#%s found %s candidate(s) in window", scan_number, len(candidates))

            outcomes = await asyncio.gather(
                *(self._process_candidate(schedule) for schedule in candidates)
            )
        except Exception as exc:
            logger.error("[SCHEDULER] scan#%s error: %s", scan_number, exc, exc_info=True)
            summary.status = "failed"
            summary.error = str(exc)
            self._last_summary = summary
            return summary

        for claim_outcome, dispatch_outcome in outcomes:
            if claim_outcome is ClaimOutcome.WON:
                summary.claimed += 1
                if dispatch_outcome is DispatchOutcome.DELIVERED:
                    summary.dispatched += 1
                elif dispatch_outcome is DispatchOutcome.DROPPED:
                    summary.dropped += 1
                else:
                    summary.dispatch_failures += 1
            elif claim_outcome is ClaimOutcome.ALREADY_CLAIMED:
                summary.already_claimed += 1
            else:
                summary.claim_errors += 1

        log_scan_summary(logger, summary)
        self._last_summary = summary
        return summary

    async def _process_candidate(self, schedule: Schedule) -> tuple[ClaimOutcome, DispatchOutcome | None]:
        async with self._semaphore:
            outcome = await self._coordinator.claim(schedule.id)
            if outcome is not ClaimOutcome.WON:
                return outcome, None

            logger.info(
                "[SCHEDULER] claimed schedule id=%s startAt=%s - publishing",
                schedule.id,
                ensure_utc(schedule.start_at).isoformat(),
            )
            dispatch_outcome = await self._dispatcher.dispatch(schedule)
            return outcome, dispatch_outcome
