import logging
from datetime import datetime, timezone
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.services.preplay_scan_service import PrePlaybackScanner


logger = logging.getLogger(__name__)

SCAN_JOB_ID = "preplay_scan"


class PlaybackScheduler:
    """Recurring timer that drives pre-playback scan cycles"""

    def __init__(
        self,
        scanner: PrePlaybackScanner,
        *,
        period_ms: int = 60000,
        max_overlap: int = 3,
        misfire_grace_sec: int = 30,
    ):
        self.scanner = scanner
        self.period_ms = period_ms
        self.max_overlap = max_overlap
        self.misfire_grace_sec = misfire_grace_sec
        self.scheduler: AsyncIOScheduler | None = None

    async def _scan_job(self) -> None:
        """Background job that runs one scan cycle"""
        try:
            summary = await self.scanner.run_cycle()
            if summary.status == "failed":
                logger.error("Scheduled scan #%s failed: %s", summary.scan_number, summary.error)
        except Exception as e:
            logger.error(f"Exception in scheduled scan: {e}", exc_info=True)

    @property
    def running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    def start(self) -> None:
        """Start the timer; the first scan fires immediately"""
        if self.running:
            logger.warning("Scheduler already running")
            return

        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.scheduler.add_job(
            self._scan_job,
            trigger=IntervalTrigger(seconds=self.period_ms / 1000, timezone="UTC"),
            id=SCAN_JOB_ID,
            max_instances=self.max_overlap,
            coalesce=True,
            misfire_grace_time=self.misfire_grace_sec,
            next_run_time=datetime.now(timezone.utc),
        )

        self.scheduler.start()
        logger.info("Scheduler started. Scanning every %sms", self.period_ms)

    def shutdown(self) -> None:
        """Shutdown the timer without waiting for in-flight scans"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self.scheduler = None

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled scan time"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(SCAN_JOB_ID)
        return job.next_run_time if job else None
