"""
Unit tests for the scan timer.
"""

import asyncio
from types import SimpleNamespace

import pytest

from app.services.scheduler_service import SCAN_JOB_ID, PlaybackScheduler


class StubScanner:
    def __init__(self, fail: bool = False):
        self.calls = 0
        self.fail = fail

    async def run_cycle(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("boom")
        return SimpleNamespace(status="success", scan_number=self.calls, error=None)


@pytest.mark.unit
class TestPlaybackScheduler:

    @pytest.mark.asyncio
    async def test_start_and_shutdown(self):
        scheduler = PlaybackScheduler(StubScanner(), period_ms=60000)

        scheduler.start()
        try:
            assert scheduler.running
            assert scheduler.scheduler.get_job(SCAN_JOB_ID) is not None
            assert scheduler.get_next_run_time() is not None
        finally:
            scheduler.shutdown()

        assert not scheduler.running
        assert scheduler.get_next_run_time() is None

    @pytest.mark.asyncio
    async def test_job_uses_configured_misfire_grace(self):
        scheduler = PlaybackScheduler(StubScanner(), misfire_grace_sec=45, max_overlap=2)

        scheduler.start()
        try:
            job = scheduler.scheduler.get_job(SCAN_JOB_ID)
            assert job.misfire_grace_time == 45
            assert job.max_instances == 2
        finally:
            scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_first_scan_fires_immediately(self):
        scanner = StubScanner()
        scheduler = PlaybackScheduler(scanner, period_ms=60000)

        scheduler.start()
        try:
            for _ in range(50):
                if scanner.calls:
                    break
                await asyncio.sleep(0.05)
        finally:
            scheduler.shutdown()

        assert scanner.calls >= 1

    @pytest.mark.asyncio
    async def test_job_swallows_scan_exceptions(self, caplog):
        scheduler = PlaybackScheduler(StubScanner(fail=True))

        await scheduler._scan_job()

        assert "Exception in scheduled scan" in caplog.text

    @pytest.mark.asyncio
    async def test_double_start_is_ignored(self):
        scheduler = PlaybackScheduler(StubScanner())

        scheduler.start()
        first = scheduler.scheduler
        try:
            scheduler.start()
            assert scheduler.scheduler is first
        finally:
            scheduler.shutdown()

    def test_shutdown_when_not_started(self):
        scheduler = PlaybackScheduler(StubScanner())

        scheduler.shutdown()

        assert not scheduler.running
