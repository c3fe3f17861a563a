"""
Structured logging helpers for consistent scan log formatting.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.services.preplay_scan_service import ScanSummary


def log_scan_heartbeat(logger: logging.Logger, scan_number: int, now: datetime) -> None:
    """
    Log the heartbeat emitted at the start of every scan cycle.

    Args:
        logger: Logger instance
        scan_number: Monotonic scan counter value
        now: Reference instant of the scan
    """
    logger.info("[SCHEDULER] heartbeat scan#%s at %s", scan_number, now.isoformat())


def log_scan_window(
    logger: logging.Logger,
    scan_number: int,
    window_start: datetime,
    window_end: datetime,
) -> None:
    """Log the lookahead window a scan covers."""
    logger.info(
        "[SCHEDULER] scan#%s scanning for events between %s and %s",
        scan_number,
        window_start.isoformat(),
        window_end.isoformat(),
    )


def log_scan_summary(logger: logging.Logger, summary: ScanSummary) -> None:
    """
    Log scan cycle totals.

    Args:
        logger: Logger instance
        summary: Completed scan summary
    """
    logger.info(
        "[SCHEDULER] scan#%s complete - candidates=%s, claimed=%s, already_claimed=%s,"
        " claim_errors=%s, dispatched=%s, dispatch_failures=%s, dropped=%s",
        summary.scan_number,
        summary.candidates,
        summary.claimed,
        summary.already_claimed,
        summary.claim_errors,
        summary.dispatched,
        summary.dispatch_failures,
        summary.dropped,
    )
