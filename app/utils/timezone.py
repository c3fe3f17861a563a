"""
Date and Time utilities

This module handles all date/time conversions, parsing, and scan window calculations.
Centralizes all date parsing logic to maintain consistency across the application.
"""
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo
import logging

logger = logging.getLogger(__name__)


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to timezone-aware UTC

    Naive values are taken to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_local_datetime(date_str: str, time_str: str, tz_name: str = "UTC") -> datetime:
    """
    Combine a local calendar date and wall-clock time into an absolute UTC instant

    Args:
        date_str: Date in yyyy-MM-dd form (e.g. '2025-10-09')
        time_str: Time in HH:mm form (e.g. '20:30')
        tz_name: IANA timezone the local values are expressed in

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the date or time is not a valid calendar value
    """
    try:
        local_date = date.fromisoformat(date_str)
        local_time = time.fromisoformat(time_str)
    except ValueError as e:
        raise DateFormatError(f"Invalid date/time: '{date_str} {time_str}'") from e

    zone = timezone.utc if tz_name == "UTC" else ZoneInfo(tz_name)
    local_dt = datetime.combine(local_date, local_time, tzinfo=zone)
    return local_dt.astimezone(timezone.utc)


def calculate_scan_window(
    now: datetime,
    start_offset_min: int,
    width_min: int,
) -> tuple[datetime, datetime]:
    """
    Calculate the half-open lookahead window scanned for pre-playback events

    Args:
        now: Reference instant of the scan
        start_offset_min: Minutes from now where the window opens
        width_min: Window width in minutes

    Returns:
        Tuple of (window_start, window_end); window_end is exclusive
    """
    window_start = ensure_utc(now) + timedelta(minutes=start_offset_min)
    window_end = window_start + timedelta(minutes=width_min)
    return window_start, window_end
