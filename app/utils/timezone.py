"""
Date and Time utilities

This module handles XMLTV timestamp parsing and the grid window arithmetic.
Centralizes all date parsing logic to maintain consistency across the application.
"""
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo
import logging
import re

from app.exceptions import InvalidFormatError

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 1440

_XMLTV_TIME_RE = re.compile(r'^(\d{14}) ([+-])(\d{2})(\d{2})$')


def parse_xmltv_time(time_str: str | None) -> datetime:
    """
    Parse an XMLTV timestamp keeping its UTC offset

    Args:
        time_str: XMLTV time like '20080715003000 -0600'

    Returns:
        Timezone-aware datetime carrying the feed's fixed offset

    Raises:
        InvalidFormatError: If the value is not exactly 'yyyyMMddHHmmss +hhmm'
    """
    match = _XMLTV_TIME_RE.match(time_str) if isinstance(time_str, str) else None
    if match is None:
        raise InvalidFormatError(f"Invalid XMLTV time format: '{time_str}'")

    time_part, sign, tz_hours, tz_mins = match.groups()

    try:
        dt = datetime.strptime(time_part, '%Y%m%d%H%M%S')
        offset = timedelta(hours=int(tz_hours), minutes=int(tz_mins))
        tz = timezone(-offset if sign == '-' else offset)
    except ValueError as e:
        raise InvalidFormatError(f"Invalid XMLTV time value: '{time_str}'") from e

    return dt.replace(tzinfo=tz)


def format_xmltv_time(dt: datetime) -> str:
    """Format an aware datetime as an XMLTV timestamp"""
    return dt.strftime('%Y%m%d%H%M%S %z')


def _normalize_iso8601_string(date_str: str) -> str:
    """Normalize ISO8601 string by replacing 'Z' with '+00:00'"""
    return date_str.replace('Z', '+00:00') if date_str.endswith('Z') else date_str


def parse_iso8601(date_str: str) -> datetime:
    """
    Parse ISO8601 date string keeping its offset

    The grid is aligned to midnight in the offset the caller supplies, so
    unlike the feed parser this does not convert to UTC.

    Args:
        date_str: ISO8601 datetime string (e.g., '2024-03-24T01:30:00-05:00')

    Returns:
        Timezone-aware datetime (naive input is taken as UTC)

    Raises:
        InvalidFormatError: If the date string format is invalid
    """
    try:
        dt = datetime.fromisoformat(_normalize_iso8601_string(date_str))
    except (ValueError, AttributeError, TypeError) as e:
        raise InvalidFormatError(f"Invalid ISO8601 datetime format: '{date_str}'") from e

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def current_time(tz_name: str = "UTC") -> datetime:
    """Get the current instant in the given IANA timezone"""
    if tz_name == "UTC":
        return datetime.now(timezone.utc)
    return datetime.now(ZoneInfo(tz_name))


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole elapsed minutes from start to end, truncated toward zero"""
    elapsed = end.astimezone(timezone.utc) - start.astimezone(timezone.utc)
    return int(elapsed.total_seconds() / 60)


def add_minutes(dt: datetime, minutes: int) -> datetime:
    """Add elapsed minutes to an aware datetime, keeping its timezone"""
    return (dt.astimezone(timezone.utc) + timedelta(minutes=minutes)).astimezone(dt.tzinfo)


def align_to_slot(now: datetime, slot_width: int) -> datetime:
    """
    Get the latest grid boundary at or before now

    Boundaries are multiples of slot_width elapsed minutes from midnight in
    now's own timezone, so a DST change during the day shifts the wall-clock
    labels but never the slot length.

    Args:
        now: Reference instant (timezone-aware)
        slot_width: Minutes per timeslot, must divide a day evenly

    Returns:
        The aligned window start
    """
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0, fold=0)
    minutes_into_day = minutes_between(midnight, now)
    slot_index = minutes_into_day // slot_width
    return add_minutes(midnight, slot_index * slot_width)
