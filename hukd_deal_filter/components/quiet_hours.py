"""
Quiet hours gate.

Quiet hours are a per-channel local time window during which deliveries are
deferred. Times are HH:MM (24-hour) in the channel's timezone and the window
is half-open, [start, end). A window whose start is after its end spans
midnight, e.g. 22:00 - 08:00.
"""

import logging
from datetime import datetime, timezone, tzinfo
from typing import Optional, Tuple

from dateutil import tz

from ..models.channel import TIME_PATTERN, QuietHoursSchedule

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

TIMEZONE_OPTIONS = [
    ("Europe/London", "London (GMT/BST)"),
    ("Europe/Paris", "Paris (CET/CEST)"),
    ("Europe/Berlin", "Berlin (CET/CEST)"),
    ("Europe/Amsterdam", "Amsterdam (CET/CEST)"),
    ("Europe/Dublin", "Dublin (GMT/IST)"),
    ("America/New_York", "New York (EST/EDT)"),
    ("America/Los_Angeles", "Los Angeles (PST/PDT)"),
    ("America/Chicago", "Chicago (CST/CDT)"),
    ("Asia/Tokyo", "Tokyo (JST)"),
    ("Asia/Singapore", "Singapore (SGT)"),
    ("Australia/Sydney", "Sydney (AEST/AEDT)"),
    ("UTC", "UTC"),
]


def parse_time_to_minutes(value: str) -> int:
    """
    Parse an HH:MM time string into minutes since midnight.

    Raises:
        ValueError: If the value is not a valid 24-hour time
    """
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time of day: {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Resolve a zone name, falling back to UTC for unknown zones."""
    zone = tz.gettz(name) if name else None
    if zone is None:
        logger.warning(f"Unknown quiet hours timezone {name!r}, using UTC")
        return tz.UTC
    return zone


def local_minutes(instant: datetime, zone_name: Optional[str]) -> int:
    """Minutes since local midnight of an instant in the named zone."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    local = instant.astimezone(resolve_timezone(zone_name))
    return local.hour * 60 + local.minute


def in_window(current: int, start: int, end: int) -> bool:
    """Half-open containment test that handles windows spanning midnight."""
    if start > end:
        return current >= start or current < end
    return start <= current < end


def is_quiet(schedule: Optional[QuietHoursSchedule], instant: Optional[datetime] = None) -> bool:
    """
    Check whether an instant falls within a channel's quiet hours.

    Args:
        schedule: The channel's quiet-hours schedule
        instant: Moment to test; naive datetimes are UTC, None means now

    Returns:
        True if deliveries should be deferred
    """
    if schedule is None or not schedule.is_configured:
        return False

    try:
        start = parse_time_to_minutes(schedule.start)
        end = parse_time_to_minutes(schedule.end)
    except ValueError as e:
        logger.warning(f"Ignoring malformed quiet hours: {e}")
        return False

    if instant is None:
        instant = datetime.now(timezone.utc)

    return in_window(local_minutes(instant, schedule.timezone), start, end)


def validate_quiet_hours(
    start: Optional[str], end: Optional[str]
) -> Tuple[bool, Optional[str]]:
    """
    Validate a pair of quiet hours times.

    Both empty is valid (quiet hours disabled). Equal start and end is
    allowed and yields an empty window.
    """
    if not start and not end:
        return True, None

    if not start or not end:
        return False, "Both start and end times are required"

    if not TIME_PATTERN.match(start):
        return False, "Start time must be in HH:mm format (00:00 - 23:59)"

    if not TIME_PATTERN.match(end):
        return False, "End time must be in HH:mm format (00:00 - 23:59)"

    return True, None


def format_quiet_hours(schedule: Optional[QuietHoursSchedule]) -> Optional[str]:
    """Human-readable description, e.g. "22:00 - 08:00 (London)"."""
    if schedule is None or not schedule.is_configured:
        return None

    zone = schedule.timezone or "UTC"
    short_zone = zone.split("/")[-1]
    return f"{schedule.start} - {schedule.end} ({short_zone})"
