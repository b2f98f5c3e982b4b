"""
Time helpers for step duration and budget arithmetic.

Step durations are stored in minutes; time budgets are expressed in workdays.
One workday is ``workday_hours`` hours of effort (8 by default), not a
calendar day.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

MINUTES_PER_HOUR = 60
DEFAULT_WORKDAY_HOURS = 8.0


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def average_minutes(time_min: float, time_max: float) -> float:
    """Midpoint of an estimated ``[time_min, time_max]`` range, in minutes."""
    return (time_min + time_max) / 2


def workdays_to_minutes(days: float, workday_hours: float = DEFAULT_WORKDAY_HOURS) -> float:
    """Convert a budget in workdays into minutes of effort.

    Args:
        days: Budget in workdays.
        workday_hours: Hours of effort per workday.

    Returns:
        ``days * workday_hours * 60``.
    """
    return days * workday_hours * MINUTES_PER_HOUR


def minutes_to_workdays(minutes: float, workday_hours: float = DEFAULT_WORKDAY_HOURS) -> float:
    """Inverse of ``workdays_to_minutes``."""
    return minutes / (workday_hours * MINUTES_PER_HOUR)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as stored in SQLite, or ``None``.

    A trailing ``Z`` is accepted. Naive values are assumed to be UTC.
    """
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Format a datetime as ``YYYY-MM-DDTHH:MM:SSZ`` (UTC), or ``None``."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
