"""
Pure time helpers: week boundaries, formatting and the fragmentation metrics.

Every function that buckets by calendar day or week takes the same optional
``tz``. ``None`` means the system local timezone, so week bucketing and the
context-switch day bucketing always agree.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, Optional

END_OF_DAY = time(23, 59, 59, 999000)


def to_local(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert to the bucketing timezone. Naive values are taken as system local."""
    return value.astimezone(tz) if tz is not None else value.astimezone()


def _at(day: date, at: time, tz: Optional[tzinfo]) -> datetime:
    if tz is not None:
        return datetime.combine(day, at, tzinfo=tz)
    return datetime.combine(day, at).astimezone()


def get_week_start(value: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> datetime:
    """Monday 00:00:00.000 of the week containing value."""
    local = to_local(value or datetime.now().astimezone(), tz)
    monday = local.date() - timedelta(days=local.weekday())
    return _at(monday, time.min, tz)


def get_week_end(value: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> datetime:
    """Sunday 23:59:59.999 of the week containing value."""
    start = get_week_start(value, tz)
    return _at(start.date() + timedelta(days=6), END_OF_DAY, tz)


def week_bounds(now: datetime, week_offset: int, tz: Optional[tzinfo] = None) -> tuple[datetime, datetime]:
    """Inclusive boundaries of the week that is week_offset whole weeks before now."""
    monday = get_week_start(now, tz).date() - timedelta(weeks=week_offset)
    return _at(monday, time.min, tz), _at(monday + timedelta(days=6), END_OF_DAY, tz)


def in_window(value: datetime, start: datetime, end: datetime) -> bool:
    return start <= value <= end


def elapsed_seconds(start: datetime, end: datetime) -> int:
    return max(0, math.floor((end - start).total_seconds()))


def format_time(seconds: int) -> str:
    """Countdown display, MM:SS."""
    mins, secs = divmod(max(0, int(seconds)), 60)
    return f"{mins:02d}:{secs:02d}"


def format_duration(seconds: int) -> str:
    hours = seconds // 3600
    mins = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def format_date_range(start: datetime, end: datetime) -> str:
    return f"{start:%b} {start.day} - {end:%b} {end.day}, {end.year}"


def round_half_up(value: float, digits: int = 1) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def calculate_meeting_hours(meeting_blocks: Iterable) -> float:
    """Sum of (end - start) in fractional hours. Blocks crossing midnight are plain subtraction."""
    total_seconds = sum((block.end_at - block.start_at).total_seconds() for block in meeting_blocks)
    return total_seconds / 3600


def calculate_context_switches(sessions: Iterable, meeting_blocks: Iterable, tz: Optional[tzinfo] = None) -> float:
    """
    Average number of sessions + meetings per active day, one decimal.

    Days without any event are not part of the average.
    """
    per_day = Counter()
    for session in sessions:
        per_day[to_local(session.started_at, tz).date()] += 1
    for block in meeting_blocks:
        per_day[to_local(block.start_at, tz).date()] += 1

    if not per_day:
        return 0.0
    return round_half_up(sum(per_day.values()) / len(per_day), 1)
