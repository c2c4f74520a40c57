"""Instant parsing and countdown helpers shared by the phase resolver and the view.

Everything here is pure: the caller supplies `now`, nothing reads the wall clock.
Malformed inputs never raise; they parse to None and simply fail window checks.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from dateutil import parser as date_parser

Urgency = Literal["expired", "critical", "high", "medium", "low"]

_MS_PER_SECOND = 1000
_MS_PER_MINUTE = 60 * _MS_PER_SECOND
_MS_PER_HOUR = 60 * _MS_PER_MINUTE
_MS_PER_DAY = 24 * _MS_PER_HOUR


@dataclass(frozen=True)
class TimeRemaining:
    expired: bool
    days: int
    hours: int
    minutes: int
    seconds: int
    total: int  # Milliseconds, clamped at zero
    formatted: str


@dataclass(frozen=True)
class CountdownDisplay:
    primary: str
    secondary: str
    full: str


def parse_instant(value: Any) -> datetime | None:
    """Coerce a row date to an aware UTC datetime.

    Args:
        value: ISO-8601 string, datetime, or None

    Returns:
        Aware datetime, or None when the value is missing or unparseable

    Examples:
        - "2026-03-01T12:00:00Z" → datetime(2026, 3, 1, 12, tzinfo=UTC)
        - "2026-03-01" → midnight UTC
        - "" / "soon" / 42 → None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            parsed = date_parser.isoparse(stripped)
        except (ValueError, TypeError, OverflowError):
            return None
    else:
        return None
    if parsed.tzinfo is None:
        # Naive values from the store are UTC.
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def ensure_aware(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def window_contains(start: Any, end: Any, now: datetime) -> bool:
    """Inclusive [start, end] check; a missing or malformed bound never matches."""
    start_at = parse_instant(start)
    end_at = parse_instant(end)
    if start_at is None or end_at is None:
        return False
    return start_at <= ensure_aware(now) <= end_at


def format_time_remaining(days: int, hours: int, minutes: int) -> str:
    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def time_remaining(target: Any, now: datetime) -> TimeRemaining | None:
    """Break `target - now` into display units.

    Returns None when there is no usable target. Once the target has passed
    every unit is zero and expired is True.
    """
    target_at = parse_instant(target)
    if target_at is None:
        return None
    diff_ms = (target_at - ensure_aware(now)) // timedelta(milliseconds=1)
    if diff_ms <= 0:
        return TimeRemaining(
            expired=True,
            days=0,
            hours=0,
            minutes=0,
            seconds=0,
            total=0,
            formatted=format_time_remaining(0, 0, 0),
        )
    days = diff_ms // _MS_PER_DAY
    hours = (diff_ms % _MS_PER_DAY) // _MS_PER_HOUR
    minutes = (diff_ms % _MS_PER_HOUR) // _MS_PER_MINUTE
    seconds = (diff_ms % _MS_PER_MINUTE) // _MS_PER_SECOND
    return TimeRemaining(
        expired=False,
        days=days,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        total=diff_ms,
        formatted=format_time_remaining(days, hours, minutes),
    )


def countdown_display(remaining: TimeRemaining | None) -> CountdownDisplay:
    """Primary/secondary/full countdown strings for the UI ticker."""
    if remaining is None or remaining.expired:
        return CountdownDisplay(primary="Ended", secondary="", full="Ended")
    d, h, m, s = remaining.days, remaining.hours, remaining.minutes, remaining.seconds
    if d > 0:
        return CountdownDisplay(
            primary=f"{d}d {h}h", secondary=f"{m}m {s}s", full=f"{d}d {h}h {m}m"
        )
    if h > 0:
        return CountdownDisplay(
            primary=f"{h}h {m}m", secondary=f"{s}s", full=f"{h}h {m}m {s}s"
        )
    return CountdownDisplay(primary=f"{m}m {s}s", secondary="", full=f"{m}m {s}s")


def countdown_urgency(remaining: TimeRemaining | None) -> Urgency:
    if remaining is None or remaining.expired:
        return "expired"
    total_hours = remaining.total / _MS_PER_HOUR
    if total_hours <= 1:
        return "critical"
    if total_hours <= 24:
        return "high"
    if total_hours <= 72:
        return "medium"
    return "low"
