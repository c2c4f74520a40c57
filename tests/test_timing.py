from __future__ import annotations

from datetime import datetime, timedelta, timezone

from competition_core import FixedClock, countdown_display, countdown_urgency, time_remaining
from competition_core.timing import parse_instant, window_contains

NOW = datetime(2026, 1, 1, 0, 0, tzinfo=timezone.utc)


def test_parse_instant_accepts_iso_and_datetimes():
    assert parse_instant("2026-03-01T12:00:00Z") == datetime(2026, 3, 1, 12, tzinfo=timezone.utc)
    assert parse_instant("2026-03-01") == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert parse_instant(datetime(2026, 3, 1)).tzinfo is timezone.utc
    assert parse_instant("") is None
    assert parse_instant("soon") is None
    assert parse_instant(42) is None


def test_window_contains_is_inclusive_and_rejects_missing_bounds():
    assert window_contains(NOW, NOW + timedelta(hours=1), NOW)
    assert window_contains(NOW - timedelta(hours=1), NOW, NOW)
    assert not window_contains(None, NOW, NOW)
    assert not window_contains(NOW, "bad", NOW)


def test_time_remaining_breakdown():
    remaining = time_remaining(NOW + timedelta(days=2, hours=3, minutes=4, seconds=5), NOW)
    assert (remaining.days, remaining.hours, remaining.minutes, remaining.seconds) == (2, 3, 4, 5)
    assert remaining.formatted == "2d 3h"
    assert remaining.expired is False

    assert time_remaining(NOW + timedelta(hours=5, minutes=7), NOW).formatted == "5h 7m"
    assert time_remaining(NOW + timedelta(minutes=9), NOW).formatted == "9m"


def test_time_remaining_expired_and_missing():
    expired = time_remaining(NOW - timedelta(minutes=1), NOW)
    assert expired.expired is True
    assert expired.total == 0
    assert expired.formatted == "0m"
    assert time_remaining(None, NOW) is None


def test_countdown_display_and_urgency():
    remaining = time_remaining(NOW + timedelta(days=1, hours=2, minutes=3, seconds=4), NOW)
    display = countdown_display(remaining)
    assert display.primary == "1d 2h"
    assert display.secondary == "3m 4s"
    assert countdown_urgency(remaining) == "medium"

    soon = time_remaining(NOW + timedelta(minutes=30), NOW)
    assert countdown_display(soon).full == "30m 0s"
    assert countdown_urgency(soon) == "critical"
    assert countdown_urgency(time_remaining(NOW + timedelta(hours=12), NOW)) == "high"
    assert countdown_urgency(time_remaining(NOW + timedelta(days=5), NOW)) == "low"
    assert countdown_urgency(None) == "expired"
    assert countdown_display(None).primary == "Ended"


def test_fixed_clock_moves_only_when_told():
    clock = FixedClock(datetime(2026, 1, 1))
    assert clock.now() == NOW
    assert clock.advance(hours=2) == NOW + timedelta(hours=2)
    clock.set(NOW)
    assert clock.now() == NOW
