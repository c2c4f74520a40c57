from __future__ import annotations

from datetime import datetime, timedelta, timezone

from competition_core import CompetitionStatus, check_status_sync, compute_competition_status, next_auto_transition

NOW = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


def test_published_goes_live_once_nominations_start():
    competition = {"status": "publish", "nomination_start": (NOW - timedelta(minutes=1)).isoformat()}
    assert compute_competition_status(competition, NOW) is CompetitionStatus.LIVE
    competition["nomination_start"] = (NOW + timedelta(days=1)).isoformat()
    assert compute_competition_status(competition, NOW) is CompetitionStatus.PUBLISH


def test_live_completes_after_finale():
    competition = {"status": "live", "finale_date": (NOW - timedelta(seconds=1)).isoformat()}
    assert compute_competition_status(competition, NOW) is CompetitionStatus.COMPLETED
    competition["finale_date"] = NOW.isoformat()
    assert compute_competition_status(competition, NOW) is CompetitionStatus.LIVE


def test_manual_statuses_never_transition():
    past = (NOW - timedelta(days=30)).isoformat()
    for status in ("draft", "archived"):
        competition = {"status": status, "nomination_start": past, "finale_date": past}
        assert compute_competition_status(competition, NOW) is CompetitionStatus.parse(status)


def test_missing_competition_defaults_to_draft():
    assert compute_competition_status(None, NOW) is CompetitionStatus.DRAFT


def test_check_status_sync_reports_drift():
    competition = {"status": "live", "finale_date": (NOW - timedelta(days=1)).isoformat()}
    sync = check_status_sync(competition, NOW)
    assert sync.needs_update is True
    assert sync.current_status is CompetitionStatus.LIVE
    assert sync.computed_status is CompetitionStatus.COMPLETED

    assert check_status_sync({"status": "draft"}, NOW).needs_update is False


def test_next_auto_transition():
    start = NOW + timedelta(days=2)
    transition = next_auto_transition({"status": "publish", "nomination_start": start.isoformat()})
    assert transition.next_status is CompetitionStatus.LIVE
    assert transition.trigger_date == start

    finale = NOW + timedelta(days=20)
    transition = next_auto_transition({"status": "live", "finale_date": finale.isoformat()})
    assert transition.next_status is CompetitionStatus.COMPLETED
    assert transition.trigger_date == finale

    assert next_auto_transition({"status": "live"}) is None
    assert next_auto_transition({"status": "completed"}) is None
    assert next_auto_transition(None) is None
