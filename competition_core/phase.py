"""Competition phase resolution (pure, no I/O, no wall clock).

resolve_phase() maps (competition, voting rounds, nomination periods, now) to a
PhaseResult. Precedence, first match wins:

1. Terminal statuses: cancelled, completed (→ results), draft, archived
2. Voting round whose inclusive [start_date, end_date] contains now
   (first match in iteration order when windows overlap)
3. Nomination period containing now, then the legacy flat
   nomination_start/nomination_end pair for live competitions
4. publish / coming-soon status → coming-soon
5. live with a future round → between-rounds
6. unknown

Rows with missing or malformed dates never match a window; the resolver
falls through toward unknown instead of raising.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .timing import TimeRemaining, ensure_aware, parse_instant, time_remaining, window_contains
from .types import PUBLIC_KINDS, VOTING_KINDS, CompetitionStatus, PhaseKind


@dataclass(frozen=True)
class PhaseResult:
    """Resolved lifecycle phase of a competition at one instant."""

    kind: PhaseKind
    phase: str  # 'round2', 'nominations', 'between-rounds', ...
    label: str
    is_public: bool
    is_voting: bool = False
    can_nominate: bool = False
    is_complete: bool = False
    ends_at: Optional[datetime] = None
    starts_at: Optional[datetime] = None
    time_remaining: Optional[TimeRemaining] = None
    round_number: Optional[int] = None
    current_round: Optional[Dict[str, Any]] = None
    next_round: Optional[Dict[str, Any]] = None
    current_period: Optional[Dict[str, Any]] = None


_TERMINAL_PHASES: Dict[CompetitionStatus, PhaseResult] = {
    CompetitionStatus.CANCELLED: PhaseResult(
        kind=PhaseKind.CANCELLED, phase="cancelled", label="Cancelled", is_public=False
    ),
    CompetitionStatus.COMPLETED: PhaseResult(
        kind=PhaseKind.RESULTS,
        phase="results",
        label="Results",
        is_public=True,
        is_complete=True,
    ),
    CompetitionStatus.DRAFT: PhaseResult(
        kind=PhaseKind.DRAFT, phase="draft", label="Draft", is_public=False
    ),
    CompetitionStatus.ARCHIVED: PhaseResult(
        kind=PhaseKind.ARCHIVED, phase="archived", label="Archived", is_public=False
    ),
}


def _coerce_order(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return int(stripped, 10)
        except ValueError:
            return None
    return None


def _rows(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, (list, tuple)):
        return []
    return [row for row in value if isinstance(row, dict)]


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def find_active_round(rounds: Sequence[Dict[str, Any]], now: datetime) -> Dict[str, Any] | None:
    for voting_round in _rows(rounds):
        if window_contains(voting_round.get("start_date"), voting_round.get("end_date"), now):
            return voting_round
    return None


def find_active_period(periods: Sequence[Dict[str, Any]], now: datetime) -> Dict[str, Any] | None:
    for period in _rows(periods):
        if window_contains(period.get("start_date"), period.get("end_date"), now):
            return period
    return None


def find_next_round(rounds: Sequence[Dict[str, Any]], now: datetime) -> Dict[str, Any] | None:
    """Earliest round starting strictly after now."""
    now = ensure_aware(now)
    upcoming: List[Tuple[datetime, Dict[str, Any]]] = []
    for voting_round in _rows(rounds):
        start = parse_instant(voting_round.get("start_date"))
        if start is not None and start > now:
            upcoming.append((start, voting_round))
    if not upcoming:
        return None
    # sorted() is stable: equal starts keep iteration order.
    upcoming = sorted(upcoming, key=lambda pair: pair[0])
    return upcoming[0][1]


def classify_round(voting_round: Dict[str, Any]) -> Tuple[PhaseKind, str, str, int]:
    """Derive (kind, phase key, label, round number) from a round row.

    round_type/title are inspected case-insensitively: "resurrection" wins over
    "final"; anything else is a numbered round (round_order, default 1).
    """
    title = _text(voting_round.get("title"))
    round_type = _text(voting_round.get("round_type")).strip().lower()
    lowered_title = title.lower()
    round_number = _coerce_order(voting_round.get("round_order")) or 1

    if "resurrection" in round_type or "resurrection" in lowered_title:
        return PhaseKind.RESURRECTION, "resurrection", "Resurrection Round", round_number
    if "final" in round_type or "final" in lowered_title:
        return PhaseKind.FINALS, "finals", "Finals", round_number
    return PhaseKind.ROUND, f"round{round_number}", title or f"Round {round_number}", round_number


def resolve_phase(
    competition: Dict[str, Any] | None,
    voting_rounds: Sequence[Dict[str, Any]] | None,
    nomination_periods: Sequence[Dict[str, Any]] | None,
    now: datetime,
) -> PhaseResult:
    """Determine the current phase of a competition for public display.

    Args:
        competition: Competition row (status, flat nomination window)
        voting_rounds: Round rows; falls back to competition['voting_rounds'] when empty
        nomination_periods: Period rows; falls back to competition['nomination_periods']
        now: Instant to resolve against (callers pass clock.now())

    Returns:
        PhaseResult; never raises. The worst case is the 'unknown' phase.
    """
    if not isinstance(competition, dict):
        return PhaseResult(kind=PhaseKind.UNKNOWN, phase="unknown", label="Unknown", is_public=False)
    now = ensure_aware(now)

    raw_status = competition.get("status")
    status = CompetitionStatus.parse(raw_status)

    terminal = _TERMINAL_PHASES.get(status) if status is not None else None
    if terminal is not None:
        return terminal

    rounds = _rows(voting_rounds) or _rows(competition.get("voting_rounds"))
    periods = _rows(nomination_periods) or _rows(competition.get("nomination_periods"))

    active_round = find_active_round(rounds, now)
    if active_round is not None:
        kind, phase_key, label, round_number = classify_round(active_round)
        ends_at = parse_instant(active_round.get("end_date"))
        return PhaseResult(
            kind=kind,
            phase=phase_key,
            label=label,
            is_public=True,
            is_voting=True,
            ends_at=ends_at,
            time_remaining=time_remaining(ends_at, now),
            round_number=round_number,
            current_round=dict(active_round),
        )

    active_period = find_active_period(periods, now)
    if active_period is not None:
        ends_at = parse_instant(active_period.get("end_date"))
        return PhaseResult(
            kind=PhaseKind.NOMINATIONS,
            phase="nominations",
            label=_text(active_period.get("title")) or "Nominations Open",
            is_public=True,
            can_nominate=True,
            ends_at=ends_at,
            time_remaining=time_remaining(ends_at, now),
            current_period=dict(active_period),
        )

    # Legacy flat nomination window, only consulted for live competitions.
    if status is CompetitionStatus.LIVE:
        nomination_start = competition.get("nomination_start")
        nomination_end = competition.get("nomination_end")
        if window_contains(nomination_start, nomination_end, now):
            ends_at = parse_instant(nomination_end)
            return PhaseResult(
                kind=PhaseKind.NOMINATIONS,
                phase="nominations",
                label="Nominations Open",
                is_public=True,
                can_nominate=True,
                ends_at=ends_at,
                time_remaining=time_remaining(ends_at, now),
            )

    if status is CompetitionStatus.PUBLISH:
        starts_at = parse_instant(competition.get("nomination_start"))
        return PhaseResult(
            kind=PhaseKind.COMING_SOON,
            phase="coming-soon",
            label="Coming Soon",
            is_public=True,
            starts_at=starts_at,
            time_remaining=time_remaining(starts_at, now),
        )

    if status is CompetitionStatus.LIVE:
        next_round = find_next_round(rounds, now)
        if next_round is not None:
            starts_at = parse_instant(next_round.get("start_date"))
            return PhaseResult(
                kind=PhaseKind.BETWEEN_ROUNDS,
                phase="between-rounds",
                label="Between Rounds",
                is_public=True,
                starts_at=starts_at,
                time_remaining=time_remaining(starts_at, now),
                next_round=dict(next_round),
            )

    label = raw_status.strip() if isinstance(raw_status, str) else ""
    label = label or "Unknown"
    return PhaseResult(
        kind=PhaseKind.UNKNOWN,
        phase="unknown",
        label=label,
        is_public=status in (CompetitionStatus.LIVE, CompetitionStatus.PUBLISH),
    )


def _phase_key(phase: PhaseResult | str | None) -> str:
    if isinstance(phase, PhaseResult):
        return phase.phase
    return phase if isinstance(phase, str) else ""


def is_voting_phase(phase: PhaseResult | str | None) -> bool:
    if isinstance(phase, PhaseResult):
        return phase.kind in VOTING_KINDS
    key = _phase_key(phase)
    return key.startswith("round") or key in {"resurrection", "finals"}


def is_public_phase(phase: PhaseResult | str | None) -> bool:
    if isinstance(phase, PhaseResult):
        return phase.kind in PUBLIC_KINDS
    key = _phase_key(phase)
    return key.startswith("round") or key in {k.value for k in PUBLIC_KINDS}


def countdown_target(phase: PhaseResult) -> datetime | None:
    """Instant the public page counts down to for this phase, if any."""
    if phase.kind in VOTING_KINDS or phase.kind is PhaseKind.NOMINATIONS:
        return phase.ends_at
    if phase.kind in (PhaseKind.COMING_SOON, PhaseKind.BETWEEN_ROUNDS):
        return phase.starts_at
    return None


def find_overlapping_rounds(
    rounds: Sequence[Dict[str, Any]] | None,
) -> List[Tuple[Dict[str, Any], Dict[str, Any]]]:
    """Pairs of rounds whose inclusive windows overlap.

    resolve_phase() picks the first match in iteration order for such pairs;
    callers use this to surface the misconfiguration.
    """
    windows: List[Tuple[datetime, datetime, Dict[str, Any]]] = []
    for voting_round in _rows(rounds):
        start = parse_instant(voting_round.get("start_date"))
        end = parse_instant(voting_round.get("end_date"))
        if start is None or end is None or end < start:
            continue
        windows.append((start, end, voting_round))

    overlaps: List[Tuple[Dict[str, Any], Dict[str, Any]]] = []
    for i, (start_a, end_a, round_a) in enumerate(windows):
        for start_b, end_b, round_b in windows[i + 1 :]:
            if start_a <= end_b and start_b <= end_a:
                overlaps.append((round_a, round_b))
    return overlaps
