"""Automatic competition status transitions (pure).

| Status    | Trigger                                         | Who controls |
|-----------|-------------------------------------------------|--------------|
| draft     | competition created                             | manual       |
| publish   | admin publishes                                 | manual       |
| live      | now >= nomination_start while published         | automatic    |
| completed | now > finale_date while live                    | automatic    |
| archived  | admin archives                                  | manual       |

Nothing here writes to the store; callers compare the computed status with
the stored one and persist the difference themselves.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .timing import ensure_aware, parse_instant
from .types import CompetitionStatus


@dataclass(frozen=True)
class StatusSync:
    needs_update: bool
    current_status: Optional[CompetitionStatus]
    computed_status: Optional[CompetitionStatus]


@dataclass(frozen=True)
class AutoTransition:
    next_status: CompetitionStatus
    trigger_date: datetime
    description: str


def compute_competition_status(competition: Dict[str, Any] | None, now: datetime) -> Optional[CompetitionStatus]:
    """Status the competition should have at `now` given its dates.

    Returns DRAFT for a missing competition and None for an unrecognized
    stored status (left for an admin to fix).
    """
    if not isinstance(competition, dict):
        return CompetitionStatus.DRAFT
    now = ensure_aware(now)
    status = CompetitionStatus.parse(competition.get("status"))

    # Manual states never auto-transition.
    if status in (CompetitionStatus.ARCHIVED, CompetitionStatus.DRAFT):
        return status

    nomination_start = parse_instant(competition.get("nomination_start"))
    finale_date = parse_instant(competition.get("finale_date"))

    if status is CompetitionStatus.PUBLISH and nomination_start is not None and nomination_start <= now:
        return CompetitionStatus.LIVE
    if status is CompetitionStatus.LIVE and finale_date is not None and finale_date < now:
        return CompetitionStatus.COMPLETED
    return status


def check_status_sync(competition: Dict[str, Any] | None, now: datetime) -> StatusSync:
    raw = competition.get("status") if isinstance(competition, dict) else None
    current = CompetitionStatus.parse(raw) if raw is not None else CompetitionStatus.DRAFT
    computed = compute_competition_status(competition, now)
    return StatusSync(
        needs_update=current != computed,
        current_status=current,
        computed_status=computed,
    )


def next_auto_transition(competition: Dict[str, Any] | None) -> Optional[AutoTransition]:
    if not isinstance(competition, dict):
        return None
    status = CompetitionStatus.parse(competition.get("status"))

    if status is CompetitionStatus.PUBLISH:
        nomination_start = parse_instant(competition.get("nomination_start"))
        if nomination_start is not None:
            return AutoTransition(
                next_status=CompetitionStatus.LIVE,
                trigger_date=nomination_start,
                description="Will go live when nomination period starts",
            )

    if status is CompetitionStatus.LIVE:
        finale_date = parse_instant(competition.get("finale_date"))
        if finale_date is not None:
            return AutoTransition(
                next_status=CompetitionStatus.COMPLETED,
                trigger_date=finale_date,
                description="Will complete after finale date",
            )

    return None
