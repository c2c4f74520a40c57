"""In-memory leaderboard read model kept in sync with real-time events.

Merge rules:
- VoteInserted: votes += vote_count; a vote id is applied at most once
- ContestantUpdated: field-level merge, only the fields present in the event
  are written. A field is not overwritten by an event older than the one
  that last wrote it (per-field updated_at versions) or older than the
  fetched row itself. Votes never move backwards (the live count may be
  ahead of a lagging row update).
- ContestantInserted: adds an active contestant not yet known
- ContestantDeleted: removes the contestant
- Vote/update events for unknown contestant ids are ignored; the data store
  is the source of truth for which contestants exist.

Rows are replaced, never mutated in place, so tuples handed out by
contestants()/ranked() stay consistent while later events are applied.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Set, Tuple

from .events import ContestantDeleted, ContestantInserted, ContestantUpdated, RealtimeEvent, VoteInserted
from .timing import parse_instant

SortKey = Literal["rank", "votes", "recent"]
Zone = Literal["prize", "safe", "danger"]

_MISSING_RANK = 999
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class RankedContestant:
    contestant: Mapping[str, Any]
    display_rank: int
    zone: Zone
    is_top3: bool
    is_in_danger_zone: bool

    @property
    def id(self) -> str:
        return str(self.contestant.get("id"))

    @property
    def votes(self) -> int:
        return _coerce_votes(self.contestant.get("votes")) or 0


@dataclass(frozen=True)
class LeaderboardStats:
    total_contestants: int
    total_votes: int
    avg_votes: int
    danger_zone_count: int


def _coerce_votes(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return int(float(stripped))
        except (ValueError, OverflowError):
            return None
    return None


def _coerce_rank(value: Any) -> int | None:
    rank = _coerce_votes(value)
    if rank is None or rank <= 0:
        return None
    return rank


def _row_id(row: Any) -> str | None:
    if not isinstance(row, Mapping):
        return None
    raw = row.get("id")
    if raw is None or isinstance(raw, bool):
        return None
    text = str(raw).strip()
    return text or None


class LeaderboardSync:
    """Contestant read model owned by a single consumer."""

    def __init__(self, contestants: Iterable[Mapping[str, Any]] | None = None) -> None:
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._versions: Dict[str, Dict[str, datetime]] = {}
        # updated_at of the fetched or inserted row; events older than it are stale
        self._floors: Dict[str, datetime] = {}
        self._seen_votes: Set[str] = set()
        if contestants is not None:
            self.load(contestants)

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, contestant_id: object) -> bool:
        return str(contestant_id) in self._rows

    def load(self, contestants: Iterable[Mapping[str, Any]], votes: Iterable[Mapping[str, Any]] = ()) -> None:
        """Replace the model with a fetched snapshot.

        votes: the vote rows fetched alongside the contestants. Their counts are
        already reflected in contestant.votes, so their ids are only recorded
        to drop the same votes if they are also delivered live.
        """
        self._rows = {}
        self._versions = {}
        self._floors = {}
        self._seen_votes = set()
        for row in contestants:
            contestant_id = _row_id(row)
            if contestant_id is None:
                continue
            entry = dict(row)
            entry["id"] = contestant_id
            entry["votes"] = _coerce_votes(entry.get("votes")) or 0
            self._rows[contestant_id] = entry
            self._set_floor(contestant_id, entry.get("updated_at"))
        for vote in votes:
            vote_id = _row_id(vote)
            if vote_id is not None:
                self._seen_votes.add(vote_id)

    def _set_floor(self, contestant_id: str, stamp: Any) -> None:
        floor = parse_instant(stamp)
        if floor is not None:
            self._floors[contestant_id] = floor

    def get(self, contestant_id: Any) -> Optional[Mapping[str, Any]]:
        return self._rows.get(str(contestant_id))

    def contestants(self) -> Tuple[Mapping[str, Any], ...]:
        return tuple(self._rows.values())

    def apply(self, event: RealtimeEvent) -> bool:
        """Apply one event; returns True when the read model changed."""
        if isinstance(event, VoteInserted):
            return self._apply_vote(event)
        if isinstance(event, ContestantUpdated):
            return self._apply_update(event)
        if isinstance(event, ContestantInserted):
            return self._apply_insert(event)
        if isinstance(event, ContestantDeleted):
            return self._apply_delete(event)
        return False

    def _apply_delete(self, event: ContestantDeleted) -> bool:
        if self._rows.pop(event.id, None) is None:
            return False
        self._versions.pop(event.id, None)
        self._floors.pop(event.id, None)
        return True

    def _apply_vote(self, event: VoteInserted) -> bool:
        if event.vote_id is not None and event.vote_id in self._seen_votes:
            return False
        current = self._rows.get(event.contestant_id)
        if current is None:
            # Not marked seen: a redelivery after the contestant is inserted still counts.
            return False
        if event.vote_id is not None:
            self._seen_votes.add(event.vote_id)
        updated = dict(current)
        updated["votes"] = (_coerce_votes(current.get("votes")) or 0) + event.vote_count
        self._rows[event.contestant_id] = updated
        return True

    def _apply_update(self, event: ContestantUpdated) -> bool:
        current = self._rows.get(event.id)
        if current is None:
            return False
        versions = self._versions.setdefault(event.id, {})
        updated = dict(current)
        changed = False
        for name, value in event.fields.items():
            if name == "id":
                continue
            last_written = versions.get(name, self._floors.get(event.id))
            if event.updated_at is not None and last_written is not None and event.updated_at < last_written:
                continue
            if name == "votes":
                incoming = _coerce_votes(value)
                if incoming is None:
                    continue
                value = max(_coerce_votes(current.get("votes")) or 0, incoming)
            if updated.get(name) != value:
                updated[name] = value
                changed = True
            if event.updated_at is not None:
                versions[name] = event.updated_at
        if event.updated_at is not None:
            current_stamp = parse_instant(current.get("updated_at"))
            if current_stamp is None or event.updated_at > current_stamp:
                updated["updated_at"] = event.updated_at
                changed = True
        if changed:
            self._rows[event.id] = updated
        return changed

    def _apply_insert(self, event: ContestantInserted) -> bool:
        if event.id in self._rows:
            return False
        if event.fields.get("status") != "active":
            return False
        entry = dict(event.fields)
        entry["id"] = event.id
        entry["votes"] = _coerce_votes(entry.get("votes")) or 0
        if event.updated_at is not None:
            entry["updated_at"] = event.updated_at
            self._floors[event.id] = event.updated_at
        self._rows[event.id] = entry
        return True

    def ranked(self, sort_by: SortKey = "rank", elimination_threshold: float = 0.2) -> Tuple[RankedContestant, ...]:
        return rank_contestants(self._rows.values(), sort_by, elimination_threshold)


def _recent_key(row: Mapping[str, Any]) -> datetime:
    return parse_instant(row.get("updated_at")) or _EPOCH


def rank_contestants(
    rows: Iterable[Mapping[str, Any]],
    sort_by: SortKey = "rank",
    elimination_threshold: float = 0.2,
) -> Tuple[RankedContestant, ...]:
    """Sort contestants and annotate podium/danger zones.

    Args:
        rows: contestant rows
        sort_by: 'rank' (stored rank, missing last), 'votes' (desc) or
                 'recent' (updated_at desc); anything else sorts by rank
        elimination_threshold: bottom share flagged as the danger zone

    Behavior:
        - display_rank is the stored rank when sorting by rank, otherwise
          the 1-based position
        - ranks beyond ceil(total * (1 - threshold)) are in the danger zone
        - ranks 1..3 are in the prize zone unless also in danger
    """
    ordered: List[Mapping[str, Any]] = list(rows)
    if sort_by == "votes":
        ordered.sort(key=lambda row: -(_coerce_votes(row.get("votes")) or 0))
    elif sort_by == "recent":
        ordered.sort(key=_recent_key, reverse=True)
    else:
        sort_by = "rank"
        ordered.sort(key=lambda row: _coerce_rank(row.get("rank")) or _MISSING_RANK)

    total = len(ordered)
    danger_zone_start = math.ceil(total * (1 - elimination_threshold))

    ranked: List[RankedContestant] = []
    for index, row in enumerate(ordered):
        if sort_by == "rank":
            display_rank = _coerce_rank(row.get("rank")) or index + 1
        else:
            display_rank = index + 1
        in_danger = display_rank > danger_zone_start
        is_top3 = display_rank <= 3
        zone: Zone = "danger" if in_danger else "prize" if is_top3 else "safe"
        ranked.append(
            RankedContestant(
                contestant=dict(row),
                display_rank=display_rank,
                zone=zone,
                is_top3=is_top3,
                is_in_danger_zone=in_danger,
            )
        )
    return tuple(ranked)


def top_three(ranked: Iterable[RankedContestant]) -> Tuple[RankedContestant, ...]:
    return tuple(entry for entry in ranked if entry.display_rank <= 3)


def danger_zone(ranked: Iterable[RankedContestant]) -> Tuple[RankedContestant, ...]:
    return tuple(entry for entry in ranked if entry.is_in_danger_zone)


def find_contestant(ranked: Iterable[RankedContestant], contestant_id: Any) -> Optional[RankedContestant]:
    for entry in ranked:
        if entry.id == str(contestant_id):
            return entry
    return None


def find_contestant_by_slug(ranked: Iterable[RankedContestant], slug: str) -> Optional[RankedContestant]:
    for entry in ranked:
        if entry.contestant.get("slug") == slug:
            return entry
    return None


def leaderboard_stats(ranked: Iterable[RankedContestant]) -> LeaderboardStats:
    entries = list(ranked)
    total_votes = sum(entry.votes for entry in entries)
    avg = total_votes / len(entries) if entries else 0
    return LeaderboardStats(
        total_contestants=len(entries),
        total_votes=total_votes,
        # Half-up rounding for display
        avg_votes=int(math.floor(avg + 0.5)),
        danger_zone_count=sum(1 for entry in entries if entry.is_in_danger_zone),
    )
