"""Type definitions for competition rows and lifecycle enums."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, TypedDict, Union

# Dates arrive from the data store as ISO strings; tests and callers may pass datetimes.
DateLike = Union[str, datetime, None]


class CompetitionStatus(str, Enum):
    """Administrative status stored on the competition row."""

    DRAFT = "draft"
    PUBLISH = "publish"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"

    @classmethod
    def parse(cls, raw: Any) -> Optional["CompetitionStatus"]:
        """Normalize a raw status string; unknown values map to None."""
        if isinstance(raw, CompetitionStatus):
            return raw
        if not isinstance(raw, str):
            return None
        return _STATUS_ALIASES.get(raw.strip().lower())


_STATUS_ALIASES = {
    "draft": CompetitionStatus.DRAFT,
    "publish": CompetitionStatus.PUBLISH,
    "coming-soon": CompetitionStatus.PUBLISH,
    "coming_soon": CompetitionStatus.PUBLISH,
    "live": CompetitionStatus.LIVE,
    "completed": CompetitionStatus.COMPLETED,
    "cancelled": CompetitionStatus.CANCELLED,
    "archive": CompetitionStatus.ARCHIVED,
    "archived": CompetitionStatus.ARCHIVED,
}


class PhaseKind(str, Enum):
    """Closed set of lifecycle phases; numbered rounds share ROUND."""

    DRAFT = "draft"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"
    COMING_SOON = "coming-soon"
    NOMINATIONS = "nominations"
    ROUND = "round"
    RESURRECTION = "resurrection"
    FINALS = "finals"
    BETWEEN_ROUNDS = "between-rounds"
    RESULTS = "results"
    UNKNOWN = "unknown"


VOTING_KINDS = frozenset({PhaseKind.ROUND, PhaseKind.RESURRECTION, PhaseKind.FINALS})

PUBLIC_KINDS = frozenset(
    {
        PhaseKind.COMING_SOON,
        PhaseKind.NOMINATIONS,
        PhaseKind.ROUND,
        PhaseKind.RESURRECTION,
        PhaseKind.FINALS,
        PhaseKind.BETWEEN_ROUNDS,
        PhaseKind.RESULTS,
    }
)


class Competition(TypedDict, total=False):
    """
    Competition row as delivered by the data store.

    All fields are optional (total=False): absent optional columns arrive as
    None or are missing entirely.
    """
    id: str
    status: str
    # Legacy flat nomination window
    nomination_start: DateLike
    nomination_end: DateLike
    finale_date: DateLike
    prize_pool_minimum: Optional[float]
    voting_rounds: List["VotingRound"]
    nomination_periods: List["NominationPeriod"]


class VotingRound(TypedDict, total=False):
    id: str
    competition_id: str
    round_order: Optional[int]  # Unique ordering key within a competition
    start_date: DateLike
    end_date: DateLike
    round_type: Optional[str]  # Free text, e.g. 'standard' | 'resurrection' | 'finals'
    title: Optional[str]


class NominationPeriod(TypedDict, total=False):
    id: str
    competition_id: str
    period_order: Optional[int]
    start_date: DateLike
    end_date: DateLike
    title: Optional[str]
    max_submissions: Optional[int]


class Vote(TypedDict, total=False):
    """Immutable paid vote transaction."""
    id: str
    competition_id: str
    contestant_id: str
    amount_paid: Any  # Numeric or numeric string; anything else is valued at zero
    vote_count: Optional[int]
    created_at: DateLike


class Contestant(TypedDict, total=False):
    """Leaderboard row; display fields beyond these are carried through untouched."""
    id: str
    name: str
    slug: Optional[str]
    status: Optional[str]
    votes: int
    rank: Optional[int]
    updated_at: DateLike


class Organization(TypedDict, total=False):
    id: str
    default_prize_minimum: Optional[float]


class CompetitionBundle(TypedDict, total=False):
    """Result of one data store fetch for a competition."""
    competition: Competition
    organization: Optional[Organization]
    voting_rounds: List[VotingRound]
    nomination_periods: List[NominationPeriod]
    votes: List[Vote]
    contestants: List[Contestant]
