from .clock import Clock, FixedClock, SystemClock
from .config import CoreSettings, settings
from .events import (
    ContestantDeleted,
    ContestantInserted,
    ContestantUpdated,
    RealtimeEvent,
    VoteInserted,
    parse_event,
)
from .leaderboard import LeaderboardStats, LeaderboardSync, RankedContestant, rank_contestants
from .phase import (
    PhaseResult,
    countdown_target,
    find_overlapping_rounds,
    is_public_phase,
    is_voting_phase,
    resolve_phase,
)
from .prize_pool import (
    PrizeInfo,
    PrizePoolBreakdown,
    calculate_prize_pool,
    format_prize_currency,
    prize_for_rank,
    prize_tiers,
    resolve_host_minimum,
)
from .revenue import RevenueAggregator, calculate_vote_revenue
from .status_engine import (
    AutoTransition,
    StatusSync,
    check_status_sync,
    compute_competition_status,
    next_auto_transition,
)
from .timing import TimeRemaining, countdown_display, countdown_urgency, time_remaining
from .types import CompetitionStatus, PhaseKind
from .view import CompetitionSnapshot, PublicCompetitionView

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "CoreSettings",
    "settings",
    "ContestantDeleted",
    "ContestantInserted",
    "ContestantUpdated",
    "RealtimeEvent",
    "VoteInserted",
    "parse_event",
    "LeaderboardStats",
    "LeaderboardSync",
    "RankedContestant",
    "rank_contestants",
    "PhaseResult",
    "countdown_target",
    "find_overlapping_rounds",
    "is_public_phase",
    "is_voting_phase",
    "resolve_phase",
    "PrizeInfo",
    "PrizePoolBreakdown",
    "calculate_prize_pool",
    "format_prize_currency",
    "prize_for_rank",
    "prize_tiers",
    "resolve_host_minimum",
    "RevenueAggregator",
    "calculate_vote_revenue",
    "AutoTransition",
    "StatusSync",
    "check_status_sync",
    "compute_competition_status",
    "next_auto_transition",
    "TimeRemaining",
    "countdown_display",
    "countdown_urgency",
    "time_remaining",
    "CompetitionStatus",
    "PhaseKind",
    "CompetitionSnapshot",
    "PublicCompetitionView",
]
