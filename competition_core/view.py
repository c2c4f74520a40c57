"""Public competition read model: phase + prize pool + live leaderboard.

PublicCompetitionView owns one competition's derived state and the real-time
subscriptions feeding it.

Lifecycle:
- load(competition_id): one awaited store fetch, then phase resolution. Only
  while the phase is voting are the 'votes' and 'contestants' channels open.
- Both channels push raw payloads into a single inbox; one consumer task
  drains it, so every event is applied to completion before the next one.
- refresh(): re-resolve the phase from the clock; subscriptions open or
  close when is_voting flips.
- Subscriptions are torn down when another competition is loaded, when
  is_voting turns false, when a load fails, and on dispose().
- dispose() is synchronous and idempotent; events arriving afterwards are
  ignored.

Every subscription is tagged with the epoch it was opened in. Teardown bumps
the epoch, so events still in flight from a closed subscription are dropped
instead of mutating the new state.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from .clock import Clock, SystemClock
from .config import settings
from .events import VoteInserted, parse_event
from .leaderboard import (
    LeaderboardStats,
    LeaderboardSync,
    RankedContestant,
    SortKey,
    danger_zone,
    find_contestant,
    find_contestant_by_slug,
    leaderboard_stats,
    top_three,
)
from .phase import PhaseResult, find_overlapping_rounds, resolve_phase
from .prize_pool import PrizeInfo, PrizePoolBreakdown, calculate_prize_pool, prize_for_rank, resolve_host_minimum
from .revenue import RevenueAggregator
from .types import CompetitionBundle

logger = logging.getLogger(__name__)

VOTES_CHANNEL = "votes"
CONTESTANTS_CHANNEL = "contestants"


class CompetitionStore(Protocol):
    async def fetch_competition(self, competition_id: str) -> CompetitionBundle:
        ...


class Subscription(Protocol):
    def unsubscribe(self) -> None:
        ...


class RealtimeTransport(Protocol):
    def subscribe(
        self,
        channel: str,
        competition_id: str,
        on_event: Callable[[Any], None],
        on_error: Callable[[BaseException], None],
    ) -> Subscription:
        ...


@dataclass(frozen=True)
class CompetitionSnapshot:
    """Immutable read model handed to the UI layer."""

    competition_id: Optional[str]
    phase: PhaseResult
    prize_pool: PrizePoolBreakdown
    contestants: Tuple[RankedContestant, ...]
    stale: bool = False
    version: int = 0

    @property
    def top_three(self) -> Tuple[RankedContestant, ...]:
        return top_three(self.contestants)

    @property
    def danger_zone(self) -> Tuple[RankedContestant, ...]:
        return danger_zone(self.contestants)

    @property
    def stats(self) -> LeaderboardStats:
        return leaderboard_stats(self.contestants)

    def prize_for(self, rank: int) -> Optional[PrizeInfo]:
        return prize_for_rank(rank, self.prize_pool)

    def contestant(self, contestant_id: Any) -> Optional[RankedContestant]:
        return find_contestant(self.contestants, contestant_id)

    def contestant_by_slug(self, slug: str) -> Optional[RankedContestant]:
        return find_contestant_by_slug(self.contestants, slug)


class PublicCompetitionView:
    def __init__(
        self,
        store: CompetitionStore,
        transport: RealtimeTransport,
        clock: Clock | None = None,
        *,
        sort_by: SortKey = "rank",
        elimination_threshold: float | None = None,
        listener: Callable[[CompetitionSnapshot], None] | None = None,
        inbox_maxsize: int | None = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._clock = clock or SystemClock()
        self._sort_by: SortKey = sort_by
        self._threshold = (
            settings.elimination_threshold if elimination_threshold is None else elimination_threshold
        )
        self._listener = listener

        self._competition_id: Optional[str] = None
        self._bundle: CompetitionBundle = {}
        self._revenue = RevenueAggregator()
        self._leaderboard = LeaderboardSync()

        self._epoch = 0
        self._load_token = 0
        self._subscriptions: List[Subscription] = []
        self._inbox: asyncio.Queue[Tuple[int, Any]] = asyncio.Queue(
            maxsize=settings.inbox_maxsize if inbox_maxsize is None else inbox_maxsize
        )
        self._consumer: Optional[asyncio.Task[None]] = None
        self._disposed = False

        self._snapshot = CompetitionSnapshot(
            competition_id=None,
            phase=resolve_phase(None, [], [], self._clock.now()),
            prize_pool=calculate_prize_pool(),
            contestants=(),
        )

    async def __aenter__(self) -> "PublicCompetitionView":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.dispose()

    @property
    def snapshot(self) -> CompetitionSnapshot:
        return self._snapshot

    @property
    def competition_id(self) -> Optional[str]:
        return self._competition_id

    @property
    def is_subscribed(self) -> bool:
        return bool(self._subscriptions)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # ==================== LIFECYCLE ====================

    async def load(self, competition_id: str) -> CompetitionSnapshot:
        """Fetch a competition and rebuild the read model from it.

        A load superseded by a later load (or by dispose) discards its result.
        Fetch errors propagate after subscriptions have been closed.
        """
        if self._disposed:
            return self._snapshot
        self._teardown()
        self._load_token += 1
        token = self._load_token
        self._competition_id = competition_id

        try:
            bundle = await self._store.fetch_competition(competition_id)
        except Exception:
            logger.warning(f"Competition fetch failed for {competition_id}", exc_info=True)
            if token == self._load_token:
                self._teardown()
                self._reset()
            raise

        if self._disposed or token != self._load_token:
            logger.debug(f"Discarding superseded fetch for {competition_id}")
            return self._snapshot

        self._bundle = bundle or {}
        votes = list(self._bundle.get("votes") or [])
        self._revenue = RevenueAggregator(votes)
        self._leaderboard = LeaderboardSync()
        self._leaderboard.load(self._bundle.get("contestants") or [], votes)

        for round_a, round_b in find_overlapping_rounds(self._rounds()):
            logger.warning(
                f"Competition {competition_id}: voting rounds {round_a.get('round_order')} and "
                f"{round_b.get('round_order')} overlap; the first listed round wins"
            )

        return self._recompute(stale=False)

    async def refresh(self) -> CompetitionSnapshot:
        """Re-resolve the phase at the clock's current instant."""
        if self._disposed or self._competition_id is None:
            return self._snapshot
        return self._recompute(stale=self._snapshot.stale)

    def set_sort(self, sort_by: SortKey) -> CompetitionSnapshot:
        if sort_by not in ("rank", "votes", "recent") or self._disposed:
            return self._snapshot
        self._sort_by = sort_by
        return self._publish(self._build_snapshot(self._snapshot.phase, self._snapshot.stale))

    async def drain(self) -> None:
        """Wait until every queued event has been applied."""
        if self._disposed or self._consumer is None:
            return
        await self._inbox.join()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._teardown()
        if self._consumer is not None:
            self._consumer.cancel()
            self._consumer = None
        logger.debug(f"Disposed view for competition {self._competition_id}")

    def _reset(self) -> None:
        """Forget the current competition after a failed load.

        The last published snapshot stays visible, marked stale; refresh()
        has nothing to resolve until the next successful load.
        """
        self._competition_id = None
        self._bundle = {}
        self._revenue = RevenueAggregator()
        self._leaderboard = LeaderboardSync()
        self._publish(replace(self._snapshot, stale=True, version=self._snapshot.version + 1))

    # ==================== DERIVED STATE ====================

    def _competition(self) -> Dict[str, Any]:
        competition = self._bundle.get("competition")
        return competition if isinstance(competition, dict) else {}

    def _rounds(self) -> List[Dict[str, Any]]:
        return list(self._bundle.get("voting_rounds") or self._competition().get("voting_rounds") or [])

    def _periods(self) -> List[Dict[str, Any]]:
        return list(
            self._bundle.get("nomination_periods") or self._competition().get("nomination_periods") or []
        )

    def _recompute(self, stale: bool) -> CompetitionSnapshot:
        phase = resolve_phase(
            self._bundle.get("competition"), self._rounds(), self._periods(), self._clock.now()
        )
        self._publish(self._build_snapshot(phase, stale))
        if phase.is_voting:
            self._open_subscriptions()
        else:
            self._teardown()
        # A failed subscribe republishes the snapshot as stale.
        return self._snapshot

    def _build_snapshot(self, phase: PhaseResult, stale: bool) -> CompetitionSnapshot:
        host_minimum = resolve_host_minimum(self._bundle.get("competition"), self._bundle.get("organization"))
        return CompetitionSnapshot(
            competition_id=self._competition_id,
            phase=phase,
            prize_pool=calculate_prize_pool(host_minimum, self._revenue.revenue),
            contestants=self._leaderboard.ranked(self._sort_by, self._threshold),
            stale=stale,
            version=self._snapshot.version + 1,
        )

    def _publish(self, snapshot: CompetitionSnapshot) -> CompetitionSnapshot:
        self._snapshot = snapshot
        if self._listener is not None:
            try:
                self._listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener raised")
        return snapshot

    # ==================== SUBSCRIPTIONS ====================

    def _open_subscriptions(self) -> None:
        if self._subscriptions or self._disposed or self._competition_id is None:
            return
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.get_running_loop().create_task(self._consume())

        epoch = self._epoch
        competition_id = self._competition_id
        for channel in (VOTES_CHANNEL, CONTESTANTS_CHANNEL):
            try:
                subscription = self._transport.subscribe(
                    channel,
                    competition_id,
                    self._make_event_handler(epoch),
                    self._make_error_handler(epoch, channel),
                )
            except Exception:
                logger.warning(f"Subscribing to {channel} for {competition_id} failed", exc_info=True)
                self._teardown()
                self._publish(replace(self._snapshot, stale=True, version=self._snapshot.version + 1))
                return
            self._subscriptions.append(subscription)
        logger.debug(f"Subscribed to live updates for competition {competition_id}")

    def _teardown(self) -> None:
        self._epoch += 1
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            try:
                subscription.unsubscribe()
            except Exception:
                logger.warning("Unsubscribe failed", exc_info=True)

    def _make_event_handler(self, epoch: int) -> Callable[[Any], None]:
        def on_event(raw: Any) -> None:
            if self._disposed or epoch != self._epoch:
                return
            try:
                self._inbox.put_nowait((epoch, raw))
            except asyncio.QueueFull:
                logger.warning(f"Event inbox full for competition {self._competition_id}; marking stale")
                self._publish(replace(self._snapshot, stale=True, version=self._snapshot.version + 1))

        return on_event

    def _make_error_handler(self, epoch: int, channel: str) -> Callable[[BaseException], None]:
        def on_error(error: BaseException) -> None:
            if self._disposed or epoch != self._epoch:
                return
            # Reconnection belongs to the transport; keep showing the last good state.
            logger.warning(f"Realtime channel {channel} for {self._competition_id} failed: {error}")
            self._publish(replace(self._snapshot, stale=True, version=self._snapshot.version + 1))

        return on_error

    async def _consume(self) -> None:
        while True:
            epoch, raw = await self._inbox.get()
            try:
                if not self._disposed and epoch == self._epoch:
                    self._handle(raw)
            except Exception:
                logger.exception(f"Failed to apply event for competition {self._competition_id}")
            finally:
                self._inbox.task_done()

    def _handle(self, raw: Any) -> None:
        try:
            event = parse_event(raw)
        except ValueError as e:
            logger.warning(f"Dropping malformed event: {e}")
            return
        if event.competition_id is not None and event.competition_id != self._competition_id:
            logger.debug(f"Dropping event for competition {event.competition_id}")
            return

        changed = False
        if isinstance(event, VoteInserted):
            changed = self._revenue.add(event.as_vote_row())
        changed = self._leaderboard.apply(event) or changed
        if changed:
            logger.debug(f"Applied {event.type} for competition {self._competition_id}")
            self._publish(self._build_snapshot(self._snapshot.phase, self._snapshot.stale))
