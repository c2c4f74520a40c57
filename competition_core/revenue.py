"""Vote revenue aggregation: paid votes → prize-eligible revenue.

The 50%-of-purchases-to-prizes rule is applied here and nowhere else.
Batch and incremental paths both keep the gross total and halve it on read,
with Decimal arithmetic, so they agree exactly in any application order.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, Mapping, Set

from .prize_pool import coerce_money

PRIZE_POOL_SHARE = Decimal("0.5")

_ZERO = Decimal("0")


def vote_amount(vote: Any) -> Decimal:
    """amount_paid of a vote row; missing, negative or non-numeric → 0."""
    if not isinstance(vote, Mapping):
        return _ZERO
    amount = coerce_money(vote.get("amount_paid"))
    if amount is None or amount < _ZERO:
        return _ZERO
    return amount


def calculate_vote_revenue(votes: Any) -> Decimal:
    """Prize share of a vote collection.

    Args:
        votes: Iterable of vote rows with amount_paid, or an already computed
               revenue figure (passed through unchanged)

    Returns:
        0.5 × Σ amount_paid as a Decimal
    """
    if isinstance(votes, (int, float, Decimal)) and not isinstance(votes, bool):
        passthrough = coerce_money(votes)
        return passthrough if passthrough is not None and passthrough > _ZERO else _ZERO
    if isinstance(votes, (str, bytes, Mapping)) or votes is None:
        return _ZERO
    try:
        rows = list(votes)
    except TypeError:
        return _ZERO
    gross = sum((vote_amount(vote) for vote in rows), _ZERO)
    return gross * PRIZE_POOL_SHARE


def _vote_id(vote: Any) -> str | None:
    if not isinstance(vote, Mapping):
        return None
    raw = vote.get("id")
    if raw is None or isinstance(raw, bool) or raw == "":
        return None
    return str(raw)


class RevenueAggregator:
    """Running prize revenue fed by the initial fetch and then live vote inserts.

    Votes carrying an id are applied at most once, which absorbs the overlap
    between the initial batch fetch and a subscription opened just after it.
    Votes without an id cannot be de-duplicated and are always applied.
    """

    def __init__(self, votes: Iterable[Any] | None = None) -> None:
        self._gross = _ZERO
        self._count = 0
        self._seen: Set[str] = set()
        if votes is not None:
            self.seed(votes)

    @property
    def gross(self) -> Decimal:
        return self._gross

    @property
    def revenue(self) -> Decimal:
        return self._gross * PRIZE_POOL_SHARE

    @property
    def vote_count(self) -> int:
        """Votes applied so far, including zero-valued ones."""
        return self._count

    def has_seen(self, vote_id: Any) -> bool:
        return vote_id is not None and str(vote_id) in self._seen

    def seed(self, votes: Iterable[Any]) -> None:
        for vote in votes:
            self.add(vote)

    def add(self, vote: Any) -> bool:
        """Apply one vote; returns False when it was a duplicate."""
        vote_id = _vote_id(vote)
        if vote_id is not None:
            if vote_id in self._seen:
                return False
            self._seen.add(vote_id)
        self._gross += vote_amount(vote)
        self._count += 1
        return True

    def reset(self) -> None:
        self._gross = _ZERO
        self._count = 0
        self._seen.clear()
