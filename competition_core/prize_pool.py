"""Prize pool distribution (pure).

Revenue split upstream of this module:
- 50% of vote purchases → prize pool (applied once, in revenue.py)
- 30% → host, 20% → platform (not modelled here)

Distribution of the prize share plus the host's guaranteed minimum:
- 1st place: 25% of vote revenue + 50% of host minimum
- 2nd place: 15% of vote revenue + 30% of host minimum
- 3rd place: 10% of vote revenue + 20% of host minimum

Amounts are Decimal so that total == first + second + third exactly and
incremental revenue updates never drift from a batch recomputation.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Tuple

from .config import settings

FIRST_REVENUE_SHARE = Decimal("0.25")
SECOND_REVENUE_SHARE = Decimal("0.15")
THIRD_REVENUE_SHARE = Decimal("0.10")
FIRST_MINIMUM_SHARE = Decimal("0.50")
SECOND_MINIMUM_SHARE = Decimal("0.30")
THIRD_MINIMUM_SHARE = Decimal("0.20")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class PrizePoolBreakdown:
    host_minimum: Decimal
    vote_revenue: Decimal
    first_prize: Decimal
    second_prize: Decimal
    third_prize: Decimal
    total_prize_pool: Decimal
    formatted: Mapping[str, str]


@dataclass(frozen=True)
class PrizeInfo:
    rank: int
    position: str
    label: str
    amount: Decimal
    formatted: str
    color_class: str
    icon_name: str


# rank → (position, label, color class, icon name, breakdown attribute)
_POSITIONS: Dict[int, Tuple[str, str, str, str, str]] = {
    1: ("1st", "1st Place", "prize-gold", "crown", "first_prize"),
    2: ("2nd", "2nd Place", "prize-silver", "award", "second_prize"),
    3: ("3rd", "3rd Place", "prize-bronze", "medal", "third_prize"),
}


def coerce_money(value: Any) -> Decimal | None:
    """Parse a money field into a finite Decimal.

    Routed through str() so floats keep their shortest repr instead of their
    binary expansion. Booleans, NaN, infinities and unparseable values → None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, (int, float, str)):
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    else:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def _non_negative(value: Decimal) -> Decimal:
    return value if value > _ZERO else _ZERO


def format_prize_currency(amount: Decimal | int | float) -> str:
    """Floor to whole dollars with thousands separators, e.g. 12345.9 → '$12,345'."""
    whole = coerce_money(amount) or _ZERO
    return f"${int(whole.to_integral_value(rounding=ROUND_FLOOR)):,}"


def calculate_prize_pool(host_minimum: Any = None, vote_revenue: Any = None) -> PrizePoolBreakdown:
    """Split the prize pool across the three podium places.

    Args:
        host_minimum: Host's guaranteed contribution; the configured default
            (1000) when absent or non-numeric, zero when negative
        vote_revenue: Prize share of vote purchases (already halved); zero
            when absent, non-numeric or negative

    Returns:
        PrizePoolBreakdown with Decimal amounts and '$1,234' display strings
    """
    minimum = coerce_money(host_minimum)
    if minimum is None:
        minimum = Decimal(str(settings.default_prize_minimum))
    minimum = _non_negative(minimum)
    revenue = _non_negative(coerce_money(vote_revenue) or _ZERO)

    first = revenue * FIRST_REVENUE_SHARE + minimum * FIRST_MINIMUM_SHARE
    second = revenue * SECOND_REVENUE_SHARE + minimum * SECOND_MINIMUM_SHARE
    third = revenue * THIRD_REVENUE_SHARE + minimum * THIRD_MINIMUM_SHARE
    total = first + second + third

    return PrizePoolBreakdown(
        host_minimum=minimum,
        vote_revenue=revenue,
        first_prize=first,
        second_prize=second,
        third_prize=third,
        total_prize_pool=total,
        formatted={
            "host_minimum": format_prize_currency(minimum),
            "vote_revenue": format_prize_currency(revenue),
            "first_prize": format_prize_currency(first),
            "second_prize": format_prize_currency(second),
            "third_prize": format_prize_currency(third),
            "total_prize_pool": format_prize_currency(total),
        },
    )


def prize_for_rank(rank: Any, breakdown: PrizePoolBreakdown) -> Optional[PrizeInfo]:
    """Prize owed to a leaderboard rank right now; None below 3rd place."""
    if isinstance(rank, bool) or not isinstance(rank, int):
        return None
    entry = _POSITIONS.get(rank)
    if entry is None:
        return None
    position, label, color_class, icon_name, attr = entry
    amount = getattr(breakdown, attr)
    return PrizeInfo(
        rank=rank,
        position=position,
        label=label,
        amount=amount,
        formatted=breakdown.formatted[attr],
        color_class=color_class,
        icon_name=icon_name,
    )


def prize_tiers(breakdown: PrizePoolBreakdown) -> Tuple[PrizeInfo, ...]:
    tiers = []
    for rank in sorted(_POSITIONS):
        info = prize_for_rank(rank, breakdown)
        if info is not None:
            tiers.append(info)
    return tuple(tiers)


def resolve_host_minimum(
    competition: Mapping[str, Any] | None,
    organization: Mapping[str, Any] | None = None,
) -> Decimal:
    """Competition override, then organization default, then the configured floor."""
    for source, key in ((competition, "prize_pool_minimum"), (organization, "default_prize_minimum")):
        if not isinstance(source, Mapping):
            continue
        candidate = coerce_money(source.get(key))
        if candidate is not None and candidate > _ZERO:
            return candidate
    return Decimal(str(settings.default_prize_minimum))
