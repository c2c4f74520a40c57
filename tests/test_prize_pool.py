from __future__ import annotations

from decimal import Decimal

from competition_core import (
    calculate_prize_pool,
    format_prize_currency,
    prize_for_rank,
    prize_tiers,
    resolve_host_minimum,
)
from competition_core.prize_pool import coerce_money


def test_prize_split_matches_worked_example():
    pool = calculate_prize_pool(1000, 2000)
    assert pool.first_prize == Decimal("1000")
    assert pool.second_prize == Decimal("600")
    assert pool.third_prize == Decimal("400")
    assert pool.total_prize_pool == Decimal("2000")
    assert pool.formatted["first_prize"] == "$1,000"
    assert pool.formatted["total_prize_pool"] == "$2,000"


def test_total_is_exact_sum_of_prizes():
    for minimum, revenue in ((1000, "0.1"), (333.33, 17.77), (0, "12345.675"), (7, 0.3)):
        pool = calculate_prize_pool(minimum, revenue)
        assert pool.total_prize_pool == pool.first_prize + pool.second_prize + pool.third_prize


def test_prizes_are_monotonic_in_revenue_and_minimum():
    previous = calculate_prize_pool(1000, 0)
    for revenue in (1, 10, 10.5, 250, 10000):
        current = calculate_prize_pool(1000, revenue)
        assert current.first_prize >= previous.first_prize
        assert current.second_prize >= previous.second_prize
        assert current.third_prize >= previous.third_prize
        previous = current

    low = calculate_prize_pool(0, 500)
    high = calculate_prize_pool(50, 500)
    assert high.total_prize_pool >= low.total_prize_pool


def test_missing_or_invalid_inputs_use_defaults():
    pool = calculate_prize_pool()
    assert pool.host_minimum == Decimal("1000")
    assert pool.vote_revenue == Decimal("0")
    assert pool.total_prize_pool == Decimal("1000")

    pool = calculate_prize_pool("lots", "nope")
    assert pool.host_minimum == Decimal("1000")
    assert pool.vote_revenue == Decimal("0")


def test_negative_inputs_are_clamped_to_zero():
    pool = calculate_prize_pool(-50, -10)
    assert pool.host_minimum == Decimal("0")
    assert pool.vote_revenue == Decimal("0")
    assert pool.total_prize_pool == Decimal("0")


def test_zero_minimum_is_kept():
    pool = calculate_prize_pool(0, 100)
    assert pool.host_minimum == Decimal("0")
    assert pool.total_prize_pool == Decimal("50")


def test_prize_for_rank_podium_only():
    pool = calculate_prize_pool(1000, 2000)
    first = prize_for_rank(1, pool)
    assert first.amount == pool.first_prize
    assert first.position == "1st"
    assert first.label == "1st Place"
    assert first.formatted == "$1,000"
    assert first.icon_name == "crown"
    assert prize_for_rank(3, pool).color_class == "prize-bronze"
    assert prize_for_rank(4, pool) is None
    assert prize_for_rank(0, pool) is None
    assert prize_for_rank("1", pool) is None
    assert prize_for_rank(True, pool) is None


def test_prize_tiers_lists_three_places_in_order():
    tiers = prize_tiers(calculate_prize_pool(1000, 0))
    assert [tier.rank for tier in tiers] == [1, 2, 3]
    assert [tier.formatted for tier in tiers] == ["$500", "$300", "$200"]


def test_format_prize_currency_floors_and_groups():
    assert format_prize_currency(Decimal("12345.99")) == "$12,345"
    assert format_prize_currency(0) == "$0"
    assert format_prize_currency(999.5) == "$999"
    assert format_prize_currency(1000000) == "$1,000,000"


def test_coerce_money_rejects_junk():
    assert coerce_money("12.50") == Decimal("12.50")
    assert coerce_money(0.1) == Decimal("0.1")
    assert coerce_money(None) is None
    assert coerce_money(True) is None
    assert coerce_money("abc") is None
    assert coerce_money(float("nan")) is None
    assert coerce_money("Infinity") is None
    assert coerce_money([1]) is None


def test_resolve_host_minimum_prefers_competition_then_organization():
    assert resolve_host_minimum({"prize_pool_minimum": 2500}, {"default_prize_minimum": 300}) == Decimal("2500")
    assert resolve_host_minimum({"prize_pool_minimum": None}, {"default_prize_minimum": 300}) == Decimal("300")
    assert resolve_host_minimum({"prize_pool_minimum": 0}, None) == Decimal("1000")
    assert resolve_host_minimum(None, None) == Decimal("1000")
