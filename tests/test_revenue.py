from __future__ import annotations

import itertools
from decimal import Decimal

from competition_core import RevenueAggregator, calculate_vote_revenue
from competition_core.revenue import vote_amount


def test_batch_and_incremental_revenue_agree():
    votes = [{"amount_paid": 10}, {"amount_paid": 20}]
    assert calculate_vote_revenue(votes) == Decimal("15")

    aggregator = RevenueAggregator()
    for vote in votes:
        aggregator.add(vote)
    assert aggregator.revenue == Decimal("15")
    assert aggregator.gross == Decimal("30")
    assert aggregator.vote_count == 2


def test_incremental_revenue_is_order_independent():
    votes = [
        {"id": "a", "amount_paid": "0.10"},
        {"id": "b", "amount_paid": 0.2},
        {"id": "c", "amount_paid": "3.33"},
        {"id": "d", "amount_paid": 1.07},
    ]
    expected = calculate_vote_revenue(votes)
    for ordering in itertools.permutations(votes):
        aggregator = RevenueAggregator()
        for vote in ordering:
            aggregator.add(vote)
        assert aggregator.revenue == expected


def test_duplicate_vote_ids_counted_once():
    aggregator = RevenueAggregator([{"id": "v1", "amount_paid": 10}])
    assert aggregator.add({"id": "v1", "amount_paid": 10}) is False
    assert aggregator.add({"id": "v2", "amount_paid": 4}) is True
    assert aggregator.revenue == Decimal("7")
    assert aggregator.has_seen("v1")
    assert not aggregator.has_seen("v3")


def test_votes_without_id_are_always_applied():
    aggregator = RevenueAggregator()
    aggregator.add({"amount_paid": 2})
    aggregator.add({"amount_paid": 2})
    assert aggregator.revenue == Decimal("2")


def test_junk_amounts_count_as_votes_but_add_nothing():
    aggregator = RevenueAggregator()
    aggregator.seed([{"amount_paid": "free"}, {"amount_paid": None}, {"amount_paid": -5}, {}])
    assert aggregator.vote_count == 4
    assert aggregator.revenue == Decimal("0")
    assert vote_amount("not a row") == Decimal("0")


def test_reset_clears_totals_and_seen_ids():
    aggregator = RevenueAggregator([{"id": "v1", "amount_paid": 10}])
    aggregator.reset()
    assert aggregator.revenue == Decimal("0")
    assert aggregator.add({"id": "v1", "amount_paid": 10}) is True


def test_calculate_vote_revenue_passes_numbers_through():
    assert calculate_vote_revenue(42) == Decimal("42")
    assert calculate_vote_revenue(Decimal("2.5")) == Decimal("2.5")
    assert calculate_vote_revenue(-3) == Decimal("0")
    assert calculate_vote_revenue(None) == Decimal("0")
    assert calculate_vote_revenue("100") == Decimal("0")
    assert calculate_vote_revenue([]) == Decimal("0")
