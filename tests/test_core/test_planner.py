"""Tests for order splitting."""

from __future__ import annotations

import pytest

from pumptrade.planner import plan_buy, plan_sell, split_by_max, split_into_n


class TestSplitByMax:
    def test_even_split(self):
        assert split_by_max(3_000, 1_000) == [1_000, 1_000, 1_000]

    def test_remainder_last(self):
        assert split_by_max(2_500, 1_000) == [1_000, 1_000, 500]

    def test_under_max_single_chunk(self):
        assert split_by_max(10, 1_000) == [10]

    def test_zero_total(self):
        assert split_by_max(0, 1_000) == []

    def test_non_positive_max_rejected(self):
        with pytest.raises(ValueError):
            split_by_max(100, 0)


class TestSplitIntoN:
    def test_last_part_absorbs_remainder(self):
        assert split_into_n(10, 3) == [3, 3, 4]

    def test_one_part(self):
        assert split_into_n(7, 1) == [7]

    def test_more_parts_than_units(self):
        parts = split_into_n(2, 3)
        assert parts == [0, 0, 2]
        assert sum(parts) == 2

    def test_non_positive_parts_rejected(self):
        with pytest.raises(ValueError):
            split_into_n(10, 0)


class TestPlans:
    def test_buy_plan_sums_to_total(self):
        plan = plan_buy(2_500_000_000, 1_000_000_000)
        assert plan.amounts == (1_000_000_000, 1_000_000_000, 500_000_000)
        assert plan.total == 2_500_000_000
        assert len(plan) == 3

    def test_sell_single_chunk_when_estimate_fits(self):
        assert plan_sell(1_000, 1_000, 1_000).amounts == (1_000,)

    def test_sell_split_by_estimated_proceeds(self):
        plan = plan_sell(1_000, 2_500, 1_000)
        assert plan.amounts == (333, 333, 334)
        assert plan.total == 1_000

    def test_sell_ceiling_division(self):
        assert len(plan_sell(900, 3_001, 1_000)) == 4

    def test_sell_non_positive_max_rejected(self):
        with pytest.raises(ValueError):
            plan_sell(1_000, 500, 0)


class TestSplitProperties:
    @pytest.mark.parametrize(
        ("total", "max_chunk"),
        [(1, 1), (999, 1_000), (1_000, 1_000), (1_001, 1_000), (7_777_777, 123_456), (10**12, 3 * 10**10)],
    )
    def test_split_by_max(self, total: int, max_chunk: int):
        chunks = split_by_max(total, max_chunk)
        assert sum(chunks) == total
        assert all(0 < c <= max_chunk for c in chunks)
        assert len(chunks) == -(-total // max_chunk)

    @pytest.mark.parametrize(("total", "n"), [(10, 1), (10, 3), (1_000_003, 7), (5, 5)])
    def test_split_into_n(self, total: int, n: int):
        parts = split_into_n(total, n)
        assert len(parts) == n
        assert sum(parts) == total
        assert all(p == total // n for p in parts[:-1])
