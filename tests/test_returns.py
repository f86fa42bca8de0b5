"""Tests for fixed-step period returns."""

from __future__ import annotations

import numpy as np
import pytest

from sigma.returns import PERIOD_STEPS, compute_returns, period_step
from tests.conftest import make_prices


class TestComputeReturns:
    def test_daily_returns_match_formula(self, sample_prices):
        result = compute_returns(sample_prices, "daily")

        expected = [0.02, -1 / 102, 4 / 101, -15 / 105]
        assert len(result) == 4
        assert np.allclose(result["ret"].values, expected)

    def test_each_return_dated_at_later_endpoint(self, sample_prices):
        result = compute_returns(sample_prices, "daily")
        assert list(result.index) == list(sample_prices.index[1:])

    def test_weekly_uses_step_of_five(self):
        prices = make_prices(range(100, 112))  # 12 points
        result = compute_returns(prices, "weekly")

        assert len(result) == 2  # floor(11 / 5)
        assert result.index[0] == prices.index[5]
        assert result.index[1] == prices.index[10]
        assert np.isclose(result["ret"].iloc[0], 105 / 100 - 1)
        assert np.isclose(result["ret"].iloc[1], 110 / 105 - 1)

    def test_monthly_uses_step_of_twenty_one(self):
        prices = make_prices(np.linspace(100, 150, 64))
        result = compute_returns(prices, "monthly")
        assert len(result) == 3  # floor(63 / 21)

    @pytest.mark.parametrize("period", ["daily", "weekly", "monthly"])
    @pytest.mark.parametrize("n", [1, 2, 5, 21, 22, 43, 100])
    def test_length_is_floor_of_n_minus_one_over_step(self, period, n):
        prices = make_prices(np.linspace(50, 60, n))
        result = compute_returns(prices, period)

        assert len(result) == (n - 1) // PERIOD_STEPS[period]
        assert result.index.is_monotonic_increasing
        assert result.index.is_unique

    def test_series_not_longer_than_step_is_empty(self):
        prices = make_prices([100, 101, 102, 103, 104])
        result = compute_returns(prices, "weekly")

        assert result.empty
        assert "ret" in result.columns

    def test_empty_prices_give_empty_returns(self):
        result = compute_returns(make_prices([]), "daily")
        assert result.empty

    def test_unknown_period_rejected(self, sample_prices):
        with pytest.raises(ValueError):
            compute_returns(sample_prices, "hourly")

    def test_period_step_values(self):
        assert period_step("daily") == 1
        assert period_step("weekly") == 5
        assert period_step("monthly") == 21
