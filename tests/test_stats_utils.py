"""Tests for statistical utilities.

Tests verify:
1. Wilson CI bounds and degenerate cases
2. Bootstrap CI determinism under a fixed seed
3. Bet-level interval helpers (pushes excluded)
"""

import numpy as np
import pytest

from src.backtest.metrics import BetRecord, BetResult
from src.backtest.stats_utils import (
    BootstrapInterval,
    bootstrap_ci,
    clv_ci,
    roi_ci,
    wilson_ci,
    win_rate_ci,
)
from src.predictions.edge import Side


def _bet(result, profit, clv=None):
    return BetRecord(
        game_id="g", season=2024, week=3, home_team="A", away_team="B",
        side=Side.HOME, market_spread_home=-3.0, model_spread_home=-6.0,
        edge=3.0, effective_edge=3.0, uncertainty=0.0, home_margin=7,
        result=result, profit=profit, implied_prob=0.5238, clv=clv,
    )


class TestWilsonCI:
    """Tests for Wilson score confidence interval."""

    def test_known_value(self):
        lower, upper = wilson_ci(60, 100)
        assert lower == pytest.approx(0.502, abs=0.001)
        assert upper == pytest.approx(0.691, abs=0.001)

    def test_zero_trials(self):
        assert wilson_ci(0, 0) == (0.0, 1.0)

    def test_bounds_clipped(self):
        lower, upper = wilson_ci(0, 10)
        assert lower == 0.0
        assert 0 < upper < 1
        lower, upper = wilson_ci(10, 10)
        assert upper == pytest.approx(1.0)

    def test_narrows_with_sample_size(self):
        small = wilson_ci(6, 10)
        large = wilson_ci(600, 1000)
        assert (large[1] - large[0]) < (small[1] - small[0])


class TestBootstrapCI:
    def test_same_seed_same_interval(self):
        values = np.random.default_rng(0).normal(0.05, 1.0, size=200)
        a = bootstrap_ci(values, n_boot=500, seed=7)
        b = bootstrap_ci(values, n_boot=500, seed=7)
        assert a == b

    def test_interval_contains_estimate(self):
        values = [1.0] * 60 + [0.0] * 40
        ci = bootstrap_ci(values, n_boot=2000, seed=1)
        assert ci.estimate == pytest.approx(0.6)
        assert ci.lower < 0.6 < ci.upper
        assert ci.n == 100

    def test_constant_values_have_zero_width(self):
        ci = bootstrap_ci([2.0] * 30, n_boot=100)
        assert ci.lower == ci.upper == 2.0

    def test_empty_input(self):
        assert bootstrap_ci([]) == BootstrapInterval(0.0, 0.0, 0.0, 0)

    def test_custom_statistic(self):
        ci = bootstrap_ci([1.0, 2.0, 3.0, 100.0], statistic=np.median, n_boot=200)
        assert ci.estimate == 2.5

    def test_invalid_alpha(self):
        with pytest.raises(ValueError):
            bootstrap_ci([1.0, 2.0], alpha=1.5)

    def test_excludes(self):
        ci = BootstrapInterval(estimate=0.6, lower=0.55, upper=0.65, n=100)
        assert ci.excludes(0.5)
        assert not ci.excludes(0.6)


class TestBetIntervals:
    def test_win_rate_ignores_pushes(self):
        bets = [_bet(BetResult.WIN, 0.91)] * 3 + [_bet(BetResult.LOSS, -1.0), _bet(BetResult.PUSH, 0.0)]
        ci = win_rate_ci(bets, n_boot=200)
        assert ci.n == 4
        assert ci.estimate == pytest.approx(0.75)

    def test_roi_is_mean_profit_per_decided_bet(self):
        bets = [_bet(BetResult.WIN, 0.91), _bet(BetResult.LOSS, -1.0), _bet(BetResult.PUSH, 0.0)]
        ci = roi_ci(bets, n_boot=200)
        assert ci.estimate == pytest.approx((0.91 - 1.0) / 2)

    def test_clv_none_without_closing_lines(self):
        assert clv_ci([_bet(BetResult.WIN, 0.91)]) is None
        ci = clv_ci([_bet(BetResult.WIN, 0.91, clv=0.5), _bet(BetResult.LOSS, -1.0, clv=1.5)], n_boot=100)
        assert ci.estimate == pytest.approx(1.0)
