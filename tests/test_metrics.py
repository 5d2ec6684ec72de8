"""Tests for bet grading and performance metrics."""

import pytest

from src.backtest.metrics import (
    BetRecord,
    BetResult,
    american_payout,
    bet_profit,
    bets_to_frame,
    calibration_curve,
    closing_line_value,
    confidence_tier,
    edge_bucket_breakdown,
    expected_value,
    grade_bet,
    implied_probability,
    is_monotonic_roi,
    season_breakdown,
    summarize_bets,
    win_probability_for_edge,
)
from src.predictions.edge import Side


def _bet(result, edge=3.0, season=2024, price=-110, clv=None, game_id="g"):
    profit = bet_profit(result, price)
    return BetRecord(
        game_id=game_id,
        season=season,
        week=5,
        home_team="A",
        away_team="B",
        side=Side.HOME,
        market_spread_home=-3.0,
        model_spread_home=-3.0 - edge,
        edge=edge,
        effective_edge=edge,
        uncertainty=0.0,
        home_margin=7,
        result=result,
        profit=profit,
        implied_prob=implied_probability(price),
        price_american=price,
        clv=clv,
    )


class TestGrading:
    def test_home_cover(self):
        assert grade_bet(Side.HOME, -3.0, 7) == BetResult.WIN
        assert grade_bet(Side.HOME, -3.0, 2) == BetResult.LOSS

    def test_away_cover(self):
        assert grade_bet(Side.AWAY, -3.0, 1) == BetResult.WIN
        assert grade_bet(Side.AWAY, 3.0, 1) == BetResult.LOSS

    def test_push_when_margin_equals_negated_spread(self):
        assert grade_bet(Side.HOME, -3.0, 3) == BetResult.PUSH
        assert grade_bet(Side.AWAY, 7.0, -7) == BetResult.PUSH


class TestPricing:
    def test_payouts(self):
        assert american_payout(-110) == pytest.approx(0.909091, abs=1e-6)
        assert american_payout(150) == pytest.approx(1.5)

    def test_implied_probability(self):
        assert implied_probability(-110) == pytest.approx(0.52381, abs=1e-5)
        assert implied_probability(100) == pytest.approx(0.5)

    def test_invalid_price(self):
        with pytest.raises(ValueError):
            american_payout(-50)

    def test_profit_without_price_uses_flat_payout(self):
        assert bet_profit(BetResult.WIN) == 0.91
        assert bet_profit(BetResult.LOSS) == -1.0
        assert bet_profit(BetResult.PUSH, -110) == 0.0

    def test_expected_value(self):
        assert expected_value(0.55, -110) == pytest.approx(0.05, abs=1e-9)
        assert expected_value(0.5238095, -110) == pytest.approx(0.0, abs=1e-6)


class TestClosingLineValue:
    def test_home_bet_beats_close(self):
        # Laid 3, closed 3.5
        assert closing_line_value(-3.0, -3.5, Side.HOME) == pytest.approx(0.5)

    def test_away_bet_loses_to_close(self):
        # Took +3, close moved to home -3.5 → away would have gotten +3.5
        assert closing_line_value(-3.0, -3.5, Side.AWAY) == pytest.approx(-0.5)


class TestSummarize:
    def test_win_loss_push(self):
        bets = [_bet(BetResult.WIN), _bet(BetResult.LOSS), _bet(BetResult.PUSH)]
        m = summarize_bets(bets)
        assert m.total == 3
        assert m.decided == 2
        assert m.pushes == 1
        assert m.win_rate == 0.5
        assert m.units == pytest.approx(100 / 110 - 1)
        assert m.roi == pytest.approx((100 / 110 - 1) / 2)

    def test_brier_over_decided_bets(self):
        p = implied_probability(-110)
        m = summarize_bets([_bet(BetResult.WIN), _bet(BetResult.LOSS), _bet(BetResult.PUSH)])
        assert m.brier == pytest.approx(((p - 1) ** 2 + p ** 2) / 2)

    def test_clv_average(self):
        m = summarize_bets([_bet(BetResult.WIN, clv=1.0), _bet(BetResult.LOSS, clv=-0.5), _bet(BetResult.WIN)])
        assert m.avg_clv == pytest.approx(0.25)

    def test_empty(self):
        m = summarize_bets([])
        assert m.total == 0
        assert m.win_rate == 0.0
        assert m.roi == 0.0
        assert m.avg_clv is None
        assert m.brier is None


class TestEdgeBuckets:
    def test_breakdown(self):
        bets = [
            _bet(BetResult.LOSS, edge=1.0),
            _bet(BetResult.WIN, edge=3.0),
            _bet(BetResult.WIN, edge=-6.0),
            _bet(BetResult.WIN, edge=9.0),
        ]
        buckets = edge_bucket_breakdown(bets, (0.0, 2.0, 5.0))
        assert [b.label for b in buckets] == ["0-2", "2-5", "5+"]
        assert [b.count for b in buckets] == [1, 1, 2]
        assert buckets[2].to_dict()["upper"] is None
        assert is_monotonic_roi(buckets)

    def test_non_monotonic(self):
        bets = [_bet(BetResult.WIN, edge=1.0), _bet(BetResult.LOSS, edge=3.0)]
        assert not is_monotonic_roi(edge_bucket_breakdown(bets, (0.0, 2.0)))

    def test_bounds_must_increase(self):
        with pytest.raises(ValueError):
            edge_bucket_breakdown([], (0.0, 3.0, 3.0))


class TestCalibration:
    def test_cumulative_curve_and_lookup(self):
        bets = [_bet(BetResult.WIN, edge=1.0)] * 4 + [_bet(BetResult.LOSS, edge=4.0)] * 2
        curve = calibration_curve(bets, (0.0, 3.0))
        assert curve[0].count == 6
        assert curve[1].count == 2
        assert win_probability_for_edge(5.0, curve, min_decided=1) == 0.0
        assert win_probability_for_edge(5.0, curve, min_decided=3) == pytest.approx(4 / 6)
        assert win_probability_for_edge(5.0, curve, min_decided=10) is None

    def test_confidence_tiers(self):
        assert confidence_tier(3.5, 0.60) == "very-high"
        assert confidence_tier(2.0, 0.56) == "high"
        assert confidence_tier(1.2, 0.53) == "medium"
        assert confidence_tier(0.6, 0.52) == "low"
        assert confidence_tier(4.0, 0.49) == "skip"


class TestBreakdowns:
    def test_season_breakdown(self):
        bets = [_bet(BetResult.WIN, season=2023), _bet(BetResult.LOSS, season=2024)]
        by_season = season_breakdown(bets)
        assert list(by_season) == [2023, 2024]
        assert by_season[2023].wins == 1

    def test_bets_to_frame(self):
        df = bets_to_frame([_bet(BetResult.WIN, game_id="g1")])
        assert df.loc[0, "side"] == "home"
        assert df.loc[0, "result"] == "win"
        assert bets_to_frame([]).empty
