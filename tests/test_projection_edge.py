"""Tests for spread projection and edge computation.

Tests verify:
1. Spread sign convention (negative = home favored)
2. Missing ratings fail instead of defaulting
3. Edge sign convention and zero-edge tie rule
"""

import pytest

from src.predictions.edge import Side, compute_edge, is_favorite
from src.predictions.projection import project, project_game, spread_to_win_probability
from src.ratings.snapshots import MissingRatingError


class TestProject:
    def test_equal_ratings_home_favored_by_hfa(self):
        assert project(1500, 1500, 2.5, 25) == pytest.approx(-2.5)

    def test_rating_gap_converted_by_scale(self):
        # 50 rating points at scale 25 = 2 points, plus 2.5 HFA
        assert project(1550, 1500, 2.5, 25) == pytest.approx(-4.5)

    def test_away_favored(self):
        assert project(1400, 1500, 2.5, 25) == pytest.approx(1.5)

    def test_missing_rating_raises(self):
        with pytest.raises(MissingRatingError):
            project(None, 1500, 2.5, 25)
        with pytest.raises(MissingRatingError):
            project(1500, None, 2.5, 25)

    def test_nonpositive_scale_raises(self):
        with pytest.raises(ValueError, match="scale"):
            project(1500, 1500, 2.5, 0)

    def test_project_game_record(self):
        p = project_game(1525, 1500, 2.0, 25)
        assert p.model_spread_home == pytest.approx(-3.0)
        assert p.rating_diff == 25


class TestWinProbability:
    def test_pickem_is_even(self):
        assert spread_to_win_probability(0.0) == pytest.approx(0.5)

    def test_home_favorite_above_half(self):
        assert spread_to_win_probability(-7.0) > 0.5
        assert spread_to_win_probability(7.0) < 0.5

    def test_invalid_sigma(self):
        with pytest.raises(ValueError):
            spread_to_win_probability(-3.0, sigma=0)


class TestComputeEdge:
    def test_positive_edge_bets_home(self):
        result = compute_edge(3, 1)
        assert result.edge == 2
        assert result.abs_edge == 2
        assert result.side == Side.HOME

    def test_negative_edge_bets_away(self):
        result = compute_edge(-7, -1)
        assert result.edge == -6
        assert result.abs_edge == 6
        assert result.side == Side.AWAY

    def test_zero_edge_resolves_to_away(self):
        result = compute_edge(-3.5, -3.5)
        assert result.edge == 0
        assert result.side == Side.AWAY


class TestIsFavorite:
    def test_home_favorite(self):
        assert is_favorite(Side.HOME, -3.5)
        assert not is_favorite(Side.AWAY, -3.5)

    def test_away_favorite(self):
        assert is_favorite(Side.AWAY, 6.0)
        assert not is_favorite(Side.HOME, 6.0)

    def test_pickem_has_no_favorite(self):
        assert not is_favorite(Side.HOME, 0.0)
        assert not is_favorite(Side.AWAY, 0.0)
