"""Tests for uncertainty scoring and edge shrinkage."""

import pytest

from src.spread_selection.uncertainty import (
    UNCERTAINTY_CAP,
    AdditiveCappedPolicy,
    MultiplicativePolicy,
    UncertaintyFactors,
    effective_edge,
    is_high_uncertainty,
    roster_uncertainty,
    uncertainty_terms,
    week_uncertainty,
)


class TestTerms:
    @pytest.mark.parametrize("week,expected", [(0, 0.45), (1, 0.45), (2, 0.25), (4, 0.25), (5, 0.10), (14, 0.10)])
    def test_week_term(self, week, expected):
        assert week_uncertainty(week) == expected

    @pytest.mark.parametrize("pct,expected", [(None, 0.0), (0.1, 0.15), (0.25, 0.08), (0.49, 0.08), (0.5, 0.0), (0.95, 0.0)])
    def test_roster_term(self, pct, expected):
        assert roster_uncertainty(pct) == expected

    def test_terms_by_source(self):
        terms = uncertainty_terms(UncertaintyFactors(
            week=3, home_roster=0.2, away_new_coach=True, home_key_player_transfer=True,
        ))
        assert terms["week"] == 0.25
        assert terms["home_roster"] == 0.15
        assert terms["away_roster"] == 0.0
        assert terms["home_key_player"] == 0.20
        assert terms["away_coach"] == 0.10

    def test_roster_must_be_percentile(self):
        with pytest.raises(ValueError, match="percentile"):
            UncertaintyFactors(week=3, home_roster=55.0)


class TestPolicies:
    def test_additive_late_season(self):
        assert AdditiveCappedPolicy().score(UncertaintyFactors(week=8)) == pytest.approx(0.10)

    def test_additive_is_capped(self):
        factors = UncertaintyFactors(week=1, home_roster=0.1, away_key_player_transfer=True)
        # 0.45 + 0.15 + 0.20 = 0.80 → capped
        assert AdditiveCappedPolicy().score(factors) == UNCERTAINTY_CAP

    def test_multiplicative_compounds_discounts(self):
        factors = UncertaintyFactors(week=1, home_roster=0.1, away_key_player_transfer=True)
        expected = 1 - (0.55 * 0.85 * 0.80)
        assert MultiplicativePolicy().score(factors) == pytest.approx(expected)

    def test_multiplicative_never_exceeds_additive(self):
        factors = UncertaintyFactors(week=3, home_roster=0.3, home_new_coach=True)
        assert MultiplicativePolicy().score(factors) <= AdditiveCappedPolicy().score(factors)

    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            AdditiveCappedPolicy(cap=1.0)
        with pytest.raises(ValueError):
            MultiplicativePolicy(cap=-0.1)


class TestEffectiveEdge:
    def test_shrinks_toward_zero(self):
        assert effective_edge(4.0, 0.25) == pytest.approx(3.0)
        assert effective_edge(-4.0, 0.25) == pytest.approx(-3.0)

    def test_zero_uncertainty_is_identity(self):
        assert effective_edge(2.5, 0.0) == 2.5

    def test_out_of_range_raises(self):
        with pytest.raises(ValueError):
            effective_edge(3.0, 1.2)

    def test_high_uncertainty_flag(self):
        assert is_high_uncertainty(-12.0, 0.45)
        assert not is_high_uncertainty(12.0, 0.10)
        assert not is_high_uncertainty(3.0, 0.60)
