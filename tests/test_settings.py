"""Tests for environment-driven settings and conference tiers."""

import pytest

from config.conferences import get_conference_rating, get_conference_tier
from config.settings import Settings
from src.ratings.elo import EloConfig


class TestSettings:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ELO_K_FACTOR", "32")
        monkeypatch.setenv("ELO_HFA", "3.25")
        monkeypatch.setenv("BACKTEST_WORKERS", "4")
        settings = Settings()
        assert settings.k_factor == 32.0
        assert settings.home_field_advantage == 3.25
        assert settings.backtest_workers == 4

    def test_defaults_are_valid(self, monkeypatch):
        for var in ("ELO_K_FACTOR", "ELO_SCALE", "ELO_SEASON_CARRYOVER", "DEFAULT_PRICE", "N_BOOTSTRAP"):
            monkeypatch.delenv(var, raising=False)
        assert Settings().validate() == []

    def test_validate_reports_errors(self):
        settings = Settings(rating_scale=0, season_carryover=1.5, default_price=20)
        errors = settings.validate()
        assert len(errors) == 3
        assert any("ELO_SCALE" in e for e in errors)

    def test_paths(self):
        settings = Settings()
        assert settings.outputs_dir == settings.project_root / "data" / "outputs"

    def test_elo_config_from_settings(self):
        cfg = EloConfig.from_settings(Settings(rating_scale=30.0, season_carryover=0.5))
        assert cfg.scale == 30.0
        assert cfg.season_carryover == 0.5


class TestConferences:
    @pytest.mark.parametrize("conference,tier", [
        ("SEC", "elite"),
        ("ACC", "high"),
        ("MAC", "mid"),
        ("Ivy League", "low"),
        ("SWAC", "bottom"),
        (None, "mid"),
        ("Unknown Conference", "mid"),
    ])
    def test_tiers(self, conference, tier):
        assert get_conference_tier(conference) == tier

    def test_missing_conference_is_average(self):
        assert get_conference_rating(None) == 0.0
        assert get_conference_rating("Big 12") == 12.0
