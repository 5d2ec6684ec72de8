"""Tests for the game record store, loaders and data validators."""

from datetime import datetime, timezone

import polars as pl
import pytest

from src.data.game_store import Game, GameRecordStore
from src.data.validators import DataValidator
from src.predictions.market_lines import LineCheckpoint, LineContext, MarketLine, MarketLineBook


def _game(game_id, season=2024, week=1, home="A", away="B", hs=21, as_=14, hour=None):
    commence = datetime(season, 9, 7, hour, tzinfo=timezone.utc) if hour is not None else None
    return Game(game_id, season, week, home, away, hs, as_, commence)


class TestGame:
    def test_week_zero_rejected(self):
        with pytest.raises(ValueError, match="week"):
            _game("g1", week=0)

    def test_self_matchup_rejected(self):
        with pytest.raises(ValueError):
            _game("g1", home="A", away="A")

    def test_unplayed_game(self):
        game = Game("g1", 2024, 3, "A", "B")
        assert not game.is_final
        assert game.home_margin is None

    def test_home_margin(self):
        assert _game("g1", hs=10, as_=24).home_margin == -14


class TestGameRecordStore:
    def test_chronological_order(self):
        store = GameRecordStore([
            _game("late", week=2, hour=12),
            _game("b", week=1, hour=20),
            _game("a", week=1, hour=20),
            _game("early", week=1, hour=12),
            _game("prev", season=2023, week=9),
        ])
        assert [g.game_id for g in store.iter_games()] == ["prev", "early", "a", "b", "late"]

    def test_duplicate_game_id(self):
        with pytest.raises(ValueError, match="Duplicate"):
            GameRecordStore([_game("g1"), _game("g1", week=2)])

    def test_seasons_and_filter(self):
        store = GameRecordStore(
            [_game("a", season=2022), _game("b", season=2023), _game("c", season=2024)],
            conferences={"A": "SEC"},
        )
        assert store.seasons == [2022, 2023, 2024]
        subset = store.filter_seasons([2023])
        assert len(subset) == 1
        assert subset.get_game("b") is not None
        assert subset.get_game("a") is None
        assert subset.conferences == {"A": "SEC"}


class TestLoading:
    def test_from_files_csv(self, tmp_path):
        games_csv = tmp_path / "games.csv"
        games_csv.write_text(
            "game_id,season,week,home_team,away_team,home_score,away_score\n"
            "g1,2024,1,Georgia,Clemson,34,3\n"
            "g2,2024,2,Clemson,Georgia,,\n"
        )
        lines_csv = tmp_path / "lines.csv"
        lines_csv.write_text(
            "game_id,spread_home,checkpoint,price_american\n"
            "g1,-13.5,closing,-110\n"
            "g1,-12.0,open,\n"
            "g2,2.5,closing,\n"
        )
        teams_csv = tmp_path / "teams.csv"
        teams_csv.write_text("team,conference\nGeorgia,SEC\nClemson,ACC\n")

        store = GameRecordStore.from_files(games_csv, lines_csv, teams_csv)

        assert len(store) == 2
        g1 = store.get_game("g1")
        assert g1.home_margin == 31
        assert not store.get_game("g2").is_final
        closing = store.lines.select("g1", LineContext.CLOSING)
        assert closing.spread_home == -13.5
        assert closing.price_american == -110
        assert store.lines.select("g1", LineContext.OPEN).spread_home == -12.0
        assert store.conferences["Georgia"] == "SEC"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            GameRecordStore.from_files(tmp_path / "nope.csv")

    def test_week_inferred_from_commence_time(self):
        games_df = pl.DataFrame({
            "game_id": ["g1", "g2"],
            "home_team": ["A", "C"],
            "away_team": ["B", "D"],
            "home_score": [21, 7],
            "away_score": [14, 10],
            "commence_time": [datetime(2024, 9, 14, 18), datetime(2025, 1, 1, 20)],
        })
        store = GameRecordStore.from_frames(games_df)
        g1, g2 = store.get_game("g1"), store.get_game("g2")
        assert (g1.season, g1.week) == (2024, 2)
        assert g1.commence_time.tzinfo is not None
        assert g2.season == 2024
        assert g2.week == 16

    def test_feed_week_zero_joins_week_one(self):
        games_df = pl.DataFrame({
            "game_id": ["a", "b"],
            "season": [2024, 2024],
            "week": [0, 1],
            "home_team": ["A", "C"],
            "away_team": ["B", "D"],
            "home_score": [28, 17],
            "away_score": [10, 20],
        })
        store = GameRecordStore.from_frames(games_df)
        assert len(store) == 2
        assert store.get_game("a").week == 1
        assert store.get_game("b").week == 1

    def test_row_without_week_or_time_raises(self):
        games_df = pl.DataFrame({
            "game_id": ["g1"],
            "season": [2024],
            "home_team": ["A"],
            "away_team": ["B"],
        })
        with pytest.raises(ValueError, match="week"):
            GameRecordStore.from_frames(games_df)


class TestDataValidator:
    @pytest.fixture
    def store(self):
        games = [_game(f"g{i}", week=i + 1) for i in range(4)]
        games.append(Game("g9", 2024, 9, "A", "B"))
        lines = MarketLineBook([
            MarketLine("g0", -3.0, LineCheckpoint.CLOSING),
            MarketLine("orphan", 1.0, LineCheckpoint.CLOSING),
        ])
        return GameRecordStore(games, lines=lines)

    def test_season_results(self, store):
        result = DataValidator(store).validate_season_results(2024)
        assert result.is_valid
        assert result.details["completed_games"] == 4
        assert not DataValidator(store).validate_season_results(2024, min_completion=0.9).is_valid

    def test_missing_season(self, store):
        assert not DataValidator(store).validate_season_results(2019).is_valid

    def test_line_coverage(self, store):
        result = DataValidator(store).validate_line_coverage(2024)
        assert not result.is_valid
        assert result.details["with_line"] == 1

    def test_orphan_lines(self, store):
        result = DataValidator(store).validate_orphan_lines()
        assert not result.is_valid
        assert result.details["orphan_game_ids"] == ["orphan"]

    def test_run_all(self, store):
        results = DataValidator(store).run_all()
        assert len(results) == 3
