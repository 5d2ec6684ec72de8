"""Tests for the command-line scripts (backtest, show_ratings)."""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from config.settings import get_settings
from conftest import build_season
from scripts.backtest import build_config, build_grid, main, parse_args
from scripts.show_ratings import ratings_table
from src.spread_selection import AdditiveCappedPolicy, MultiplicativePolicy


@pytest.fixture
def csv_inputs(tmp_path):
    """Write two planted-edge seasons to games/lines/teams CSVs."""
    game_rows = ["game_id,season,week,home_team,away_team,home_score,away_score"]
    line_rows = ["game_id,spread_home,checkpoint"]
    for season in (2022, 2023):
        games, lines = build_season(season)
        for g in games:
            game_rows.append(
                f"{g.game_id},{g.season},{g.week},{g.home_team},{g.away_team},{g.home_score},{g.away_score}"
            )
        for line in lines:
            line_rows.append(f"{line.game_id},{line.spread_home},{line.checkpoint.value}")

    games_csv = tmp_path / "games.csv"
    games_csv.write_text("\n".join(game_rows) + "\n")
    lines_csv = tmp_path / "lines.csv"
    lines_csv.write_text("\n".join(line_rows) + "\n")
    teams_csv = tmp_path / "teams.csv"
    teams_csv.write_text("team,conference\nT00,SEC\nT01,ACC\n")
    return games_csv, lines_csv, teams_csv


class TestBacktestArgs:
    def test_grid_from_args(self):
        args = parse_args([
            "--train-split", "2024", "1",
            "--k-factors", "16", "24",
            "--min-edges", "2", "3",
            "--scales", "25",
        ])
        grid = build_grid(args)
        assert len(grid) == 4
        assert grid.to_dict()["scale"] == [25.0]

    def test_holdout_defaults_to_train_split(self):
        config = build_config(parse_args(["--train-split", "2024", "3", "--years", "2023", "2024"]))
        assert config.holdout_split == config.train_split
        assert config.uncertainty_policy is None

    def test_uncertainty_policy_selection(self):
        base = ["--train-split", "2024", "1", "--shrinkage"]
        assert isinstance(build_config(parse_args(base)).uncertainty_policy, AdditiveCappedPolicy)
        multiplicative = build_config(parse_args(base + ["--uncertainty-policy", "multiplicative"]))
        assert isinstance(multiplicative.uncertainty_policy, MultiplicativePolicy)
        assert multiplicative.qualification_rules.use_shrinkage


class TestBacktestMain:
    def _argv(self, csv_inputs, out_dir, *extra):
        games, lines, teams = csv_inputs
        return [
            "--games", str(games), "--lines", str(lines), "--teams", str(teams),
            "--years", "2022", "2023",
            "--train-split", "2023", "1",
            "--k-factors", "0",
            "--min-edges", "1", "5",
            "--min-sample-size", "50",
            "--n-boot", "200",
            "--workers", "1",
            "--output-dir", str(out_dir),
            *extra,
        ]

    def test_end_to_end(self, csv_inputs, tmp_path, capsys):
        out_dir = tmp_path / "out"
        assert main(self._argv(csv_inputs, out_dir, "--excel")) == 0
        assert "BACKTEST RESULT" in capsys.readouterr().out

        payload = json.loads((out_dir / "backtest_result.json").read_text())
        assert payload["holdout"]["wins"] == 75
        assert payload["selected_params"]["min_edge"] == 1.0
        assert (out_dir / "backtest_bets.csv").exists()
        assert (out_dir / "backtest.xlsx").exists()

    def test_no_viable_configuration_exit_code(self, csv_inputs, tmp_path):
        argv = self._argv(csv_inputs, tmp_path / "out", "--no-save")
        argv[argv.index("--min-sample-size") + 1] = "5000"
        assert main(argv) == 1

    def test_invalid_configuration_exit_code(self, csv_inputs, tmp_path):
        argv = self._argv(csv_inputs, tmp_path / "out", "--holdout-split", "2022", "3")
        assert main(argv) == 2


class TestShowRatings:
    def test_ratings_table(self, planted_edge_store):
        df = ratings_table(planted_edge_store, 2022)
        assert len(df) == 20
        assert list(df["rank"]) == list(range(1, 21))
        assert df["rating"].is_monotonic_decreasing
        assert set(df["tier"]) == {"mid"}

    def test_before_week(self, planted_edge_store):
        early = ratings_table(planted_edge_store, 2022, week=2)
        final = ratings_table(planted_edge_store, 2022)
        assert len(early) == 20
        assert set(early["season_games_played"]) == {1}
        assert set(final["season_games_played"]) == {10}

    def test_before_week_one_shows_preseason_ratings(self, planted_edge_store):
        end_2022 = ratings_table(planted_edge_store, 2022).set_index("team")["rating"]
        preseason = ratings_table(planted_edge_store, 2023, week=1).set_index("team")

        assert len(preseason) == 20
        assert set(preseason["season_games_played"]) == {0}
        settings = get_settings()
        for team in ("T00", "T07"):
            deviation = end_2022[team] - settings.base_rating
            expected = settings.base_rating + deviation * settings.season_carryover
            assert preseason.loc[team, "rating"] == pytest.approx(expected)
