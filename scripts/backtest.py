#!/usr/bin/env python3
"""
Backtest the Elo spread model with a train/holdout split.

Grid-searches Elo and qualification hyperparameters on the train window,
then replays the selected configuration once over the holdout window and
reports:
- Win rate against the spread (bootstrap + Wilson intervals)
- ROI and closing line value (bootstrap intervals)
- Brier score, edge-bucket breakdown, per-season results

Usage:
    python scripts/backtest.py --years 2022 2023 2024 --train-split 2024 1
    python scripts/backtest.py --league cbb --years 2023 2024 --train-split 2024 1 \\
        --k-factors 16 20 24 --min-edges 2 3 4 --workers 4
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import InvalidConfigurationError, get_settings
from src.backtest import (
    BacktestConfig,
    HyperparameterGrid,
    NoViableConfigurationError,
    SplitPoint,
    run_backtest,
)
from src.data import DataValidator, GameRecordStore, get_calendar
from src.predictions import LineContext
from src.reports import BacktestReporter, format_summary
from src.spread_selection import (
    AdditiveCappedPolicy,
    MultiplicativePolicy,
    QualificationRules,
)

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Backtest the Elo spread model (train/holdout)")

    data = parser.add_argument_group("data")
    data.add_argument("--games", type=Path, default=settings.historical_dir / "games.csv",
                      help="Games file (CSV or Parquet)")
    data.add_argument("--lines", type=Path, default=settings.historical_dir / "lines.csv",
                      help="Market lines file (CSV or Parquet)")
    data.add_argument("--teams", type=Path, default=None,
                      help="Team metadata file with team/conference columns")
    data.add_argument("--league", choices=["cfb", "cbb"], default="cfb",
                      help="Season calendar used to infer weeks (default: cfb)")
    data.add_argument("--years", type=int, nargs="+", default=list(settings.historical_years),
                      help="Seasons to replay")

    split = parser.add_argument_group("split")
    split.add_argument("--train-split", type=int, nargs=2, metavar=("SEASON", "WEEK"), required=True,
                       help="First (season, week) after the train window")
    split.add_argument("--holdout-split", type=int, nargs=2, metavar=("SEASON", "WEEK"), default=None,
                       help="First (season, week) of the holdout window (default: train split)")

    grid = parser.add_argument_group("grid")
    grid.add_argument("--k-factors", type=float, nargs="+", default=[settings.k_factor])
    grid.add_argument("--hfas", type=float, nargs="+", default=[settings.home_field_advantage])
    grid.add_argument("--scales", type=float, nargs="+", default=None)
    grid.add_argument("--carryovers", type=float, nargs="+", default=None)
    grid.add_argument("--min-edges", type=float, nargs="+", default=[0.0])
    grid.add_argument("--max-edges", type=float, nargs="+", default=None)
    grid.add_argument("--min-games", type=int, nargs="+", default=None)

    rules = parser.add_argument_group("rules")
    rules.add_argument("--min-spread", type=float, default=0.0)
    rules.add_argument("--max-spread", type=float, default=float("inf"))
    rules.add_argument("--favorite-only", action="store_true")
    rules.add_argument("--tiers", nargs="+", default=None,
                       help="Only bet games where both conferences are in these tiers")
    rules.add_argument("--shrinkage", action="store_true",
                       help="Rank and filter on uncertainty-shrunk edges")
    rules.add_argument("--max-uncertainty", type=float, default=1.0)
    rules.add_argument("--uncertainty-policy", choices=["additive", "multiplicative"],
                       default="additive")

    run = parser.add_argument_group("run")
    run.add_argument("--context", choices=[c.value for c in LineContext], default=LineContext.CLOSING.value,
                     help="Market line bets are placed against (default: closing)")
    run.add_argument("--min-sample-size", type=int, default=settings.min_sample_size)
    run.add_argument("--n-boot", type=int, default=settings.n_bootstrap)
    run.add_argument("--seed", type=int, default=settings.bootstrap_seed)
    run.add_argument("--workers", type=int, default=settings.backtest_workers)
    run.add_argument("--output-dir", type=Path, default=None)
    run.add_argument("--excel", action="store_true", help="Also write an Excel workbook")
    run.add_argument("--no-save", action="store_true", help="Print the summary only")
    run.add_argument("--verbose", "-v", action="store_true")

    return parser.parse_args(argv)


def build_grid(args: argparse.Namespace) -> HyperparameterGrid:
    params = {
        "k_factor": args.k_factors,
        "home_field_advantage": args.hfas,
        "min_edge": args.min_edges,
    }
    if args.scales:
        params["scale"] = args.scales
    if args.carryovers:
        params["season_carryover"] = args.carryovers
    if args.max_edges:
        params["max_edge"] = args.max_edges
    if args.min_games:
        params["min_games"] = args.min_games
    return HyperparameterGrid(params)


def build_config(args: argparse.Namespace) -> BacktestConfig:
    settings = get_settings()
    train_split = SplitPoint(*args.train_split)
    holdout_split = SplitPoint(*args.holdout_split) if args.holdout_split else train_split

    rules = QualificationRules(
        min_spread=args.min_spread,
        max_spread=args.max_spread,
        favorite_only=args.favorite_only,
        allowed_tiers=frozenset(args.tiers) if args.tiers else None,
        max_uncertainty=args.max_uncertainty,
        use_shrinkage=args.shrinkage,
    )
    policy = None
    if args.shrinkage or args.max_uncertainty < 1.0:
        policy_cls = MultiplicativePolicy if args.uncertainty_policy == "multiplicative" else AdditiveCappedPolicy
        policy = policy_cls(cap=settings.uncertainty_cap)

    return BacktestConfig.from_settings(
        settings,
        seasons=args.years,
        train_split=train_split,
        holdout_split=holdout_split,
        hyperparameter_grid=build_grid(args),
        qualification_rules=rules,
        min_sample_size=args.min_sample_size,
        bet_context=LineContext(args.context),
        n_bootstrap=args.n_boot,
        seed=args.seed,
        n_workers=args.workers,
        uncertainty_policy=policy,
    )


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    errors = get_settings().validate()
    if errors:
        for error in errors:
            logger.error(f"Settings error: {error}")
        return 2

    try:
        config = build_config(args)
        config.validate()
    except InvalidConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    store = GameRecordStore.from_files(
        args.games, args.lines, args.teams, calendar=get_calendar(args.league)
    )
    DataValidator(store).run_all(list(config.seasons), context=config.bet_context)

    try:
        result = run_backtest(config, store)
    except NoViableConfigurationError as e:
        logger.error(str(e))
        return 1

    print(format_summary(result))

    if not args.no_save:
        reporter = BacktestReporter(args.output_dir)
        reporter.save_json(result)
        reporter.save_bets_csv(result)
        if args.excel:
            reporter.export_workbook(result)

    return 0


if __name__ == "__main__":
    sys.exit(main())
