#!/usr/bin/env python3
"""Replay history and display Elo power ratings.

Usage:
    python3 scripts/show_ratings.py 2024                 # Top 25 after the 2024 season
    python3 scripts/show_ratings.py 2024 50              # Top 50
    python3 scripts/show_ratings.py 2024 all             # All teams
    python3 scripts/show_ratings.py 2024 --week 10       # As they stood before week 10
    python3 scripts/show_ratings.py 2024 --csv out.csv   # Also save to CSV

Ratings are rebuilt by replaying every season up to and including YEAR
(season regression applied at each season start).
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd

from config.conferences import get_conference_tier
from config.settings import get_settings
from src.backtest.config import NO_EVALUATION, SplitPoint
from src.backtest.replay import replay
from src.data import GameRecordStore, get_calendar
from src.ratings import EloConfig
from src.spread_selection import QualificationRules

logger = logging.getLogger(__name__)


def ratings_table(store: GameRecordStore, year: int, week: int | None = None) -> pd.DataFrame:
    """Ratings after ``year`` (or before ``week`` of ``year``), best first."""
    settings = get_settings()
    games = [g for g in store.iter_games() if g.season <= year]
    stop_at = SplitPoint(year, week) if week else None
    outcome = replay(
        games,
        store.lines,
        EloConfig.from_settings(settings),
        QualificationRules(),
        window=NO_EVALUATION,
        stop_at=stop_at,
        conferences=store.conferences,
    )
    df = outcome.ratings.to_frame()
    if not df.empty:
        df["tier"] = df["conference"].map(get_conference_tier)
    return df


def main():
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Show Elo power ratings")
    parser.add_argument("year", type=int)
    parser.add_argument("top", nargs="?", default="25", help="Number of teams or 'all'")
    parser.add_argument("--week", type=int, default=None, help="Ratings as they stood before this week")
    parser.add_argument("--games", type=Path, default=settings.historical_dir / "games.csv")
    parser.add_argument("--lines", type=Path, default=None)
    parser.add_argument("--teams", type=Path, default=None)
    parser.add_argument("--league", choices=["cfb", "cbb"], default="cfb")
    parser.add_argument("--csv", type=Path, default=None, help="Save the full table to CSV")
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(asctime)s - %(levelname)s - %(message)s")

    store = GameRecordStore.from_files(args.games, args.lines, args.teams, calendar=get_calendar(args.league))
    df = ratings_table(store, args.year, args.week)
    if df.empty:
        print(f"No games found through {args.year}", file=sys.stderr)
        return 1

    label = f"{args.year} before week {args.week}" if args.week else f"{args.year} final"
    shown = df if args.top == "all" else df.head(int(args.top))

    print(f"\nElo Power Ratings - {label} ({len(df)} teams)")
    print("=" * 64)
    print(f"{'Rk':>3}  {'Team':<28} {'Conf':<18} {'Rating':>7}  {'GP':>3}")
    print("-" * 64)
    for row in shown.itertuples(index=False):
        conf = row.conference or "-"
        print(f"{row.rank:>3}  {row.team:<28} {conf:<18} {row.rating:>7.1f}  {row.season_games_played:>3}")

    if args.csv:
        args.csv.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(args.csv, index=False)
        print(f"\nSaved {len(df)} teams to {args.csv}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
