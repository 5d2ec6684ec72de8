"""Shared fixtures: synthetic seasons with a planted edge."""

from datetime import datetime, timezone

import pytest

from src.data.game_store import Game, GameRecordStore
from src.predictions.market_lines import LineCheckpoint, MarketLine, MarketLineBook

TEAMS = [f"T{i:02d}" for i in range(20)]


def build_season(season: int, weeks: int = 10, spread_home: float = 0.5):
    """10 games per week between 20 teams.

    Home wins by 10 except every 4th game, where home loses by 10, so a
    home bet at +0.5 covers 75% of the time.
    """
    games, lines = [], []
    n = 0
    for week in range(1, weeks + 1):
        order = TEAMS[week % len(TEAMS):] + TEAMS[:week % len(TEAMS)]
        for i in range(0, len(order), 2):
            game_id = f"{season}w{week:02d}g{i // 2}"
            home_wins = n % 4 != 3
            games.append(Game(
                game_id=game_id,
                season=season,
                week=week,
                home_team=order[i],
                away_team=order[i + 1],
                home_score=27 if home_wins else 17,
                away_score=17 if home_wins else 27,
                commence_time=datetime(season, 9, 1, 18, tzinfo=timezone.utc),
            ))
            lines.append(MarketLine(
                game_id=game_id,
                spread_home=spread_home,
                checkpoint=LineCheckpoint.CLOSING,
            ))
            n += 1
    return games, lines


@pytest.fixture
def planted_edge_store():
    """Two 100-game seasons (2022, 2023) with a 75% home-cover rate at +0.5."""
    games, lines = [], []
    for season in (2022, 2023):
        g, l = build_season(season)
        games.extend(g)
        lines.extend(l)
    return GameRecordStore(games, lines=MarketLineBook(lines))
