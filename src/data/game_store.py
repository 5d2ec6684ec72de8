"""In-memory Game Record Store.

Holds immutable historical game results, market line snapshots and team
metadata, loaded up front so that no replay ever blocks on I/O. Input files
(CSV or Parquet) are read with polars.

Expected game columns:
    game_id, season, home_team, away_team, home_score, away_score,
    and either week or commence_time (week is then inferred by a
    SeasonCalendar). season may also be inferred from commence_time.

Expected line columns:
    game_id, spread_home, and optionally checkpoint, captured_at,
    price_american, provider.

Expected team columns:
    team, conference
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, Optional

import polars as pl

from src.data.calendar import COLLEGE_FOOTBALL, SeasonCalendar
from src.predictions.market_lines import LineCheckpoint, MarketLine, MarketLineBook

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Game:
    """Immutable historical game record.

    Scores are None until the game has been played.
    """

    game_id: str
    season: int
    week: int
    home_team: str
    away_team: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    commence_time: Optional[datetime] = None

    def __post_init__(self):
        if self.week < 1:
            raise ValueError(
                f"Game {self.game_id}: week must be >= 1 (week 0 is the pre-season "
                f"snapshot slot), got {self.week}"
            )
        if self.home_team == self.away_team:
            raise ValueError(f"Game {self.game_id}: home and away team are both {self.home_team}")

    @property
    def is_final(self) -> bool:
        return self.home_score is not None and self.away_score is not None

    @property
    def home_margin(self) -> Optional[int]:
        if not self.is_final:
            return None
        return self.home_score - self.away_score

    @property
    def sort_key(self) -> tuple:
        ts = self.commence_time.timestamp() if self.commence_time is not None else float("-inf")
        return (self.season, self.week, ts, self.game_id)


def _to_utc(value) -> Optional[datetime]:
    """Normalize a timestamp to an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif not isinstance(value, datetime):
        # Date-only values parse as midnight
        value = datetime.combine(value, datetime.min.time())
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _optional_int(value) -> Optional[int]:
    if value is None:
        return None
    return int(value)


class GameRecordStore:
    """Chronologically ordered games with their market lines and team metadata."""

    def __init__(
        self,
        games: Iterable[Game],
        lines: Optional[MarketLineBook] = None,
        conferences: Optional[dict[str, str]] = None,
    ):
        self._games: list[Game] = sorted(games, key=lambda g: g.sort_key)
        self.lines = lines if lines is not None else MarketLineBook()
        self.conferences: dict[str, str] = dict(conferences or {})

        seen: set[str] = set()
        for game in self._games:
            if game.game_id in seen:
                raise ValueError(f"Duplicate game_id {game.game_id}")
            seen.add(game.game_id)

    def iter_games(self) -> Iterator[Game]:
        """Iterate games in chronological order."""
        return iter(self._games)

    @property
    def games(self) -> list[Game]:
        return list(self._games)

    @property
    def seasons(self) -> list[int]:
        return sorted({g.season for g in self._games})

    def get_game(self, game_id: str) -> Optional[Game]:
        for game in self._games:
            if game.game_id == game_id:
                return game
        return None

    def filter_seasons(self, seasons: Iterable[int]) -> "GameRecordStore":
        """A new store restricted to the given seasons (lines and metadata shared)."""
        wanted = set(seasons)
        return GameRecordStore(
            [g for g in self._games if g.season in wanted],
            lines=self.lines,
            conferences=self.conferences,
        )

    def __len__(self) -> int:
        return len(self._games)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_frames(
        cls,
        games_df: pl.DataFrame,
        lines_df: Optional[pl.DataFrame] = None,
        teams_df: Optional[pl.DataFrame] = None,
        calendar: SeasonCalendar = COLLEGE_FOOTBALL,
    ) -> "GameRecordStore":
        """Build a store from polars DataFrames.

        Args:
            games_df: Game rows (see module docstring for columns)
            lines_df: Market line rows (optional)
            teams_df: Team metadata rows with team/conference (optional)
            calendar: Used to infer season/week where the input lacks them

        Returns:
            GameRecordStore
        """
        games = [
            _game_from_row(row, calendar)
            for row in games_df.iter_rows(named=True)
        ]

        book = MarketLineBook()
        if lines_df is not None:
            for row in lines_df.iter_rows(named=True):
                if row.get("spread_home") is None:
                    continue
                book.add(_line_from_row(row))

        conferences = {}
        if teams_df is not None:
            for row in teams_df.iter_rows(named=True):
                if row.get("conference"):
                    conferences[str(row["team"])] = str(row["conference"])

        logger.info(
            f"Loaded {len(games)} games, {len(book)} market lines, "
            f"{len(conferences)} team conference labels"
        )
        return cls(games, lines=book, conferences=conferences)

    @classmethod
    def from_files(
        cls,
        games_path: str | Path,
        lines_path: Optional[str | Path] = None,
        teams_path: Optional[str | Path] = None,
        calendar: SeasonCalendar = COLLEGE_FOOTBALL,
    ) -> "GameRecordStore":
        """Load games, lines and team metadata from CSV or Parquet files."""
        games_df = read_table(games_path)
        lines_df = read_table(lines_path) if lines_path else None
        teams_df = read_table(teams_path) if teams_path else None
        return cls.from_frames(games_df, lines_df, teams_df, calendar=calendar)


def read_table(path: str | Path) -> pl.DataFrame:
    """Read a CSV or Parquet file into a polars DataFrame."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if path.suffix == ".parquet":
        return pl.read_parquet(path)
    return pl.read_csv(path, try_parse_dates=True)


def _game_from_row(row: dict, calendar: SeasonCalendar) -> Game:
    commence = _to_utc(row.get("commence_time"))
    season = row.get("season")
    week = row.get("week")
    if season is None:
        if commence is None:
            raise ValueError(f"Game {row.get('game_id')}: needs season or commence_time")
        season = calendar.season_for(commence)
    if week is None:
        if commence is None:
            raise ValueError(f"Game {row.get('game_id')}: needs week or commence_time")
        week = calendar.week_for(commence, int(season))
    elif int(week) == 0:
        # Pre-Labor Day games play with week 1; week 0 holds the pre-season snapshot
        logger.debug(f"Game {row.get('game_id')}: feed week 0 folded into week 1")
        week = 1
    return Game(
        game_id=str(row["game_id"]),
        season=int(season),
        week=int(week),
        home_team=str(row["home_team"]),
        away_team=str(row["away_team"]),
        home_score=_optional_int(row.get("home_score")),
        away_score=_optional_int(row.get("away_score")),
        commence_time=commence,
    )


def _line_from_row(row: dict) -> MarketLine:
    checkpoint = row.get("checkpoint") or LineCheckpoint.UNLABELED.value
    return MarketLine(
        game_id=str(row["game_id"]),
        spread_home=float(row["spread_home"]),
        checkpoint=LineCheckpoint(str(checkpoint).lower()),
        captured_at=_to_utc(row.get("captured_at")),
        price_american=_optional_int(row.get("price_american")),
        provider=str(row.get("provider") or "consensus"),
    )
