"""Elo team-strength ratings with margin-of-victory scaling.

Update rule for a game (home perspective):

    expected_home = 1 / (1 + 10 ** (-(R_home - R_away + hfa * scale) / 400))
    actual        = 1 (home win), 0 (away win), 0.5 (tie)
    margin_mult   = ln(max(|margin|, 1) + 1) * margin_multiplier
    change        = k_factor * margin_mult * (actual - expected_home)

    R_home += change
    R_away -= change

Home-field advantage is configured in points and converted to rating units
with the same ``scale`` used for projection (``scale`` rating points = 1
point of spread), so the update and the projection agree on what a home
edge is worth.

The logarithmic margin multiplier is concave: larger wins still move
ratings more, but blowouts are damped.

Season regression pulls every team part of the way back to the base rating:

    R_new = base + (R_old - base) * season_carryover

Each EloRatingSystem owns its team state. Nothing is shared between
instances, so independent replays (e.g. grid search workers) never
interfere.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from config.settings import InvalidConfigurationError, Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EloConfig:
    """Immutable Elo hyperparameters.

    Attributes:
        base_rating: Rating assigned to newly seen teams and the regression target
        k_factor: Update step size (>= 0)
        home_field_advantage: Home edge in points
        scale: Rating points per point of spread (> 0)
        margin_multiplier: Constant on ln(max(|margin|, 1) + 1) (> 0)
        season_carryover: Share of a team's deviation from base kept across seasons [0, 1]
        logistic_divisor: Elo logistic curve divisor (> 0)
    """

    base_rating: float = 1500.0
    k_factor: float = 20.0
    home_field_advantage: float = 2.5
    scale: float = 25.0
    margin_multiplier: float = 0.8
    season_carryover: float = 0.6
    logistic_divisor: float = 400.0

    def __post_init__(self):
        if self.k_factor < 0:
            raise InvalidConfigurationError(f"k_factor must be >= 0, got {self.k_factor}")
        if self.scale <= 0:
            raise InvalidConfigurationError(f"scale must be > 0, got {self.scale}")
        if self.margin_multiplier <= 0:
            raise InvalidConfigurationError(
                f"margin_multiplier must be > 0, got {self.margin_multiplier}"
            )
        if not 0.0 <= self.season_carryover <= 1.0:
            raise InvalidConfigurationError(
                f"season_carryover must be in [0, 1], got {self.season_carryover}"
            )
        if self.logistic_divisor <= 0:
            raise InvalidConfigurationError(
                f"logistic_divisor must be > 0, got {self.logistic_divisor}"
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> "EloConfig":
        return cls(
            base_rating=settings.base_rating,
            k_factor=settings.k_factor,
            home_field_advantage=settings.home_field_advantage,
            scale=settings.rating_scale,
            margin_multiplier=settings.margin_multiplier,
            season_carryover=settings.season_carryover,
        )


@dataclass
class TeamState:
    """Live rating state for one team (owned by an EloRatingSystem)."""

    team_id: str
    rating: float
    games_played: int = 0
    season_games_played: int = 0
    conference: Optional[str] = None


@dataclass(frozen=True)
class RatingUpdate:
    """Result of applying one game to the ratings."""

    home_change: float
    away_change: float
    expected_home: float
    margin_multiplier: float


def expected_home_win_probability(
    home_rating: float,
    away_rating: float,
    home_field_advantage: float,
    scale: float,
    logistic_divisor: float = 400.0,
) -> float:
    """Elo expected score for the home team, home edge included."""
    diff = home_rating - away_rating + home_field_advantage * scale
    return 1.0 / (1.0 + 10 ** (-diff / logistic_divisor))


def margin_of_victory_multiplier(margin: float, multiplier: float) -> float:
    """ln(max(|margin|, 1) + 1) * multiplier. A tie counts as a one-point margin."""
    return math.log(max(abs(margin), 1) + 1) * multiplier


class EloRatingSystem:
    """Sequential Elo rating system.

    Unknown teams are initialized lazily at the base rating, mirroring sparse
    team universes (lower-division opponents appear without warning).
    """

    def __init__(self, config: Optional[EloConfig] = None):
        self.config = config or EloConfig()
        self._teams: dict[str, TeamState] = {}
        self._last_regressed_season: Optional[int] = None

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def initialize(self, team_id: str, conference: Optional[str] = None) -> float:
        """Create a team at the base rating if unseen. Idempotent.

        Returns:
            The team's current rating
        """
        state = self._teams.get(team_id)
        if state is None:
            state = TeamState(team_id=team_id, rating=self.config.base_rating, conference=conference)
            self._teams[team_id] = state
            logger.debug(f"Initialized {team_id} at {state.rating:.1f}")
        elif conference and state.conference is None:
            state.conference = conference
        return state.rating

    def seed(self, team_id: str, rating: float, games_played: int = 0) -> None:
        """Load a precomputed starting rating (e.g. a preseason prior)."""
        self.initialize(team_id)
        state = self._teams[team_id]
        state.rating = float(rating)
        state.games_played = games_played

    def update(
        self,
        home_team_id: str,
        away_team_id: str,
        home_score: int,
        away_score: int,
    ) -> RatingUpdate:
        """Apply a completed game to both teams' ratings.

        Args:
            home_team_id: Home team
            away_team_id: Away team
            home_score: Final home points
            away_score: Final away points

        Returns:
            RatingUpdate with the symmetric rating changes
        """
        if home_score is None or away_score is None:
            raise ValueError(f"Cannot update ratings without a final score: {home_team_id} vs {away_team_id}")
        if home_score < 0 or away_score < 0:
            raise ValueError(f"Scores must be non-negative, got {home_score}-{away_score}")

        self.initialize(home_team_id)
        self.initialize(away_team_id)
        home = self._teams[home_team_id]
        away = self._teams[away_team_id]
        cfg = self.config

        expected_home = expected_home_win_probability(
            home.rating, away.rating, cfg.home_field_advantage, cfg.scale, cfg.logistic_divisor
        )
        if home_score > away_score:
            actual_home = 1.0
        elif home_score < away_score:
            actual_home = 0.0
        else:
            actual_home = 0.5

        margin_mult = margin_of_victory_multiplier(home_score - away_score, cfg.margin_multiplier)
        change = cfg.k_factor * margin_mult * (actual_home - expected_home)

        home.rating += change
        away.rating -= change
        for state in (home, away):
            state.games_played += 1
            state.season_games_played += 1

        return RatingUpdate(
            home_change=change,
            away_change=-change,
            expected_home=expected_home,
            margin_multiplier=margin_mult,
        )

    def regress_to_mean(self, season: int) -> None:
        """Regress every rating toward base at the start of ``season``.

        Applied at most once per season: repeating the call for the same
        season is a no-op, and a season earlier than the last regressed
        season raises ValueError (regression never runs mid-replay backwards).
        Season game counters reset to zero.
        """
        last = self._last_regressed_season
        if last is not None:
            if season == last:
                logger.debug(f"Season {season} already regressed; skipping")
                return
            if season < last:
                raise ValueError(
                    f"Cannot regress to season {season}: already at season {last}"
                )

        base = self.config.base_rating
        carry = self.config.season_carryover
        for state in self._teams.values():
            state.rating = base + (state.rating - base) * carry
            state.season_games_played = 0

        self._last_regressed_season = season
        logger.debug(
            f"Regressed {len(self._teams)} teams toward {base:.0f} "
            f"(carryover={carry:.2f}) for season {season}"
        )

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    def get_rating(self, team_id: str) -> float:
        return self.initialize(team_id)

    def get_games_played(self, team_id: str) -> int:
        state = self._teams.get(team_id)
        return state.games_played if state else 0

    def get_season_games_played(self, team_id: str) -> int:
        state = self._teams.get(team_id)
        return state.season_games_played if state else 0

    def get_conference(self, team_id: str) -> Optional[str]:
        state = self._teams.get(team_id)
        return state.conference if state else None

    def has_team(self, team_id: str) -> bool:
        return team_id in self._teams

    @property
    def teams(self) -> list[str]:
        return sorted(self._teams)

    @property
    def current_season(self) -> Optional[int]:
        return self._last_regressed_season

    def ratings(self) -> dict[str, float]:
        """Copy of team -> rating."""
        return {team_id: state.rating for team_id, state in self._teams.items()}

    def to_frame(self) -> pd.DataFrame:
        """Ratings table sorted best to worst."""
        rows = [
            {
                "team": s.team_id,
                "conference": s.conference,
                "rating": s.rating,
                "games_played": s.games_played,
                "season_games_played": s.season_games_played,
            }
            for s in self._teams.values()
        ]
        if not rows:
            return pd.DataFrame(
                columns=["rank", "team", "conference", "rating", "games_played", "season_games_played"]
            )
        df = pd.DataFrame(rows).sort_values(["rating", "team"], ascending=[False, True])
        df = df.reset_index(drop=True)
        df.insert(0, "rank", range(1, len(df) + 1))
        return df
