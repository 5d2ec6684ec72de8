"""Point-spread projection from team ratings.

Spread Sign Convention (same as the market):
    model_spread_home < 0  → model favors HOME by |spread|
    model_spread_home > 0  → model favors AWAY

    model_spread_home = -((home_rating - away_rating) / scale + home_field_advantage)

Example: home 1550, away 1500, scale 25, HFA 2.5
    → -((50 / 25) + 2.5) = -4.5 (home favored by 4.5)
"""

import logging
from dataclasses import dataclass
from typing import Optional

from scipy.stats import norm

from src.ratings.snapshots import MissingRatingError

logger = logging.getLogger(__name__)

# Historical std dev of game margin around the closing spread (CFB)
DEFAULT_MARGIN_SIGMA = 13.5


@dataclass(frozen=True)
class Projection:
    """Projected spread for a single game."""

    home_rating: float
    away_rating: float
    model_spread_home: float
    home_field_advantage: float
    scale: float

    @property
    def rating_diff(self) -> float:
        return self.home_rating - self.away_rating


def project(
    home_rating: Optional[float],
    away_rating: Optional[float],
    home_field_advantage: float,
    scale: float,
) -> float:
    """Project the home-perspective point spread.

    Args:
        home_rating: Home team's point-in-time rating
        away_rating: Away team's point-in-time rating
        home_field_advantage: Home edge in points
        scale: Rating points per point of spread

    Returns:
        Projected spread (negative = home favored)

    Raises:
        MissingRatingError: If either rating is None
        ValueError: If scale is not positive
    """
    if home_rating is None or away_rating is None:
        raise MissingRatingError("Cannot project a spread without both team ratings")
    if scale <= 0:
        raise ValueError(f"scale must be > 0, got {scale}")
    return -((home_rating - away_rating) / scale + home_field_advantage)


def project_game(
    home_rating: Optional[float],
    away_rating: Optional[float],
    home_field_advantage: float,
    scale: float,
) -> Projection:
    spread = project(home_rating, away_rating, home_field_advantage, scale)
    return Projection(
        home_rating=home_rating,
        away_rating=away_rating,
        model_spread_home=spread,
        home_field_advantage=home_field_advantage,
        scale=scale,
    )


def spread_to_win_probability(model_spread_home: float, sigma: float = DEFAULT_MARGIN_SIGMA) -> float:
    """Home straight-up win probability implied by a projected spread.

    Treats the final home margin as Normal(-model_spread_home, sigma).
    """
    if sigma <= 0:
        raise ValueError(f"sigma must be > 0, got {sigma}")
    return float(norm.cdf(-model_spread_home / sigma))
