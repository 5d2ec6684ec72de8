"""Uncertainty scoring and edge shrinkage.

Raw model edges are least trustworthy early in the season and for teams with
heavy roster turnover. An uncertainty score u in [0, cap] shrinks the edge:

    effective_edge = raw_edge * (1 - u)

Terms:
    Week:            week <= 1 → 0.45, weeks 2-4 → 0.25, week 5+ → 0.10
    Roster (per team, returning-production percentile):
                     < 25th → 0.15, 25th-50th → 0.08, top half → 0.0
    Key player (per team, starting QB transferred out): 0.20
    Coach (per team, new head coach): 0.10

How terms combine is a policy. AdditiveCappedPolicy sums them and caps the
total. MultiplicativePolicy treats each term as an independent discount,
u = 1 - prod(1 - term), which saturates smoothly before reaching the cap.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import numpy as np

logger = logging.getLogger(__name__)

UNCERTAINTY_CAP = 0.75

WEEK_0_1 = 0.45
WEEK_2_4 = 0.25
WEEK_5_PLUS = 0.10

ROSTER_BOTTOM_QUARTILE = 0.15
ROSTER_SECOND_QUARTILE = 0.08
ROSTER_TOP_HALF = 0.0

KEY_PLAYER_TRANSFER = 0.20
NEW_COACH = 0.10

HIGH_UNCERTAINTY_THRESHOLD = 0.40
HIGH_EDGE_THRESHOLD = 10.0


@dataclass(frozen=True)
class UncertaintyFactors:
    """Inputs to the uncertainty score for one game.

    Roster values are returning-production percentiles in [0, 1]; None means
    unknown and contributes nothing.
    """

    week: int
    home_roster: Optional[float] = None
    away_roster: Optional[float] = None
    home_key_player_transfer: bool = False
    away_key_player_transfer: bool = False
    home_new_coach: bool = False
    away_new_coach: bool = False

    def __post_init__(self):
        for name in ("home_roster", "away_roster"):
            value = getattr(self, name)
            if value is not None and not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be a percentile in [0, 1], got {value}")


def week_uncertainty(week: int) -> float:
    if week <= 1:
        return WEEK_0_1
    if week <= 4:
        return WEEK_2_4
    return WEEK_5_PLUS


def roster_uncertainty(percentile: Optional[float]) -> float:
    if percentile is None:
        return 0.0
    if percentile < 0.25:
        return ROSTER_BOTTOM_QUARTILE
    if percentile < 0.50:
        return ROSTER_SECOND_QUARTILE
    return ROSTER_TOP_HALF


def uncertainty_terms(factors: UncertaintyFactors) -> dict[str, float]:
    """Individual uncertainty contributions, keyed by source."""
    return {
        "week": week_uncertainty(factors.week),
        "home_roster": roster_uncertainty(factors.home_roster),
        "away_roster": roster_uncertainty(factors.away_roster),
        "home_key_player": KEY_PLAYER_TRANSFER if factors.home_key_player_transfer else 0.0,
        "away_key_player": KEY_PLAYER_TRANSFER if factors.away_key_player_transfer else 0.0,
        "home_coach": NEW_COACH if factors.home_new_coach else 0.0,
        "away_coach": NEW_COACH if factors.away_new_coach else 0.0,
    }


class UncertaintyPolicy(Protocol):
    """Combines uncertainty terms into a single score in [0, 1)."""

    def score(self, factors: UncertaintyFactors) -> float:
        ...


@dataclass(frozen=True)
class AdditiveCappedPolicy:
    """Sum of all terms, capped."""

    cap: float = UNCERTAINTY_CAP

    def __post_init__(self):
        if not 0.0 <= self.cap < 1.0:
            raise ValueError(f"cap must be in [0, 1), got {self.cap}")

    def score(self, factors: UncertaintyFactors) -> float:
        return min(sum(uncertainty_terms(factors).values()), self.cap)


@dataclass(frozen=True)
class MultiplicativePolicy:
    """1 - product of (1 - term), capped."""

    cap: float = UNCERTAINTY_CAP

    def __post_init__(self):
        if not 0.0 <= self.cap < 1.0:
            raise ValueError(f"cap must be in [0, 1), got {self.cap}")

    def score(self, factors: UncertaintyFactors) -> float:
        terms = np.array(list(uncertainty_terms(factors).values()))
        return min(float(1.0 - np.prod(1.0 - terms)), self.cap)


DEFAULT_POLICY = AdditiveCappedPolicy()


def effective_edge(raw_edge: float, uncertainty: float) -> float:
    """Shrink a raw edge by its uncertainty score (sign is preserved)."""
    if not 0.0 <= uncertainty <= 1.0:
        raise ValueError(f"uncertainty must be in [0, 1], got {uncertainty}")
    return raw_edge * (1.0 - uncertainty)


def is_high_uncertainty(raw_edge: float, uncertainty: float) -> bool:
    """Large edge combined with high uncertainty, usually a data problem rather than value."""
    return abs(raw_edge) >= HIGH_EDGE_THRESHOLD and uncertainty >= HIGH_UNCERTAINTY_THRESHOLD
