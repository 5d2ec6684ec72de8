"""Edge between the market spread and the model spread.

Edge Sign Convention (DO NOT CHANGE):
    edge = market_spread_home - model_spread_home

    Positive edge: model likes HOME more than the market → bet HOME.
    Negative edge: model likes AWAY more than the market → bet AWAY.
    Zero edge: resolves to AWAY (fixed, documented tie rule).

    Example (bet HOME): market = +3 (home +3), model = +1 (home +1).
        edge = 3 - 1 = +2 → model thinks home is 2 pts better than priced.
    Example (bet AWAY): market = -7 (home by 7), model = -1 (home by 1).
        edge = -7 - (-1) = -6 → model thinks away is 6 pts better than priced.
"""

from dataclasses import dataclass
from enum import Enum


class Side(str, Enum):
    HOME = "home"
    AWAY = "away"


@dataclass(frozen=True)
class EdgeResult:
    edge: float
    abs_edge: float
    side: Side


def compute_edge(market_spread_home: float, model_spread_home: float) -> EdgeResult:
    """Signed edge, its magnitude, and the side to bet."""
    edge = market_spread_home - model_spread_home
    side = Side.HOME if edge > 0 else Side.AWAY
    return EdgeResult(edge=edge, abs_edge=abs(edge), side=side)


def is_favorite(side: Side, market_spread_home: float) -> bool:
    """True if ``side`` is laying points in the market (pick'em counts as neither)."""
    if side == Side.HOME:
        return market_spread_home < 0
    return market_spread_home > 0
