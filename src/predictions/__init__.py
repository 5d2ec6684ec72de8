"""Predictions package."""

from .edge import EdgeResult, Side, compute_edge, is_favorite
from .market_lines import (
    LineCheckpoint,
    LineContext,
    MarketLine,
    MarketLineBook,
    MissingMarketLineError,
    select_line,
)
from .projection import Projection, project, project_game, spread_to_win_probability

__all__ = [
    "EdgeResult",
    "Side",
    "compute_edge",
    "is_favorite",
    "LineCheckpoint",
    "LineContext",
    "MarketLine",
    "MarketLineBook",
    "MissingMarketLineError",
    "select_line",
    "Projection",
    "project",
    "project_game",
    "spread_to_win_probability",
]
