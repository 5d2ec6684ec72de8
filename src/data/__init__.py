"""Data loading package."""

from .calendar import (
    COLLEGE_BASKETBALL,
    COLLEGE_FOOTBALL,
    AnchoredSeasonCalendar,
    SeasonCalendar,
    get_calendar,
)
from .game_store import Game, GameRecordStore, read_table
from .validators import DataValidator, ValidationResult

__all__ = [
    "COLLEGE_BASKETBALL",
    "COLLEGE_FOOTBALL",
    "AnchoredSeasonCalendar",
    "SeasonCalendar",
    "get_calendar",
    "Game",
    "GameRecordStore",
    "read_table",
    "DataValidator",
    "ValidationResult",
]
