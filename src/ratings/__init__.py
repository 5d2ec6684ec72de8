"""Team ratings package."""

from .elo import (
    EloConfig,
    EloRatingSystem,
    RatingUpdate,
    TeamState,
    expected_home_win_probability,
    margin_of_victory_multiplier,
)
from .snapshots import (
    PRESEASON_WEEK,
    MissingRatingError,
    RatingSnapshot,
    SnapshotExistsError,
    SnapshotIndex,
)

__all__ = [
    "EloConfig",
    "EloRatingSystem",
    "RatingUpdate",
    "TeamState",
    "expected_home_win_probability",
    "margin_of_victory_multiplier",
    "PRESEASON_WEEK",
    "MissingRatingError",
    "RatingSnapshot",
    "SnapshotExistsError",
    "SnapshotIndex",
]
