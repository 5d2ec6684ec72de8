"""Point-in-time rating snapshots.

A snapshot records a team's rating at the end of a (season, week). Week 0 is
the pre-season slot, recorded right after season regression and before any
game of that season is applied.

Lookups are strictly backward-looking: a query for week W only ever sees
snapshots recorded at weeks < W. Snapshots are write-once, so a rating read
during a replay can never be changed by later processing.
"""

import bisect
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Mapping, Optional

import pandas as pd

logger = logging.getLogger(__name__)

PRESEASON_WEEK = 0


class MissingRatingError(LookupError):
    """Raised when no eligible rating exists for a team at a point in time."""

    pass


class SnapshotExistsError(ValueError):
    """Raised when a (team, season, week) snapshot is recorded twice."""

    pass


@dataclass(frozen=True)
class RatingSnapshot:
    team_id: str
    season: int
    week: int
    rating: float


class SnapshotIndex:
    """Append-only index of team ratings keyed by (team, season, week)."""

    def __init__(self):
        # (team_id, season) -> sorted weeks, and parallel ratings
        self._weeks: dict[tuple[str, int], list[int]] = defaultdict(list)
        self._ratings: dict[tuple[str, int], list[float]] = defaultdict(list)
        self._count = 0

    def record_snapshot(self, team_id: str, season: int, week: int, rating: float) -> None:
        """Record a team's rating at the end of (season, week).

        Raises:
            SnapshotExistsError: If this key already has a snapshot
            ValueError: If week is negative
        """
        if week < PRESEASON_WEEK:
            raise ValueError(f"Snapshot week must be >= {PRESEASON_WEEK}, got {week}")

        key = (team_id, season)
        weeks = self._weeks[key]
        pos = bisect.bisect_left(weeks, week)
        if pos < len(weeks) and weeks[pos] == week:
            raise SnapshotExistsError(
                f"Snapshot already recorded for {team_id} season {season} week {week}"
            )
        weeks.insert(pos, week)
        self._ratings[key].insert(pos, float(rating))
        self._count += 1

    def record_all(self, ratings: Mapping[str, float], season: int, week: int) -> None:
        """Record a snapshot for every team in ``ratings``."""
        for team_id, rating in ratings.items():
            self.record_snapshot(team_id, season, week, rating)
        logger.debug(f"Recorded {len(ratings)} snapshots for {season} week {week}")

    def get_rating_as_of(self, team_id: str, season: int, week: int) -> float:
        """Rating of a team as it stood before ``week`` of ``season``.

        Returns the latest snapshot of the season strictly before ``week``.
        The pre-season snapshot (week 0) qualifies for any week > 0.

        Raises:
            MissingRatingError: If no eligible snapshot exists
        """
        key = (team_id, season)
        weeks = self._weeks.get(key)
        if weeks:
            pos = bisect.bisect_left(weeks, week)
            if pos > 0:
                return self._ratings[key][pos - 1]
        raise MissingRatingError(
            f"No rating for {team_id} before season {season} week {week}"
        )

    def try_get_rating_as_of(self, team_id: str, season: int, week: int) -> Optional[float]:
        try:
            return self.get_rating_as_of(team_id, season, week)
        except MissingRatingError:
            return None

    def has_snapshot(self, team_id: str, season: int, week: int) -> bool:
        weeks = self._weeks.get((team_id, season), [])
        pos = bisect.bisect_left(weeks, week)
        return pos < len(weeks) and weeks[pos] == week

    def snapshots_for(self, team_id: str, season: int) -> list[RatingSnapshot]:
        key = (team_id, season)
        return [
            RatingSnapshot(team_id, season, w, r)
            for w, r in zip(self._weeks.get(key, []), self._ratings.get(key, []))
        ]

    def __len__(self) -> int:
        return self._count

    def to_frame(self) -> pd.DataFrame:
        """All snapshots as a long DataFrame (team, season, week, rating)."""
        rows = [
            {"team": team_id, "season": season, "week": w, "rating": r}
            for (team_id, season), weeks in self._weeks.items()
            for w, r in zip(weeks, self._ratings[(team_id, season)])
        ]
        if not rows:
            return pd.DataFrame(columns=["team", "season", "week", "rating"])
        return pd.DataFrame(rows).sort_values(["season", "week", "team"]).reset_index(drop=True)
