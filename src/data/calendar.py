"""Season and week inference from game dates.

Different leagues draw season boundaries differently (college football runs
late August through the January bowls; college basketball runs November
through April). The mapping is a pure function of the date, kept behind the
SeasonCalendar protocol so the rating system never needs to know which
league convention is in use.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol, Union

DateLike = Union[date, datetime]


class SeasonCalendar(Protocol):
    """Maps a game date to its (season, week)."""

    def season_for(self, when: DateLike) -> int:
        ...

    def week_for(self, when: DateLike, season: int) -> int:
        ...


def _as_date(when: DateLike) -> date:
    if isinstance(when, datetime):
        return when.date()
    return when


@dataclass(frozen=True)
class AnchoredSeasonCalendar:
    """Calendar anchored on a fixed month/day each season.

    A season is labeled by the year in which it starts. Dates before the
    anchor month belong to the previous season when their month is at or
    before ``rollover_month`` (e.g. January bowl games); otherwise they are
    pre-season games of the current year and fold into week 1.

    Week = 1 + whole weeks elapsed since the anchor date, clamped to
    [1, max_week].

    Attributes:
        start_month: Month of the week-1 anchor (1-12)
        start_day: Day of the week-1 anchor
        rollover_month: Last calendar month that still belongs to the
            previous season
        max_week: Cap on the inferred week number
    """

    start_month: int
    start_day: int
    rollover_month: int
    max_week: int

    def __post_init__(self):
        if not 1 <= self.start_month <= 12:
            raise ValueError(f"start_month must be 1-12, got {self.start_month}")
        if not 0 <= self.rollover_month < self.start_month:
            raise ValueError(
                f"rollover_month must be in [0, start_month), got {self.rollover_month}"
            )
        if self.max_week < 1:
            raise ValueError(f"max_week must be >= 1, got {self.max_week}")

    def season_for(self, when: DateLike) -> int:
        d = _as_date(when)
        if d.month <= self.rollover_month:
            return d.year - 1
        return d.year

    def week_for(self, when: DateLike, season: int) -> int:
        d = _as_date(when)
        anchor = date(season, self.start_month, self.start_day)
        days_since = (d - anchor).days
        if days_since < 0:
            # Early games (e.g. late-August kickoffs) join week 1
            return 1
        return max(1, min(self.max_week, 1 + days_since // 7))

    def season_week(self, when: DateLike) -> tuple[int, int]:
        """Return (season, week) for a date."""
        season = self.season_for(when)
        return season, self.week_for(when, season)


# Week 1 = first week of September; January games are bowls (capped at 16)
COLLEGE_FOOTBALL = AnchoredSeasonCalendar(
    start_month=9, start_day=1, rollover_month=1, max_week=16
)

# Season labeled by its November start year; Jan-Apr games roll back
COLLEGE_BASKETBALL = AnchoredSeasonCalendar(
    start_month=11, start_day=1, rollover_month=4, max_week=22
)

CALENDARS: dict[str, AnchoredSeasonCalendar] = {
    "cfb": COLLEGE_FOOTBALL,
    "cbb": COLLEGE_BASKETBALL,
}


def get_calendar(league: str) -> AnchoredSeasonCalendar:
    """Look up a calendar preset by league code ('cfb' or 'cbb')."""
    try:
        return CALENDARS[league.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown league '{league}'. Expected one of {sorted(CALENDARS)}"
        ) from None
