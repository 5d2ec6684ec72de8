"""Market line records and deterministic line selection.

A game can carry several recorded spreads (opening number, a mid-week
capture, the close, or raw timestamped captures). Every evaluation context
must resolve to exactly one line, chosen the same way on every run.

Spread convention: ``spread_home`` is from the home team's perspective,
negative = home favored (Vegas convention).
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


class MissingMarketLineError(LookupError):
    """Raised when no usable spread exists for a game in the requested context."""

    pass


class LineCheckpoint(str, Enum):
    """Label attached to a recorded line."""
    OPEN = "open"
    MID_WEEK = "mid_week"
    CLOSING = "closing"
    UNLABELED = "unlabeled"


class LineContext(str, Enum):
    """Which line an evaluation should use."""
    OPEN = "open"
    MID_WEEK = "mid_week"
    CLOSING = "closing"
    LATEST = "latest"


# Tie-break order when two captures share a timestamp
_CHECKPOINT_ORDER = {
    LineCheckpoint.OPEN: 0,
    LineCheckpoint.UNLABELED: 1,
    LineCheckpoint.MID_WEEK: 2,
    LineCheckpoint.CLOSING: 3,
}


@dataclass(frozen=True)
class MarketLine:
    """A recorded market spread for one game."""

    game_id: str
    spread_home: float
    checkpoint: LineCheckpoint = LineCheckpoint.UNLABELED
    captured_at: Optional[datetime] = None
    price_american: Optional[int] = None
    provider: str = "consensus"

    def __post_init__(self):
        if self.price_american is not None and -100 < self.price_american < 100:
            raise ValueError(
                f"Invalid American price {self.price_american} for game {self.game_id}"
            )


def _capture_key(line: MarketLine) -> tuple:
    # Lines without a capture time sort before any timestamped capture
    has_time = line.captured_at is not None
    ts = line.captured_at.timestamp() if has_time else 0.0
    return (has_time, ts, _CHECKPOINT_ORDER[line.checkpoint], line.provider.lower())


def select_line(
    lines: Iterable[MarketLine],
    context: LineContext,
    commence_time: Optional[datetime] = None,
) -> MarketLine:
    """Pick one line for an evaluation context.

    Args:
        lines: All recorded lines for a single game
        context: OPEN / MID_WEEK / CLOSING select by checkpoint label,
            LATEST selects the most recent capture
        commence_time: Kickoff time; enables the CLOSING fallback to the
            last unlabeled capture before kickoff

    Returns:
        The selected MarketLine

    Raises:
        MissingMarketLineError: If no line fits the context
    """
    candidates = [l for l in lines if l.spread_home is not None]
    if not candidates:
        raise MissingMarketLineError(f"No market lines recorded (context={context.value})")

    if context == LineContext.LATEST:
        return max(candidates, key=_capture_key)

    wanted = LineCheckpoint(context.value)
    labeled = [l for l in candidates if l.checkpoint == wanted]
    if labeled:
        return max(labeled, key=_capture_key)

    if context == LineContext.CLOSING and commence_time is not None:
        pre_kick = [
            l for l in candidates
            if l.captured_at is not None and l.captured_at <= commence_time
        ]
        if pre_kick:
            line = max(pre_kick, key=_capture_key)
            logger.debug(
                f"No labeled closing line for game {line.game_id}; "
                f"using last pre-kickoff capture at {line.captured_at}"
            )
            return line

    raise MissingMarketLineError(
        f"No {context.value} line among {len(candidates)} recorded lines"
    )


class MarketLineBook:
    """All market lines for a set of games, grouped by game_id."""

    def __init__(self, lines: Optional[Iterable[MarketLine]] = None):
        self._lines: dict[str, list[MarketLine]] = defaultdict(list)
        if lines is not None:
            for line in lines:
                self.add(line)

    def add(self, line: MarketLine) -> None:
        self._lines[line.game_id].append(line)

    def lines_for(self, game_id: str) -> list[MarketLine]:
        return list(self._lines.get(game_id, []))

    def select(
        self,
        game_id: str,
        context: LineContext,
        commence_time: Optional[datetime] = None,
    ) -> MarketLine:
        """Select a line for a game, raising MissingMarketLineError if absent."""
        lines = self._lines.get(game_id)
        if not lines:
            raise MissingMarketLineError(f"No market lines for game {game_id}")
        return select_line(lines, context, commence_time)

    def try_select(
        self,
        game_id: str,
        context: LineContext,
        commence_time: Optional[datetime] = None,
    ) -> Optional[MarketLine]:
        try:
            return self.select(game_id, context, commence_time)
        except MissingMarketLineError:
            return None

    @property
    def game_ids(self) -> set[str]:
        return set(self._lines)

    def __len__(self) -> int:
        return sum(len(v) for v in self._lines.values())

    def __contains__(self, game_id: str) -> bool:
        return game_id in self._lines
