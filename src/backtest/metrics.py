"""Bet grading and performance metrics.

Grading (home perspective):
    cover_margin = home_margin + market_spread_home
    HOME bet: cover_margin > 0 win, < 0 loss, == 0 push
    AWAY bet: cover_margin < 0 win, > 0 loss, == 0 push

Pushes return the stake. They count toward bet totals but are excluded from
the win-rate and ROI denominators.

Payout: a winning unit pays american_payout(price) when the price is known
(e.g. -110 → 0.909), otherwise the flat ``win_payout`` (0.91). A loss costs
one unit.

CLV (closing line value) is signed by side so that positive always means the
bet got a better number than the close:
    HOME bet: bet_spread_home - closing_spread_home
    AWAY bet: closing_spread_home - bet_spread_home
"""

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from src.predictions.edge import Side

logger = logging.getLogger(__name__)

DEFAULT_EDGE_BUCKETS = (0.0, 1.0, 2.0, 3.0, 4.0, 5.0, 7.0, 10.0)
DEFAULT_WIN_PAYOUT = 0.91


class BetResult(str, Enum):
    WIN = "win"
    LOSS = "loss"
    PUSH = "push"


# =============================================================================
# GRADING & PRICING
# =============================================================================

def grade_bet(side: Side, market_spread_home: float, home_margin: float) -> BetResult:
    """Grade a spread bet against the final margin."""
    cover_margin = home_margin + market_spread_home
    if cover_margin == 0:
        return BetResult.PUSH
    home_covered = cover_margin > 0
    if side == Side.HOME:
        return BetResult.WIN if home_covered else BetResult.LOSS
    return BetResult.LOSS if home_covered else BetResult.WIN


def _check_price(price: int) -> None:
    if -100 < price < 100:
        raise ValueError(f"Invalid American price: {price}")


def american_payout(price: int) -> float:
    """Profit per unit staked on a win at American odds."""
    _check_price(price)
    if price > 0:
        return price / 100.0
    return 100.0 / abs(price)


def implied_probability(price: int) -> float:
    """Break-even win probability implied by American odds (vig included)."""
    _check_price(price)
    if price > 0:
        return 100.0 / (price + 100.0)
    return abs(price) / (abs(price) + 100.0)


def bet_profit(
    result: BetResult,
    price: Optional[int] = None,
    win_payout: float = DEFAULT_WIN_PAYOUT,
) -> float:
    """Units won or lost on a one-unit bet."""
    if result == BetResult.PUSH:
        return 0.0
    if result == BetResult.LOSS:
        return -1.0
    return american_payout(price) if price is not None else win_payout


def closing_line_value(
    bet_spread_home: float,
    closing_spread_home: float,
    side: Side,
) -> float:
    """Points gained versus the closing line (positive = beat the close).

    Example: bet HOME at -3, closed -3.5 → +0.5 (laid half a point less).
    """
    if side == Side.HOME:
        return bet_spread_home - closing_spread_home
    return closing_spread_home - bet_spread_home


def expected_value(win_probability: float, price: int = -110) -> float:
    """Expected profit per unit staked."""
    return win_probability * american_payout(price) - (1.0 - win_probability)


# =============================================================================
# BET RECORDS & SUMMARY
# =============================================================================

@dataclass(frozen=True)
class BetRecord:
    """One graded bet."""

    game_id: str
    season: int
    week: int
    home_team: str
    away_team: str
    side: Side
    market_spread_home: float
    model_spread_home: float
    edge: float
    effective_edge: float
    uncertainty: float
    home_margin: int
    result: BetResult
    profit: float
    implied_prob: float
    price_american: Optional[int] = None
    closing_spread_home: Optional[float] = None
    clv: Optional[float] = None

    @property
    def abs_edge(self) -> float:
        return abs(self.edge)

    @property
    def is_decided(self) -> bool:
        return self.result != BetResult.PUSH


@dataclass(frozen=True)
class BetMetrics:
    """Aggregate performance over a set of bets.

    Attributes:
        total: All bets including pushes
        wins, losses, pushes: Outcome counts
        decided: wins + losses
        win_rate: wins / decided (0.0 when nothing decided)
        units: Net units won
        roi: units / decided
        avg_clv: Mean CLV over bets with a closing line (None if none)
        brier: Mean (implied_prob - outcome)^2 over decided bets (None if none)
    """

    total: int
    wins: int
    losses: int
    pushes: int
    decided: int
    win_rate: float
    units: float
    roi: float
    avg_clv: Optional[float]
    brier: Optional[float]

    def to_dict(self) -> dict:
        return asdict(self)


def summarize_bets(bets: Sequence[BetRecord]) -> BetMetrics:
    """Compute win rate, ROI, CLV and Brier for a bet list."""
    wins = sum(1 for b in bets if b.result == BetResult.WIN)
    losses = sum(1 for b in bets if b.result == BetResult.LOSS)
    pushes = sum(1 for b in bets if b.result == BetResult.PUSH)
    decided = wins + losses
    units = float(sum(b.profit for b in bets))

    clvs = [b.clv for b in bets if b.clv is not None]
    briers = [
        (b.implied_prob - (1.0 if b.result == BetResult.WIN else 0.0)) ** 2
        for b in bets if b.is_decided
    ]

    return BetMetrics(
        total=len(bets),
        wins=wins,
        losses=losses,
        pushes=pushes,
        decided=decided,
        win_rate=wins / decided if decided > 0 else 0.0,
        units=units,
        roi=units / decided if decided > 0 else 0.0,
        avg_clv=float(np.mean(clvs)) if clvs else None,
        brier=float(np.mean(briers)) if briers else None,
    )


# =============================================================================
# EDGE BUCKETS & CALIBRATION
# =============================================================================

@dataclass(frozen=True)
class EdgeBucketStats:
    """Performance for bets with lower <= |edge| < upper."""

    lower: float
    upper: float
    count: int
    wins: int
    losses: int
    pushes: int
    win_rate: float
    roi: float

    @property
    def decided(self) -> int:
        return self.wins + self.losses

    @property
    def label(self) -> str:
        if np.isinf(self.upper):
            return f"{self.lower:g}+"
        return f"{self.lower:g}-{self.upper:g}"

    def to_dict(self) -> dict:
        d = asdict(self)
        d["upper"] = None if np.isinf(self.upper) else self.upper
        d["label"] = self.label
        return d


def edge_bucket_breakdown(
    bets: Sequence[BetRecord],
    edges: Sequence[float] = DEFAULT_EDGE_BUCKETS,
) -> list[EdgeBucketStats]:
    """Partition bets by absolute edge; the last bucket is open-ended."""
    edges = list(edges)
    if any(b >= a for a, b in zip(edges[1:], edges[:-1])):
        raise ValueError(f"Edge bucket bounds must be strictly increasing: {edges}")

    buckets = []
    for i, lower in enumerate(edges):
        upper = edges[i + 1] if i + 1 < len(edges) else float("inf")
        in_bucket = [b for b in bets if lower <= b.abs_edge < upper]
        m = summarize_bets(in_bucket)
        buckets.append(EdgeBucketStats(
            lower=lower,
            upper=upper,
            count=m.total,
            wins=m.wins,
            losses=m.losses,
            pushes=m.pushes,
            win_rate=m.win_rate,
            roi=m.roi,
        ))
    return buckets


def is_monotonic_roi(buckets: Sequence[EdgeBucketStats], min_count: int = 1) -> bool:
    """True if ROI never decreases as edge grows.

    Buckets with fewer than ``min_count`` decided bets are ignored.
    Non-monotonic ROI is a warning sign for the model, not an error.
    """
    rois = [b.roi for b in buckets if b.decided >= min_count and b.decided > 0]
    return all(later >= earlier for earlier, later in zip(rois, rois[1:]))


@dataclass(frozen=True)
class CalibrationPoint:
    """Cumulative performance of bets at or above an edge threshold."""

    threshold: float
    count: int
    decided: int
    win_rate: float
    roi: float


def calibration_curve(
    bets: Sequence[BetRecord],
    thresholds: Sequence[float] = DEFAULT_EDGE_BUCKETS,
) -> list[CalibrationPoint]:
    points = []
    for threshold in thresholds:
        m = summarize_bets([b for b in bets if b.abs_edge >= threshold])
        points.append(CalibrationPoint(
            threshold=threshold,
            count=m.total,
            decided=m.decided,
            win_rate=m.win_rate,
            roi=m.roi,
        ))
    return points


def win_probability_for_edge(
    abs_edge: float,
    curve: Sequence[CalibrationPoint],
    min_decided: int = 30,
) -> Optional[float]:
    """Look up the historical win rate for an edge size.

    Uses the highest threshold at or below ``abs_edge`` that has at least
    ``min_decided`` decided bets; None if no threshold qualifies.
    """
    eligible = [p for p in curve if p.threshold <= abs_edge and p.decided >= min_decided]
    if not eligible:
        return None
    return max(eligible, key=lambda p: p.threshold).win_rate


def confidence_tier(abs_edge: float, win_probability: float) -> str:
    """Label a candidate by edge size and calibrated win probability."""
    if abs_edge >= 3 and win_probability >= 0.58:
        return "very-high"
    if abs_edge >= 2 and win_probability >= 0.55:
        return "high"
    if abs_edge >= 1 and win_probability >= 0.53:
        return "medium"
    if abs_edge >= 0.5 and win_probability >= 0.51:
        return "low"
    return "skip"


def season_breakdown(bets: Iterable[BetRecord]) -> dict[int, BetMetrics]:
    by_season: dict[int, list[BetRecord]] = defaultdict(list)
    for bet in bets:
        by_season[bet.season].append(bet)
    return {season: summarize_bets(by_season[season]) for season in sorted(by_season)}


def bets_to_frame(bets: Sequence[BetRecord]) -> pd.DataFrame:
    """One row per bet, enums flattened to their string values."""
    columns = [f for f in BetRecord.__dataclass_fields__]
    if not bets:
        return pd.DataFrame(columns=columns)
    rows = []
    for bet in bets:
        row = asdict(bet)
        row["side"] = bet.side.value
        row["result"] = bet.result.value
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)
