"""Declarative bet qualification rules.

A QualificationRules value holds every threshold (so the backtest can sweep
them); build_rules() turns it into a list of small rule objects, each of
which either passes a candidate or returns a short failure reason. The first
failing rule decides the verdict, and its reason is what the backtest counts
under ``rule:<reason>``.

Edge band semantics:
    abs_edge (or |effective_edge| when use_shrinkage is on) must lie in
    [min_edge, max_edge]. Both ends are inclusive.

Spread band semantics:
    |market spread| must lie in [min_spread, max_spread], which lets a
    strategy drop pick'em games or extreme blowout lines.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from config.conferences import get_conference_tier
from config.settings import InvalidConfigurationError
from src.predictions.edge import EdgeResult, is_favorite
from src.spread_selection.uncertainty import effective_edge as shrink_edge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QualificationRules:
    """Thresholds for deciding whether an edge becomes a bet.

    Attributes:
        min_edge: Minimum absolute edge in points
        max_edge: Maximum absolute edge (huge edges are usually bad data)
        min_spread: Minimum |market spread|
        max_spread: Maximum |market spread|
        min_games: Both teams must have played at least this many games this season
        favorite_only: Only bet the side laying points
        allowed_tiers: If set, both teams' conference tiers must be in this set
        max_uncertainty: Reject games whose uncertainty score exceeds this
        use_shrinkage: Apply edge shrinkage before the edge band and ranking
    """

    min_edge: float = 0.0
    max_edge: float = math.inf
    min_spread: float = 0.0
    max_spread: float = math.inf
    min_games: int = 0
    favorite_only: bool = False
    allowed_tiers: Optional[frozenset] = None
    max_uncertainty: float = 1.0
    use_shrinkage: bool = False

    def __post_init__(self):
        for name in ("min_edge", "max_edge", "min_spread", "max_spread", "min_games"):
            if getattr(self, name) < 0:
                raise InvalidConfigurationError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.min_edge > self.max_edge:
            raise InvalidConfigurationError(
                f"min_edge ({self.min_edge}) > max_edge ({self.max_edge})"
            )
        if self.min_spread > self.max_spread:
            raise InvalidConfigurationError(
                f"min_spread ({self.min_spread}) > max_spread ({self.max_spread})"
            )
        if not 0.0 <= self.max_uncertainty <= 1.0:
            raise InvalidConfigurationError(
                f"max_uncertainty must be in [0, 1], got {self.max_uncertainty}"
            )
        if self.allowed_tiers is not None:
            if not self.allowed_tiers:
                raise InvalidConfigurationError("allowed_tiers must not be empty when set")
            # Normalize so equal rule sets hash equally
            object.__setattr__(self, "allowed_tiers", frozenset(self.allowed_tiers))


@dataclass(frozen=True)
class BetContext:
    """Game context the rules may inspect besides the edge itself."""

    home_games: int = 0
    away_games: int = 0
    home_conference: Optional[str] = None
    away_conference: Optional[str] = None
    uncertainty: float = 0.0
    market_spread_home: Optional[float] = None


@dataclass(frozen=True)
class QualificationVerdict:
    qualifies: bool
    reason: Optional[str]
    effective_edge: float


class QualificationRule(Protocol):
    def check(self, edge: EdgeResult, spread_size: float, context: BetContext) -> Optional[str]:
        """Return a failure reason, or None if the candidate passes."""
        ...


@dataclass(frozen=True)
class EdgeBandRule:
    min_edge: float
    max_edge: float
    use_shrinkage: bool = False

    def check(self, edge: EdgeResult, spread_size: float, context: BetContext) -> Optional[str]:
        size = edge.abs_edge
        if self.use_shrinkage:
            size = abs(shrink_edge(edge.edge, context.uncertainty))
        if size < self.min_edge:
            return "edge_below_min"
        if size > self.max_edge:
            return "edge_above_max"
        return None


@dataclass(frozen=True)
class SpreadBandRule:
    min_spread: float
    max_spread: float

    def check(self, edge: EdgeResult, spread_size: float, context: BetContext) -> Optional[str]:
        if spread_size < self.min_spread:
            return "spread_below_min"
        if spread_size > self.max_spread:
            return "spread_above_max"
        return None


@dataclass(frozen=True)
class MinGamesRule:
    min_games: int

    def check(self, edge: EdgeResult, spread_size: float, context: BetContext) -> Optional[str]:
        if min(context.home_games, context.away_games) < self.min_games:
            return "insufficient_games"
        return None


@dataclass(frozen=True)
class FavoriteOnlyRule:
    def check(self, edge: EdgeResult, spread_size: float, context: BetContext) -> Optional[str]:
        if context.market_spread_home is None:
            return "not_favorite"
        if not is_favorite(edge.side, context.market_spread_home):
            return "not_favorite"
        return None


@dataclass(frozen=True)
class ConferenceTierRule:
    allowed_tiers: frozenset

    def check(self, edge: EdgeResult, spread_size: float, context: BetContext) -> Optional[str]:
        home_tier = get_conference_tier(context.home_conference)
        away_tier = get_conference_tier(context.away_conference)
        if home_tier not in self.allowed_tiers or away_tier not in self.allowed_tiers:
            return "conference_tier"
        return None


@dataclass(frozen=True)
class MaxUncertaintyRule:
    max_uncertainty: float

    def check(self, edge: EdgeResult, spread_size: float, context: BetContext) -> Optional[str]:
        if context.uncertainty > self.max_uncertainty:
            return "uncertainty_above_max"
        return None


def build_rules(rules: QualificationRules) -> list[QualificationRule]:
    """Compose the active rule objects for a rule set.

    Data-quality gates run first so that the counted reason reflects the
    most basic reason a game was passed over.
    """
    active: list[QualificationRule] = []
    if rules.min_games > 0:
        active.append(MinGamesRule(rules.min_games))
    if rules.max_uncertainty < 1.0:
        active.append(MaxUncertaintyRule(rules.max_uncertainty))
    if rules.allowed_tiers is not None:
        active.append(ConferenceTierRule(rules.allowed_tiers))
    if rules.min_spread > 0 or math.isfinite(rules.max_spread):
        active.append(SpreadBandRule(rules.min_spread, rules.max_spread))
    if rules.favorite_only:
        active.append(FavoriteOnlyRule())
    active.append(EdgeBandRule(rules.min_edge, rules.max_edge, rules.use_shrinkage))
    return active


def qualifies(
    edge: EdgeResult,
    spread_size: float,
    context: BetContext,
    rules: QualificationRules,
) -> QualificationVerdict:
    """Apply a rule set to one candidate.

    Args:
        edge: Edge result for the game
        spread_size: |market spread|
        context: Game context (games played, conferences, uncertainty)
        rules: Thresholds

    Returns:
        QualificationVerdict with the first failing reason (None if it qualifies)
        and the edge used for ranking (shrunk when use_shrinkage is on)
    """
    eff = shrink_edge(edge.edge, context.uncertainty) if rules.use_shrinkage else edge.edge
    for rule in build_rules(rules):
        reason = rule.check(edge, spread_size, context)
        if reason is not None:
            return QualificationVerdict(qualifies=False, reason=reason, effective_edge=eff)
    return QualificationVerdict(qualifies=True, reason=None, effective_edge=eff)


@dataclass(frozen=True)
class RankedCandidate:
    game_id: str
    edge: EdgeResult
    effective_edge: float


def rank_candidates(candidates: Iterable[RankedCandidate]) -> list[RankedCandidate]:
    """Order candidates best first: |effective edge|, then |raw edge|, then game_id."""
    return sorted(
        candidates,
        key=lambda c: (-abs(c.effective_edge), -c.edge.abs_edge, c.game_id),
    )
