"""Bet selection layer.

- uncertainty: uncertainty scoring policies and edge shrinkage
- qualification: declarative, composable bet qualification rules
"""

from .qualification import (
    BetContext,
    ConferenceTierRule,
    EdgeBandRule,
    FavoriteOnlyRule,
    MaxUncertaintyRule,
    MinGamesRule,
    QualificationRules,
    QualificationVerdict,
    RankedCandidate,
    SpreadBandRule,
    build_rules,
    qualifies,
    rank_candidates,
)
from .uncertainty import (
    DEFAULT_POLICY,
    UNCERTAINTY_CAP,
    AdditiveCappedPolicy,
    MultiplicativePolicy,
    UncertaintyFactors,
    UncertaintyPolicy,
    effective_edge,
    is_high_uncertainty,
    roster_uncertainty,
    uncertainty_terms,
    week_uncertainty,
)

__all__ = [
    # Qualification
    "BetContext",
    "ConferenceTierRule",
    "EdgeBandRule",
    "FavoriteOnlyRule",
    "MaxUncertaintyRule",
    "MinGamesRule",
    "QualificationRules",
    "QualificationVerdict",
    "RankedCandidate",
    "SpreadBandRule",
    "build_rules",
    "qualifies",
    "rank_candidates",
    # Uncertainty
    "DEFAULT_POLICY",
    "UNCERTAINTY_CAP",
    "AdditiveCappedPolicy",
    "MultiplicativePolicy",
    "UncertaintyFactors",
    "UncertaintyPolicy",
    "effective_edge",
    "is_high_uncertainty",
    "roster_uncertainty",
    "uncertainty_terms",
    "week_uncertainty",
]
