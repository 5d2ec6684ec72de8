"""Backtest configuration.

Everything a run depends on is fixed up front in a frozen BacktestConfig and
validated before any replay starts. The train/holdout split is part of the
config, so it cannot move once the parameter search has begun.

Split semantics:
    train window:   (season, week) <  train_split
    holdout window: (season, week) >= holdout_split
Games between the two splits (if any) still update ratings but are never
evaluated.
"""

import itertools
import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Sequence

from config.settings import InvalidConfigurationError, Settings
from src.predictions.market_lines import LineContext
from src.ratings.elo import EloConfig
from src.spread_selection.qualification import QualificationRules
from src.spread_selection.uncertainty import UncertaintyPolicy

logger = logging.getLogger(__name__)

ELO_PARAMS = {
    "k_factor": "k_factor",
    "home_field_advantage": "home_field_advantage",
    "scale": "scale",
    "margin_multiplier": "margin_multiplier",
    "season_carryover": "season_carryover",
}
RULE_PARAMS = {
    "min_edge": "min_edge",
    "max_edge": "max_edge",
    "min_spread": "min_spread",
    "max_spread": "max_spread",
    "min_games": "min_games",
}
ALLOWED_PARAMS = tuple(ELO_PARAMS) + tuple(RULE_PARAMS)


@dataclass(frozen=True, order=True)
class SplitPoint:
    """A (season, week) boundary."""

    season: int
    week: int

    def __post_init__(self):
        if self.week < 0:
            raise InvalidConfigurationError(f"Split week must be >= 0, got {self.week}")

    def comes_after(self, season: int, week: int) -> bool:
        """True if this split point lies strictly after (season, week)."""
        return (season, week) < (self.season, self.week)

    def __str__(self) -> str:
        return f"{self.season} week {self.week}"


@dataclass(frozen=True)
class EvaluationWindow:
    """Half-open (season, week) range [start, end) in which bets are evaluated."""

    start: Optional[SplitPoint] = None
    end: Optional[SplitPoint] = None

    def contains(self, season: int, week: int) -> bool:
        if self.start is not None and self.start.comes_after(season, week):
            return False
        if self.end is not None and not self.end.comes_after(season, week):
            return False
        return True


# Evaluates nothing; used for rating-only replays
NO_EVALUATION = EvaluationWindow(start=SplitPoint(0, 0), end=SplitPoint(0, 0))


class ReplayPhase(str, Enum):
    REPLAYING_TRAIN = "replaying_train"
    REPLAYING_HOLDOUT = "replaying_holdout"
    SCORED = "scored"


@dataclass(frozen=True, init=False)
class HyperparameterGrid:
    """Candidate values per hyperparameter.

    Stored as a tuple of (name, values) pairs so the grid is hashable and
    picklable; combinations() preserves the given key order.
    """

    params: tuple = ()

    def __init__(self, params: Mapping[str, Sequence[Any]]):
        normalized = tuple((name, tuple(values)) for name, values in params.items())
        object.__setattr__(self, "params", normalized)
        self._validate()

    def _validate(self) -> None:
        if not self.params:
            raise InvalidConfigurationError("Hyperparameter grid is empty")
        for name, values in self.params:
            if name not in ALLOWED_PARAMS:
                raise InvalidConfigurationError(
                    f"Unknown hyperparameter '{name}'. Allowed: {', '.join(ALLOWED_PARAMS)}"
                )
            if not values:
                raise InvalidConfigurationError(f"Hyperparameter '{name}' has no candidate values")

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.params]

    def __len__(self) -> int:
        return math.prod(len(values) for _, values in self.params)

    def to_dict(self) -> dict[str, list]:
        return {name: list(values) for name, values in self.params}

    def combinations(self) -> Iterator[dict[str, Any]]:
        """Cartesian product in deterministic order (last key varies fastest)."""
        names = self.names
        for values in itertools.product(*(v for _, v in self.params)):
            yield dict(zip(names, values))


def apply_combination(
    combo: Mapping[str, Any],
    elo: EloConfig,
    rules: QualificationRules,
) -> tuple[EloConfig, QualificationRules]:
    """Overlay one grid combination onto the base configs.

    Raises:
        InvalidConfigurationError: If the resulting configs are contradictory
    """
    elo_updates = {ELO_PARAMS[k]: v for k, v in combo.items() if k in ELO_PARAMS}
    rule_updates = {RULE_PARAMS[k]: v for k, v in combo.items() if k in RULE_PARAMS}
    return replace(elo, **elo_updates), replace(rules, **rule_updates)


@dataclass(frozen=True)
class BacktestConfig:
    """Full description of a backtest run.

    Attributes:
        seasons: Seasons to replay (ratings evolve through all of them)
        train_split: First (season, week) after the train window (exclusive end)
        holdout_split: First (season, week) of the holdout window (inclusive start)
        hyperparameter_grid: Values to search on the train window
        qualification_rules: Base rule set (grid values override fields)
        min_sample_size: Minimum decided train bets for a candidate to be ranked
        elo: Base Elo config (grid values override fields)
        bet_context: Which market line bets are placed against
        default_price: American price assumed when a line has none recorded
        win_payout: Flat payout used when pricing falls back to no price
        n_bootstrap: Bootstrap resamples for confidence intervals
        ci_alpha: Significance level for all intervals
        seed: Bootstrap seed
        n_workers: Processes for grid search (1 = in-process)
        edge_buckets: Lower bounds for the absolute-edge breakdown
        uncertainty_policy: Scores per-game uncertainty; None disables scoring
    """

    seasons: tuple
    train_split: SplitPoint
    holdout_split: SplitPoint
    hyperparameter_grid: HyperparameterGrid
    qualification_rules: QualificationRules = field(default_factory=QualificationRules)
    min_sample_size: int = 100
    elo: EloConfig = field(default_factory=EloConfig)
    bet_context: LineContext = LineContext.CLOSING
    default_price: Optional[int] = -110
    win_payout: float = 0.91
    n_bootstrap: int = 1000
    ci_alpha: float = 0.05
    seed: int = 123
    n_workers: int = 1
    edge_buckets: tuple = (0.0, 1.0, 2.0, 3.0, 4.0, 5.0, 7.0, 10.0)
    uncertainty_policy: Optional[UncertaintyPolicy] = None

    def __post_init__(self):
        object.__setattr__(self, "seasons", tuple(sorted(set(self.seasons))))

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        seasons: Sequence[int],
        train_split: SplitPoint,
        holdout_split: SplitPoint,
        hyperparameter_grid: HyperparameterGrid,
        qualification_rules: Optional[QualificationRules] = None,
        **overrides,
    ) -> "BacktestConfig":
        """Build a config with defaults taken from environment-driven settings."""
        values = dict(
            seasons=tuple(seasons),
            train_split=train_split,
            holdout_split=holdout_split,
            hyperparameter_grid=hyperparameter_grid,
            qualification_rules=qualification_rules or QualificationRules(),
            min_sample_size=settings.min_sample_size,
            elo=EloConfig.from_settings(settings),
            default_price=settings.default_price,
            win_payout=settings.win_payout,
            n_bootstrap=settings.n_bootstrap,
            seed=settings.bootstrap_seed,
            n_workers=settings.backtest_workers,
            edge_buckets=tuple(settings.edge_buckets),
        )
        values.update(overrides)
        return cls(**values)

    @property
    def train_window(self) -> EvaluationWindow:
        return EvaluationWindow(start=None, end=self.train_split)

    @property
    def holdout_window(self) -> EvaluationWindow:
        return EvaluationWindow(start=self.holdout_split, end=None)

    def validate(self) -> None:
        """Check the whole configuration, every grid combination included.

        Raises:
            InvalidConfigurationError: On the first problem found
        """
        if not self.seasons:
            raise InvalidConfigurationError("No seasons configured")
        if self.holdout_split < self.train_split:
            raise InvalidConfigurationError(
                f"holdout_split ({self.holdout_split}) is before train_split ({self.train_split})"
            )
        first, last = self.seasons[0], self.seasons[-1]
        if self.train_split <= SplitPoint(first, 1):
            raise InvalidConfigurationError(
                f"train_split ({self.train_split}) leaves no train games in seasons {first}-{last}"
            )
        if self.holdout_split.season > last:
            raise InvalidConfigurationError(
                f"holdout_split ({self.holdout_split}) is after the last season {last}"
            )
        if self.min_sample_size < 0:
            raise InvalidConfigurationError(f"min_sample_size must be >= 0, got {self.min_sample_size}")
        if self.n_bootstrap < 1:
            raise InvalidConfigurationError(f"n_bootstrap must be >= 1, got {self.n_bootstrap}")
        if not 0.0 < self.ci_alpha < 1.0:
            raise InvalidConfigurationError(f"ci_alpha must be in (0, 1), got {self.ci_alpha}")
        if self.n_workers < 1:
            raise InvalidConfigurationError(f"n_workers must be >= 1, got {self.n_workers}")
        if self.default_price is not None and -100 < self.default_price < 100:
            raise InvalidConfigurationError(f"default_price is not valid American odds: {self.default_price}")
        if self.win_payout <= 0:
            raise InvalidConfigurationError(f"win_payout must be > 0, got {self.win_payout}")
        buckets = list(self.edge_buckets)
        if not buckets or buckets[0] < 0 or any(b <= a for a, b in zip(buckets, buckets[1:])):
            raise InvalidConfigurationError(
                f"edge_buckets must be non-negative and strictly increasing, got {buckets}"
            )

        for i, combo in enumerate(self.hyperparameter_grid.combinations()):
            try:
                apply_combination(combo, self.elo, self.qualification_rules)
            except InvalidConfigurationError as e:
                raise InvalidConfigurationError(f"Grid combination {i} {combo} is invalid: {e}") from e

        logger.debug(
            f"Config valid: seasons {first}-{last}, train < {self.train_split}, "
            f"holdout >= {self.holdout_split}, {len(self.hyperparameter_grid)} combinations"
        )


def phase_for(season: int, week: int, config: BacktestConfig) -> Optional[ReplayPhase]:
    """Replay phase a (season, week) belongs to; None if evaluated in neither window."""
    if season not in config.seasons:
        return None
    if config.train_window.contains(season, week):
        return ReplayPhase.REPLAYING_TRAIN
    if config.holdout_window.contains(season, week):
        return ReplayPhase.REPLAYING_HOLDOUT
    return None
