"""Hyperparameter grid search on the train window.

Each combination gets a fresh rating system and replays train-window games
only (the replay stops at ``train_split``, so holdout outcomes are never
read). Candidates with fewer than ``min_sample_size`` decided bets are
filtered out; survivors are ranked by

    (train ROI desc, decided bets desc, combination index asc)

which makes the selection deterministic regardless of worker scheduling.
"""

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

import pandas as pd

from src.backtest.config import BacktestConfig, apply_combination
from src.backtest.metrics import BetMetrics, summarize_bets
from src.backtest.replay import replay
from src.data.game_store import Game, GameRecordStore
from src.predictions.market_lines import MarketLineBook
from src.ratings.elo import EloConfig
from src.spread_selection.qualification import QualificationRules
from src.spread_selection.uncertainty import UncertaintyFactors

logger = logging.getLogger(__name__)


class NoViableConfigurationError(RuntimeError):
    """Raised when no grid combination reaches the minimum sample size."""

    pass


@dataclass(frozen=True)
class GridCandidate:
    """Train-window result for one hyperparameter combination."""

    index: int
    params: dict
    metrics: BetMetrics
    exclusions: dict = field(default_factory=dict)
    sufficient: bool = True

    @property
    def rank_key(self) -> tuple:
        return (-self.metrics.roi, -self.metrics.decided, self.index)


@dataclass
class GridSearchResult:
    """Outcome of a grid search.

    Attributes:
        best: Winning candidate
        best_elo: EloConfig with the winning values applied
        best_rules: QualificationRules with the winning values applied
        leaderboard: Viable candidates, best first
        candidates: Every evaluated candidate in grid order
        n_insufficient: Candidates dropped for too few decided bets
    """

    best: GridCandidate
    best_elo: EloConfig
    best_rules: QualificationRules
    leaderboard: list[GridCandidate]
    candidates: list[GridCandidate]
    n_insufficient: int

    @property
    def n_evaluated(self) -> int:
        return len(self.candidates)

    def to_frame(self) -> pd.DataFrame:
        """Every candidate with its params and train metrics, best first."""
        rows = []
        for c in sorted(self.candidates, key=lambda c: (not c.sufficient, c.rank_key)):
            row = {"index": c.index, **c.params}
            row.update(c.metrics.to_dict())
            row["sufficient"] = c.sufficient
            rows.append(row)
        return pd.DataFrame(rows)


def _evaluate_combination(
    index: int,
    combo: dict,
    games: Sequence[Game],
    lines: MarketLineBook,
    config: BacktestConfig,
    conferences: Mapping[str, str],
    uncertainty_factors: Optional[Mapping[str, UncertaintyFactors]],
) -> GridCandidate:
    """Replay the train window for one combination.

    Top-level function required for pickle serialization with ProcessPoolExecutor.
    """
    elo_config, rules = apply_combination(combo, config.elo, config.qualification_rules)
    outcome = replay(
        games,
        lines,
        elo_config,
        rules,
        window=config.train_window,
        stop_at=config.train_split,
        context=config.bet_context,
        default_price=config.default_price,
        win_payout=config.win_payout,
        conferences=conferences,
        uncertainty_policy=config.uncertainty_policy,
        uncertainty_factors=uncertainty_factors,
    )
    metrics = summarize_bets(outcome.bets)
    return GridCandidate(
        index=index,
        params=dict(combo),
        metrics=metrics,
        exclusions=outcome.exclusions.as_dict(),
        sufficient=metrics.decided >= config.min_sample_size,
    )


def grid_search(
    store: GameRecordStore,
    config: BacktestConfig,
    uncertainty_factors: Optional[Mapping[str, UncertaintyFactors]] = None,
) -> GridSearchResult:
    """Search the hyperparameter grid on the train window.

    Args:
        store: Loaded games, lines and team metadata
        config: Validated backtest configuration
        uncertainty_factors: Optional game_id -> UncertaintyFactors

    Returns:
        GridSearchResult with the selected configuration

    Raises:
        NoViableConfigurationError: If every candidate has too few decided bets
    """
    games = [g for g in store.iter_games() if g.season in config.seasons]
    combos = list(config.hyperparameter_grid.combinations())
    logger.info(
        f"Grid search: {len(combos)} combinations over {len(games)} games "
        f"(train < {config.train_split})"
    )

    task_kwargs: dict[str, Any] = dict(
        games=games,
        lines=store.lines,
        config=config,
        conferences=store.conferences,
        uncertainty_factors=uncertainty_factors,
    )

    candidates: list[GridCandidate] = []
    if config.n_workers > 1 and len(combos) > 1:
        n_workers = min(config.n_workers, len(combos))
        logger.info(f"Running {len(combos)} combinations in parallel ({n_workers} workers)")
        with ProcessPoolExecutor(max_workers=n_workers) as executor:
            futures = {
                executor.submit(_evaluate_combination, index=i, combo=combo, **task_kwargs): i
                for i, combo in enumerate(combos)
            }
            for future in futures:
                try:
                    candidates.append(future.result())
                except Exception as e:
                    logger.error(f"Combination {futures[future]} failed: {e}")
                    raise
    else:
        for i, combo in enumerate(combos):
            candidates.append(_evaluate_combination(index=i, combo=combo, **task_kwargs))

    candidates.sort(key=lambda c: c.index)
    for c in candidates:
        logger.debug(
            f"Combination {c.index} {c.params}: {c.metrics.decided} decided, "
            f"win rate {c.metrics.win_rate:.3f}, ROI {c.metrics.roi:+.3f}"
        )

    viable = sorted((c for c in candidates if c.sufficient), key=lambda c: c.rank_key)
    n_insufficient = len(candidates) - len(viable)
    if not viable:
        raise NoViableConfigurationError(
            f"No combination reached {config.min_sample_size} decided train bets "
            f"({len(candidates)} evaluated)"
        )

    best = viable[0]
    best_elo, best_rules = apply_combination(best.params, config.elo, config.qualification_rules)
    logger.info(
        f"Selected combination {best.index} {best.params}: "
        f"train ROI {best.metrics.roi:+.3f} on {best.metrics.decided} decided bets "
        f"({n_insufficient} of {len(candidates)} below sample floor)"
    )
    return GridSearchResult(
        best=best,
        best_elo=best_elo,
        best_rules=best_rules,
        leaderboard=viable,
        candidates=candidates,
        n_insufficient=n_insufficient,
    )
