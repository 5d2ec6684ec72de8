"""Backtest harness entry point.

run_backtest() walks the state machine

    REPLAYING_TRAIN  → grid search, train window only
    REPLAYING_HOLDOUT → one replay with the selected configuration,
                        ratings evolving from the first game, bets
                        evaluated only in the holdout window
    SCORED           → metrics, confidence intervals, breakdowns

The holdout numbers are reported as-is and never feed back into parameter
choice.
"""

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from src.backtest.config import BacktestConfig, ReplayPhase
from src.backtest.grid_search import GridCandidate, grid_search
from src.backtest.metrics import (
    BetMetrics,
    BetRecord,
    CalibrationPoint,
    EdgeBucketStats,
    calibration_curve,
    edge_bucket_breakdown,
    is_monotonic_roi,
    season_breakdown,
    summarize_bets,
)
from src.backtest.replay import replay
from src.backtest.stats_utils import BootstrapInterval, clv_ci, roi_ci, wilson_ci, win_rate_ci
from src.data.game_store import GameRecordStore
from src.spread_selection.uncertainty import UncertaintyFactors

logger = logging.getLogger(__name__)

LEADERBOARD_SIZE = 10


@dataclass(frozen=True)
class BacktestResult:
    """Immutable result of a backtest run."""

    seasons: tuple
    train_split: str
    holdout_split: str
    selected_params: dict
    train_metrics: BetMetrics
    holdout_metrics: BetMetrics
    win_rate_ci: BootstrapInterval
    win_rate_wilson: tuple
    roi_ci: BootstrapInterval
    clv_ci: Optional[BootstrapInterval]
    edge_buckets: list[EdgeBucketStats]
    roi_monotonic: bool
    seasons_breakdown: dict[int, BetMetrics]
    calibration: list[CalibrationPoint]
    exclusions: dict[str, int]
    performance_decay: float
    leaderboard: list[GridCandidate]
    n_candidates: int
    n_insufficient: int
    bets: tuple
    final_ratings: dict[str, float] = field(default_factory=dict)
    phase: ReplayPhase = ReplayPhase.SCORED

    def to_dict(self) -> dict:
        """JSON-safe representation (bets excluded; export those as CSV)."""
        return {
            "phase": self.phase.value,
            "seasons": list(self.seasons),
            "train_split": self.train_split,
            "holdout_split": self.holdout_split,
            "selected_params": dict(self.selected_params),
            "train": self.train_metrics.to_dict(),
            "holdout": self.holdout_metrics.to_dict(),
            "confidence_intervals": {
                "win_rate_bootstrap": self.win_rate_ci.to_dict(),
                "win_rate_wilson": {"lower": self.win_rate_wilson[0], "upper": self.win_rate_wilson[1]},
                "roi_bootstrap": self.roi_ci.to_dict(),
                "clv_bootstrap": self.clv_ci.to_dict() if self.clv_ci is not None else None,
            },
            "edge_buckets": [b.to_dict() for b in self.edge_buckets],
            "roi_monotonic": self.roi_monotonic,
            "seasons_breakdown": {str(s): m.to_dict() for s, m in self.seasons_breakdown.items()},
            "calibration": [
                {
                    "threshold": p.threshold,
                    "count": p.count,
                    "decided": p.decided,
                    "win_rate": p.win_rate,
                    "roi": p.roi,
                }
                for p in self.calibration
            ],
            "exclusions": dict(self.exclusions),
            "performance_decay": self.performance_decay,
            "search": {
                "n_candidates": self.n_candidates,
                "n_insufficient": self.n_insufficient,
                "leaderboard": [
                    {"index": c.index, "params": dict(c.params), **c.metrics.to_dict()}
                    for c in self.leaderboard
                ],
            },
            "n_bets": len(self.bets),
        }


def run_backtest(
    config: BacktestConfig,
    store: GameRecordStore,
    uncertainty_factors: Optional[Mapping[str, UncertaintyFactors]] = None,
) -> BacktestResult:
    """Run grid search on train, then score the selected config on holdout.

    Args:
        config: Backtest configuration (validated here before anything runs)
        store: Loaded games, lines and team metadata
        uncertainty_factors: Optional game_id -> UncertaintyFactors

    Returns:
        BacktestResult

    Raises:
        InvalidConfigurationError: If the configuration is invalid
        NoViableConfigurationError: If no grid candidate has enough train bets
    """
    config.validate()

    logger.info(f"Phase: {ReplayPhase.REPLAYING_TRAIN.value}")
    search = grid_search(store, config, uncertainty_factors=uncertainty_factors)

    logger.info(f"Phase: {ReplayPhase.REPLAYING_HOLDOUT.value}")
    games = [g for g in store.iter_games() if g.season in config.seasons]
    outcome = replay(
        games,
        store.lines,
        search.best_elo,
        search.best_rules,
        window=config.holdout_window,
        context=config.bet_context,
        default_price=config.default_price,
        win_payout=config.win_payout,
        conferences=store.conferences,
        uncertainty_policy=config.uncertainty_policy,
        uncertainty_factors=uncertainty_factors,
    )
    bets: list[BetRecord] = outcome.bets

    holdout = summarize_bets(bets)
    ci_kwargs = dict(n_boot=config.n_bootstrap, alpha=config.ci_alpha, seed=config.seed)
    buckets = edge_bucket_breakdown(bets, config.edge_buckets)
    monotonic = is_monotonic_roi(buckets)
    if not monotonic:
        logger.warning("Holdout ROI is not monotonic in edge size")

    result = BacktestResult(
        seasons=config.seasons,
        train_split=str(config.train_split),
        holdout_split=str(config.holdout_split),
        selected_params=dict(search.best.params),
        train_metrics=search.best.metrics,
        holdout_metrics=holdout,
        win_rate_ci=win_rate_ci(bets, **ci_kwargs),
        win_rate_wilson=wilson_ci(holdout.wins, holdout.decided, config.ci_alpha),
        roi_ci=roi_ci(bets, **ci_kwargs),
        clv_ci=clv_ci(bets, **ci_kwargs),
        edge_buckets=buckets,
        roi_monotonic=monotonic,
        seasons_breakdown=season_breakdown(bets),
        calibration=calibration_curve(bets, config.edge_buckets),
        exclusions=outcome.exclusions.as_dict(),
        performance_decay=search.best.metrics.roi - holdout.roi,
        leaderboard=search.leaderboard[:LEADERBOARD_SIZE],
        n_candidates=search.n_evaluated,
        n_insufficient=search.n_insufficient,
        bets=tuple(bets),
        final_ratings=outcome.ratings.ratings(),
    )

    logger.info(f"Phase: {result.phase.value}")
    logger.info(
        f"Holdout: {holdout.wins}-{holdout.losses}-{holdout.pushes} "
        f"win rate {holdout.win_rate:.3f} {result.win_rate_ci!r}, "
        f"ROI {holdout.roi:+.3f}, decay {result.performance_decay:+.3f}"
    )
    return result
