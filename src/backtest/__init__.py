"""Backtest / evaluation harness.

- config: splits, hyperparameter grid, BacktestConfig
- replay: chronological rating replay with bet evaluation
- grid_search: train-only hyperparameter search
- harness: run_backtest entry point
- metrics / stats_utils: grading, summaries, confidence intervals
"""

from .config import (
    BacktestConfig,
    EvaluationWindow,
    HyperparameterGrid,
    ReplayPhase,
    SplitPoint,
    apply_combination,
    phase_for,
)
from .grid_search import GridCandidate, GridSearchResult, NoViableConfigurationError, grid_search
from .harness import BacktestResult, run_backtest
from .metrics import (
    BetMetrics,
    BetRecord,
    BetResult,
    CalibrationPoint,
    EdgeBucketStats,
    american_payout,
    bet_profit,
    bets_to_frame,
    calibration_curve,
    closing_line_value,
    confidence_tier,
    edge_bucket_breakdown,
    expected_value,
    grade_bet,
    implied_probability,
    is_monotonic_roi,
    season_breakdown,
    summarize_bets,
    win_probability_for_edge,
)
from .replay import ExclusionCounter, ReplayOutcome, replay
from .stats_utils import BootstrapInterval, bootstrap_ci, clv_ci, roi_ci, wilson_ci, win_rate_ci

__all__ = [
    # Config
    "BacktestConfig",
    "EvaluationWindow",
    "HyperparameterGrid",
    "ReplayPhase",
    "SplitPoint",
    "apply_combination",
    "phase_for",
    # Search / harness
    "GridCandidate",
    "GridSearchResult",
    "NoViableConfigurationError",
    "grid_search",
    "BacktestResult",
    "run_backtest",
    # Metrics
    "BetMetrics",
    "BetRecord",
    "BetResult",
    "CalibrationPoint",
    "EdgeBucketStats",
    "american_payout",
    "bet_profit",
    "bets_to_frame",
    "calibration_curve",
    "closing_line_value",
    "confidence_tier",
    "edge_bucket_breakdown",
    "expected_value",
    "grade_bet",
    "implied_probability",
    "is_monotonic_roi",
    "season_breakdown",
    "summarize_bets",
    "win_probability_for_edge",
    # Replay
    "ExclusionCounter",
    "ReplayOutcome",
    "replay",
    # Statistics
    "BootstrapInterval",
    "bootstrap_ci",
    "clv_ci",
    "roi_ci",
    "wilson_ci",
    "win_rate_ci",
]
