"""Statistical utilities for backtest evaluation.

Provides:
- Percentile bootstrap confidence intervals (vectorized resampling)
- Wilson score confidence intervals for win rate
- Convenience intervals for win rate, ROI and CLV over a bet list
"""

import logging
from dataclasses import asdict, dataclass
from typing import Callable, Optional, Sequence

import numpy as np
from scipy.stats import norm

from src.backtest.metrics import BetRecord, BetResult

logger = logging.getLogger(__name__)


# =============================================================================
# WILSON SCORE INTERVAL FOR WIN RATE
# =============================================================================

def wilson_ci(k: int, n: int, alpha: float = 0.05) -> tuple[float, float]:
    """Wilson score confidence interval for binomial proportion.

    Handles k=0 and k=n gracefully and has better small-sample coverage
    than the normal approximation.

    Args:
        k: Number of successes (wins)
        n: Total trials (decided bets)
        alpha: Significance level (default 0.05 for 95% CI)

    Returns:
        (lower, upper) bounds of confidence interval

    Examples:
        >>> wilson_ci(60, 100)  # 60% win rate
        (0.502, 0.691)
    """
    if n == 0:
        return (0.0, 1.0)

    z = norm.ppf(1 - alpha / 2)
    p_hat = k / n

    denominator = 1 + z**2 / n
    center = (p_hat + z**2 / (2 * n)) / denominator
    spread = z * np.sqrt(p_hat * (1 - p_hat) / n + z**2 / (4 * n**2)) / denominator

    lower = max(0.0, center - spread)
    upper = min(1.0, center + spread)

    return (float(lower), float(upper))


# =============================================================================
# BOOTSTRAP
# =============================================================================

@dataclass(frozen=True)
class BootstrapInterval:
    """Point estimate with a percentile bootstrap interval."""

    estimate: float
    lower: float
    upper: float
    n: int

    def excludes(self, value: float) -> bool:
        """True if ``value`` lies outside the interval."""
        return value < self.lower or value > self.upper

    def to_dict(self) -> dict:
        return asdict(self)

    def __repr__(self) -> str:
        return f"{self.estimate:.4f} [{self.lower:.4f}, {self.upper:.4f}] (n={self.n})"


def bootstrap_ci(
    values: Sequence[float],
    statistic: Callable[..., np.ndarray] = np.mean,
    n_boot: int = 1000,
    alpha: float = 0.05,
    seed: int = 123,
) -> BootstrapInterval:
    """Percentile bootstrap confidence interval.

    Args:
        values: Per-bet values (e.g. 1/0 outcomes, unit returns, CLV)
        statistic: Reducer applied along axis=1 of the resample matrix
        n_boot: Number of bootstrap resamples
        alpha: Significance level (default 0.05 for 95% CI)
        seed: Random seed for reproducibility

    Returns:
        BootstrapInterval (all zeros for an empty input)
    """
    values = np.asarray(values, dtype=float)
    if len(values) == 0:
        return BootstrapInterval(estimate=0.0, lower=0.0, upper=0.0, n=0)
    if n_boot < 1:
        raise ValueError(f"n_boot must be >= 1, got {n_boot}")
    if not 0.0 < alpha < 1.0:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}")

    rng = np.random.default_rng(seed)

    # Vectorized bootstrap sampling
    # Shape: (n_boot, n_samples)
    boot_indices = rng.integers(0, len(values), size=(n_boot, len(values)))
    boot_samples = values[boot_indices]
    boot_stats = statistic(boot_samples, axis=1)

    # Percentile method
    lower = np.percentile(boot_stats, 100 * alpha / 2)
    upper = np.percentile(boot_stats, 100 * (1 - alpha / 2))

    return BootstrapInterval(
        estimate=float(statistic(values)),
        lower=float(lower),
        upper=float(upper),
        n=len(values),
    )


def win_rate_ci(
    bets: Sequence[BetRecord],
    n_boot: int = 1000,
    alpha: float = 0.05,
    seed: int = 123,
) -> BootstrapInterval:
    """Bootstrap CI for wins / decided (pushes excluded)."""
    outcomes = [1.0 if b.result == BetResult.WIN else 0.0 for b in bets if b.is_decided]
    return bootstrap_ci(outcomes, n_boot=n_boot, alpha=alpha, seed=seed)


def roi_ci(
    bets: Sequence[BetRecord],
    n_boot: int = 1000,
    alpha: float = 0.05,
    seed: int = 123,
) -> BootstrapInterval:
    """Bootstrap CI for ROI per decided unit staked."""
    returns = [b.profit for b in bets if b.is_decided]
    return bootstrap_ci(returns, n_boot=n_boot, alpha=alpha, seed=seed)


def clv_ci(
    bets: Sequence[BetRecord],
    n_boot: int = 1000,
    alpha: float = 0.05,
    seed: int = 123,
) -> Optional[BootstrapInterval]:
    """Bootstrap CI for mean CLV; None when no bet has a closing line."""
    clvs = [b.clv for b in bets if b.clv is not None]
    if not clvs:
        return None
    return bootstrap_ci(clvs, n_boot=n_boot, alpha=alpha, seed=seed)
