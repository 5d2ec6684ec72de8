"""Application settings and configuration."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class InvalidConfigurationError(ValueError):
    """Raised when a model, rule or search configuration is empty or contradictory."""

    pass


@dataclass
class Settings:
    """Application configuration settings."""

    # Data Configuration
    historical_years: tuple = (2022, 2023, 2024, 2025)
    current_year: int = 2025

    # Elo Rating System
    # 25 rating points ~= 1 point of spread; HFA is expressed in points
    base_rating: float = field(
        default_factory=lambda: float(os.getenv("BASE_RATING", "1500"))
    )
    k_factor: float = field(
        default_factory=lambda: float(os.getenv("ELO_K_FACTOR", "20"))
    )
    home_field_advantage: float = field(
        default_factory=lambda: float(os.getenv("ELO_HFA", "2.5"))
    )
    rating_scale: float = field(
        default_factory=lambda: float(os.getenv("ELO_SCALE", "25"))
    )
    margin_multiplier: float = field(
        default_factory=lambda: float(os.getenv("ELO_MARGIN_MULTIPLIER", "0.8"))
    )
    season_carryover: float = field(
        default_factory=lambda: float(os.getenv("ELO_SEASON_CARRYOVER", "0.6"))
    )

    # Uncertainty shrinkage cap (effective_edge = raw_edge * (1 - uncertainty))
    uncertainty_cap: float = 0.75

    # Evaluation
    default_price: int = field(
        default_factory=lambda: int(os.getenv("DEFAULT_PRICE", "-110"))
    )
    win_payout: float = 0.91  # Flat payout per unit when no price is recorded
    min_sample_size: int = field(
        default_factory=lambda: int(os.getenv("MIN_SAMPLE_SIZE", "100"))
    )
    n_bootstrap: int = field(
        default_factory=lambda: int(os.getenv("N_BOOTSTRAP", "1000"))
    )
    bootstrap_seed: int = field(
        default_factory=lambda: int(os.getenv("BOOTSTRAP_SEED", "123"))
    )
    backtest_workers: int = field(
        default_factory=lambda: int(os.getenv("BACKTEST_WORKERS", "1"))
    )
    edge_buckets: tuple = (0.0, 1.0, 2.0, 3.0, 4.0, 5.0, 7.0, 10.0)

    # Paths
    @property
    def project_root(self) -> Path:
        return Path(__file__).parent.parent

    @property
    def data_dir(self) -> Path:
        return self.project_root / "data"

    @property
    def historical_dir(self) -> Path:
        return self.data_dir / "historical"

    @property
    def outputs_dir(self) -> Path:
        return self.data_dir / "outputs"

    def validate(self) -> list[str]:
        """Validate settings. Returns list of errors."""
        errors = []
        if self.rating_scale <= 0:
            errors.append(f"ELO_SCALE must be > 0, got {self.rating_scale}")
        if self.k_factor < 0:
            errors.append(f"ELO_K_FACTOR must be >= 0, got {self.k_factor}")
        if not 0.0 <= self.season_carryover <= 1.0:
            errors.append(
                f"ELO_SEASON_CARRYOVER must be in [0, 1], got {self.season_carryover}"
            )
        if -100 < self.default_price < 100:
            errors.append(f"DEFAULT_PRICE is not valid American odds: {self.default_price}")
        if self.n_bootstrap < 1:
            errors.append(f"N_BOOTSTRAP must be >= 1, got {self.n_bootstrap}")
        return errors


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
