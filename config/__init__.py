"""Configuration package for the Elo rating and edge engine."""

from .settings import InvalidConfigurationError, Settings, get_settings
from .conferences import (
    CONFERENCE_RATINGS,
    ELITE_HIGH_TIERS,
    get_conference_rating,
    get_conference_tier,
)

__all__ = [
    "InvalidConfigurationError",
    "Settings",
    "get_settings",
    "CONFERENCE_RATINGS",
    "ELITE_HIGH_TIERS",
    "get_conference_rating",
    "get_conference_tier",
]
