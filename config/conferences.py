"""Conference strength ratings and tiers.

Ratings are points relative to an average conference, derived from
cross-conference results. Tiers gate bet qualification (see
ConferenceTierRule in src/spread_selection/qualification.py).
"""

from typing import Optional

CONFERENCE_RATINGS: dict[str, float] = {
    # Elite tier (rating >= 9)
    "Big 12": 12,
    "SEC": 11,
    "Big Ten": 9,
    # High tier (rating >= 5)
    "Big East": 7,
    "ACC": 5,
    "Mountain West": 5,
    # Mid tier (rating >= 0)
    "Atlantic 10": 4,
    "WCC": 3,
    "American Athletic": 3,
    "Missouri Valley": 2,
    "MAC": 1,
    "Sun Belt": 0,
    "Pac-12": 0,
    # Low tier (rating >= -6)
    "Conference USA": -1,
    "WAC": -2,
    "Big West": -3,
    "Ohio Valley": -4,
    "Horizon League": -4,
    "Southern": -5,
    "CAA": -5,
    "Patriot League": -6,
    "Ivy League": -6,
    # Bottom tier (rating < -6)
    "Big South": -7,
    "Summit League": -8,
    "ASUN": -8,
    "Northeast": -10,
    "Southland": -11,
    "MEAC": -14,
    "SWAC": -16,
}

TIERS = ("elite", "high", "mid", "low", "bottom")

# Elite and high tier conferences (the default betting universe for tier gating)
ELITE_HIGH_TIERS = frozenset({"elite", "high"})


def get_conference_rating(conference: Optional[str]) -> float:
    """Rating for a conference; unknown or missing conferences are average (0)."""
    if not conference:
        return 0.0
    return float(CONFERENCE_RATINGS.get(conference, 0))


def get_conference_tier(conference: Optional[str]) -> str:
    """Map a conference to its tier label.

    Teams without a conference label are treated as mid tier.
    """
    if not conference:
        return "mid"
    rating = get_conference_rating(conference)
    if rating >= 9:
        return "elite"
    if rating >= 5:
        return "high"
    if rating >= 0:
        return "mid"
    if rating >= -6:
        return "low"
    return "bottom"
