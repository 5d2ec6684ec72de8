"""Data validation utilities."""

import logging
from dataclasses import dataclass
from typing import Optional

from src.data.game_store import GameRecordStore
from src.predictions.market_lines import LineContext

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a data validation check."""

    is_valid: bool
    message: str
    details: Optional[dict] = None


class DataValidator:
    """Validate data completeness and quality of a GameRecordStore."""

    def __init__(self, store: GameRecordStore):
        """Initialize validator with a loaded store.

        Args:
            store: Game record store to check
        """
        self.store = store

    def validate_season_results(self, season: int, min_completion: float = 0.8) -> ValidationResult:
        """Validate that a season's results are (mostly) complete.

        Args:
            season: Season year
            min_completion: Minimum share of games with final scores

        Returns:
            ValidationResult with status and details
        """
        games = [g for g in self.store.iter_games() if g.season == season]

        if not games:
            return ValidationResult(
                is_valid=False,
                message=f"No games found for {season}",
            )

        total_games = len(games)
        completed_games = len([g for g in games if g.is_final])
        completion_rate = completed_games / total_games

        details = {
            "total_games": total_games,
            "completed_games": completed_games,
            "completion_rate": completion_rate,
        }

        if completion_rate < min_completion:
            return ValidationResult(
                is_valid=False,
                message=f"Only {completed_games}/{total_games} games have scores",
                details=details,
            )

        return ValidationResult(
            is_valid=True,
            message=f"Data complete: {completed_games}/{total_games} games",
            details=details,
        )

    def validate_line_coverage(
        self,
        season: int,
        context: LineContext = LineContext.CLOSING,
        min_coverage: float = 0.5,
    ) -> ValidationResult:
        """Validate the share of a season's games with a usable line in a context."""
        games = [g for g in self.store.iter_games() if g.season == season]
        if not games:
            return ValidationResult(is_valid=False, message=f"No games found for {season}")

        covered = sum(
            1 for g in games
            if self.store.lines.try_select(g.game_id, context, g.commence_time) is not None
        )
        coverage = covered / len(games)
        details = {"games": len(games), "with_line": covered, "coverage": coverage}

        if coverage < min_coverage:
            return ValidationResult(
                is_valid=False,
                message=(
                    f"Only {covered}/{len(games)} games in {season} have a "
                    f"{context.value} line ({coverage:.1%})"
                ),
                details=details,
            )
        return ValidationResult(
            is_valid=True,
            message=f"{context.value} line coverage {coverage:.1%} for {season}",
            details=details,
        )

    def validate_orphan_lines(self) -> ValidationResult:
        """Flag market lines that reference games not in the store."""
        known = {g.game_id for g in self.store.iter_games()}
        orphans = sorted(self.store.lines.game_ids - known)
        if orphans:
            return ValidationResult(
                is_valid=False,
                message=f"{len(orphans)} market line game_ids have no matching game",
                details={"orphan_game_ids": orphans[:20]},
            )
        return ValidationResult(is_valid=True, message="All market lines match a game")

    def run_all(
        self,
        seasons: Optional[list[int]] = None,
        context: LineContext = LineContext.CLOSING,
    ) -> list[ValidationResult]:
        """Run every check and log failures as warnings."""
        seasons = seasons if seasons is not None else self.store.seasons
        results = []
        for season in seasons:
            results.append(self.validate_season_results(season))
            results.append(self.validate_line_coverage(season, context))
        results.append(self.validate_orphan_lines())

        for result in results:
            if result.is_valid:
                logger.debug(result.message)
            else:
                logger.warning(f"Data check failed: {result.message}")
        return results
