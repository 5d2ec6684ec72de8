"""Chronological replay engine.

Two concerns run interleaved over the same ordered game stream:

    rating maintenance: every final game updates the ratings, always
    bet evaluation:     only games inside the evaluation window are priced,
                        qualified and graded

Games are processed one (season, week) group at a time:

    1. new season → regress ratings, record the pre-season (week 0) snapshot
    2. evaluate every in-window game of the week using snapshots from
       earlier weeks only
    3. apply every final result of the week to the ratings
    4. record an end-of-week snapshot for every known team

Because step 2 reads snapshots strictly before the current week and step 3
runs after the whole week is evaluated, no game is ever priced with its own
result or a later one.

``stop_at`` ends the replay at the first group at or after the split. The
check uses only season and week, so outcome fields of games beyond the split
are never read. A split inside a season not yet started still runs that
season's start, leaving its pre-season ratings as the final state.
"""

import itertools
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from src.backtest.config import EvaluationWindow, SplitPoint
from src.backtest.metrics import (
    BetRecord,
    bet_profit,
    closing_line_value,
    grade_bet,
    implied_probability,
)
from src.data.game_store import Game
from src.predictions.edge import compute_edge
from src.predictions.market_lines import LineContext, MarketLineBook, MissingMarketLineError
from src.predictions.projection import project
from src.ratings.elo import EloConfig, EloRatingSystem
from src.ratings.snapshots import PRESEASON_WEEK, MissingRatingError, SnapshotIndex
from src.spread_selection.qualification import BetContext, QualificationRules, qualifies
from src.spread_selection.uncertainty import DEFAULT_POLICY, UncertaintyFactors, UncertaintyPolicy

logger = logging.getLogger(__name__)


class ExclusionCounter:
    """Counts games dropped from evaluation, by reason."""

    MISSING_RATING = "missing_rating"
    MISSING_MARKET_LINE = "missing_market_line"
    NO_RESULT = "no_result"
    RULE_PREFIX = "rule:"

    def __init__(self):
        self._counts: Counter = Counter()

    def add(self, reason: str, n: int = 1) -> None:
        self._counts[reason] += n

    def add_rule(self, reason: str) -> None:
        self.add(f"{self.RULE_PREFIX}{reason}")

    def __getitem__(self, reason: str) -> int:
        return self._counts[reason]

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def as_dict(self) -> dict[str, int]:
        return dict(sorted(self._counts.items()))

    def __repr__(self) -> str:
        return f"ExclusionCounter({self.as_dict()})"


@dataclass
class ReplayOutcome:
    """Everything a replay produced."""

    bets: list[BetRecord]
    exclusions: ExclusionCounter
    ratings: EloRatingSystem
    snapshots: SnapshotIndex
    games_replayed: int = 0
    games_evaluated: int = 0
    stopped_at: Optional[SplitPoint] = None
    seasons: list[int] = field(default_factory=list)


def _resolve_policy(
    rules: QualificationRules,
    policy: Optional[UncertaintyPolicy],
) -> Optional[UncertaintyPolicy]:
    if policy is not None:
        return policy
    if rules.use_shrinkage or rules.max_uncertainty < 1.0:
        return DEFAULT_POLICY
    return None


def replay(
    games: Iterable[Game],
    lines: MarketLineBook,
    elo_config: EloConfig,
    rules: QualificationRules,
    window: EvaluationWindow,
    stop_at: Optional[SplitPoint] = None,
    context: LineContext = LineContext.CLOSING,
    default_price: Optional[int] = -110,
    win_payout: float = 0.91,
    conferences: Optional[Mapping[str, str]] = None,
    uncertainty_policy: Optional[UncertaintyPolicy] = None,
    uncertainty_factors: Optional[Mapping[str, UncertaintyFactors]] = None,
) -> ReplayOutcome:
    """Replay games in order, maintaining ratings and evaluating bets.

    Args:
        games: Games to replay (sorted chronologically here)
        lines: Market lines for those games
        elo_config: Rating hyperparameters for this replay
        rules: Qualification rules for evaluated games
        window: Which (season, week) range is evaluated
        stop_at: End the replay before the first game at or after this point
        context: Market line bets are placed against
        default_price: American price when a line has none (None = flat payout)
        win_payout: Flat payout per unit on a win when no price applies
        conferences: team -> conference label
        uncertainty_policy: Scores game uncertainty (defaults on when the
            rules use shrinkage or an uncertainty cap)
        uncertainty_factors: game_id -> UncertaintyFactors; games without an
            entry are scored from their week alone

    Returns:
        ReplayOutcome with graded bets, exclusion counts, final ratings and
        the full snapshot index
    """
    conferences = conferences or {}
    uncertainty_factors = uncertainty_factors or {}
    policy = _resolve_policy(rules, uncertainty_policy)

    ordered = sorted(games, key=lambda g: g.sort_key)
    teams_by_season: dict[int, set[str]] = {}
    for game in ordered:
        teams_by_season.setdefault(game.season, set()).update((game.home_team, game.away_team))

    elo = EloRatingSystem(elo_config)
    snapshots = SnapshotIndex()
    exclusions = ExclusionCounter()
    outcome = ReplayOutcome(bets=[], exclusions=exclusions, ratings=elo, snapshots=snapshots)

    def start_season(season: int) -> None:
        for team in sorted(teams_by_season[season]):
            elo.initialize(team, conferences.get(team))
        elo.regress_to_mean(season)
        snapshots.record_all(elo.ratings(), season, PRESEASON_WEEK)
        outcome.seasons.append(season)

    current_season: Optional[int] = None
    for (season, week), group in itertools.groupby(ordered, key=lambda g: (g.season, g.week)):
        if stop_at is not None and not stop_at.comes_after(season, week):
            if season != current_season and season == stop_at.season:
                # Stopping inside a new season leaves its pre-season ratings in place
                start_season(season)
            outcome.stopped_at = stop_at
            logger.debug(f"Replay stopped at {stop_at} (next games: {season} week {week})")
            break

        if season != current_season:
            start_season(season)
            current_season = season

        week_games = list(group)

        if window.contains(season, week):
            for game in week_games:
                outcome.games_evaluated += 1
                bet = _evaluate_game(
                    game, elo, snapshots, lines, rules, exclusions,
                    context=context,
                    default_price=default_price,
                    win_payout=win_payout,
                    policy=policy,
                    factors=uncertainty_factors.get(game.game_id),
                )
                if bet is not None:
                    outcome.bets.append(bet)

        for game in week_games:
            if not game.is_final:
                logger.debug(f"Game {game.game_id} has no final score; ratings not updated")
                continue
            elo.update(game.home_team, game.away_team, game.home_score, game.away_score)
            outcome.games_replayed += 1

        snapshots.record_all(elo.ratings(), season, week)

    logger.debug(
        f"Replay done: {outcome.games_replayed} games replayed, "
        f"{outcome.games_evaluated} evaluated, {len(outcome.bets)} bets, "
        f"exclusions={exclusions.as_dict()}"
    )
    return outcome


def _evaluate_game(
    game: Game,
    elo: EloRatingSystem,
    snapshots: SnapshotIndex,
    lines: MarketLineBook,
    rules: QualificationRules,
    exclusions: ExclusionCounter,
    context: LineContext,
    default_price: Optional[int],
    win_payout: float,
    policy: Optional[UncertaintyPolicy],
    factors: Optional[UncertaintyFactors],
) -> Optional[BetRecord]:
    """Price, qualify and grade one game. Exclusions are counted, not raised."""
    cfg = elo.config
    try:
        home_rating = snapshots.get_rating_as_of(game.home_team, game.season, game.week)
        away_rating = snapshots.get_rating_as_of(game.away_team, game.season, game.week)
    except MissingRatingError as e:
        exclusions.add(ExclusionCounter.MISSING_RATING)
        logger.debug(f"Excluding {game.game_id}: {e}")
        return None

    try:
        line = lines.select(game.game_id, context, game.commence_time)
    except MissingMarketLineError as e:
        exclusions.add(ExclusionCounter.MISSING_MARKET_LINE)
        logger.debug(f"Excluding {game.game_id}: {e}")
        return None

    model_spread = project(home_rating, away_rating, cfg.home_field_advantage, cfg.scale)
    edge = compute_edge(line.spread_home, model_spread)

    uncertainty = 0.0
    if policy is not None:
        uncertainty = policy.score(factors or UncertaintyFactors(week=game.week))

    bet_context = BetContext(
        home_games=elo.get_season_games_played(game.home_team),
        away_games=elo.get_season_games_played(game.away_team),
        home_conference=elo.get_conference(game.home_team),
        away_conference=elo.get_conference(game.away_team),
        uncertainty=uncertainty,
        market_spread_home=line.spread_home,
    )
    verdict = qualifies(edge, abs(line.spread_home), bet_context, rules)
    if not verdict.qualifies:
        exclusions.add_rule(verdict.reason)
        return None

    if not game.is_final:
        exclusions.add(ExclusionCounter.NO_RESULT)
        return None

    price = line.price_american if line.price_american is not None else default_price
    result = grade_bet(edge.side, line.spread_home, game.home_margin)
    implied = implied_probability(price) if price is not None else 1.0 / (1.0 + win_payout)

    closing = lines.try_select(game.game_id, LineContext.CLOSING, game.commence_time)
    clv = None
    if closing is not None:
        clv = closing_line_value(line.spread_home, closing.spread_home, edge.side)

    logger.debug(
        f"{game.season} wk{game.week} {game.away_team} @ {game.home_team}: "
        f"model {model_spread:+.1f} market {line.spread_home:+.1f} "
        f"edge {edge.edge:+.1f} → {edge.side.value} {result.value}"
    )
    return BetRecord(
        game_id=game.game_id,
        season=game.season,
        week=game.week,
        home_team=game.home_team,
        away_team=game.away_team,
        side=edge.side,
        market_spread_home=line.spread_home,
        model_spread_home=model_spread,
        edge=edge.edge,
        effective_edge=verdict.effective_edge,
        uncertainty=uncertainty,
        home_margin=game.home_margin,
        result=result,
        profit=bet_profit(result, price, win_payout),
        implied_prob=implied,
        price_american=price,
        closing_spread_home=closing.spread_home if closing is not None else None,
        clv=clv,
    )
