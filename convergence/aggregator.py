"""
Convergence Aggregator

Turns every informational input for a prop into one ConvergenceFactor and
counts how many of them agree.

Philosophy:
- Every factor always reports: no data means neutral strength 0, and it
  still counts toward the denominator (an uninformative night reads as
  low confidence)
- score = the larger of the over/under counts; ties break toward OVER
  (an arbitrary, documented choice)
- confidence = score / TOTAL_FACTORS
- The aggregator never filters; consumers pick their own cutoff
- Alongside the count, a weighted lean sums weight * direction * strength
  across factors (see compute_lean)

Never raises for bad or missing inputs.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .config import DEFAULT_FACTOR_THRESHOLDS, DEFAULT_NARRATIVE_THRESHOLDS, FactorThresholds, NarrativeThresholds
from .factors import ALL_FACTORS, BaseFactor, FactorInput
from .models import (
    ConvergenceFactor,
    ConvergenceResult,
    DefenseRanking,
    Direction,
    Game,
    GameLog,
    InjuryContext,
    Lean,
    LeanTier,
    NarrativeFlag,
    Player,
    SeasonStats,
    Signal,
    SimilarSituationsResult,
)
from .narrative_detector import detect_narratives
from .similar_situations import find_similar_situations

logger = logging.getLogger(__name__)

TOTAL_FACTORS = len(ALL_FACTORS)

# Board cutoff; applied by consumers, never here
MIN_BOARD_SCORE = 4

# Weighted lean thresholds (0-100 scale)
LEAN_TOSS_UP_BELOW = 10
LEAN_STRONG = 65
LEAN_MODERATE = 50


def compute_lean(factors: Sequence[ConvergenceFactor]) -> Lean:
    """
    Weighted lean: |sum(weight * direction * strength)| * 100.

    Below 10 the lean is a toss-up. Confidence is clamped to 1-99;
    tiers are STRONG >= 65, MODERATE >= 50, NEUTRAL otherwise.
    """
    lean = sum(f.weight * f.direction * f.strength for f in factors) * 100
    magnitude = abs(lean)

    if magnitude < LEAN_TOSS_UP_BELOW:
        direction = Direction.TOSS_UP
    elif lean > 0:
        direction = Direction.OVER
    else:
        direction = Direction.UNDER

    if magnitude >= LEAN_STRONG:
        tier = LeanTier.STRONG
    elif magnitude >= LEAN_MODERATE:
        tier = LeanTier.MODERATE
    else:
        tier = LeanTier.NEUTRAL

    # Half-up rounding
    confidence = min(99, max(1, int(magnitude + 0.5)))
    return Lean(direction=direction, confidence=confidence, tier=tier)


class ConvergenceAggregator:
    """
    Scores a prop by factor agreement.

    Usage:
        aggregator = ConvergenceAggregator()
        result = aggregator.evaluate(player, game, log, season_stats, defense, 'points', 24.5)
    """

    def __init__(
        self,
        factor_thresholds: Optional[FactorThresholds] = None,
        narrative_thresholds: Optional[NarrativeThresholds] = None,
    ):
        self.factor_thresholds = factor_thresholds or DEFAULT_FACTOR_THRESHOLDS
        self.narrative_thresholds = narrative_thresholds or DEFAULT_NARRATIVE_THRESHOLDS
        self.factors: List[BaseFactor] = [cls() for cls in ALL_FACTORS]

    def evaluate(
        self,
        player: Player,
        game: Game,
        game_logs,
        season_stats: Optional[SeasonStats],
        defense_ranking: Optional[DefenseRanking],
        stat: str,
        line: float,
        injuries: Optional[Sequence[InjuryContext]] = None,
    ) -> ConvergenceResult:
        """
        Evaluate convergence for a player prop.

        Args:
            player: Player the prop is on
            game: Tonight's game
            game_logs: Player's game log (most recent first)
            season_stats: Season aggregate for `stat`
            defense_ranking: Opponent defense ranking, if known
            stat: Stat key
            line: Prop line
            injuries: Optional injury context for the narrative detector

        Returns:
            ConvergenceResult with score, direction and per-factor breakdown
        """
        log = GameLog.coerce(game_logs)
        line = line or 0.0
        is_home = game.is_home_for(player)

        narratives = self._narratives(player, game, log, season_stats, injuries, is_home, stat, line)
        similar = self._similar(player, game, log, defense_ranking, stat, line, is_home)

        inp = FactorInput(
            player=player,
            game=game,
            game_log=log,
            stat=stat,
            line=line,
            is_home=is_home,
            season_stats=season_stats,
            defense_ranking=defense_ranking,
            narratives=narratives,
            similar_situations=similar,
            thresholds=self.factor_thresholds,
        )

        factor_results = []
        for factor in self.factors:
            try:
                factor_results.append(factor.calculate(inp))
            except Exception as e:
                logger.error(f"Error in {factor.name} factor: {e}")
                factor_results.append(ConvergenceFactor.neutral(
                    factor.key, factor.name, f"Error: {e}", weight=factor.weight,
                ))

        return self.score(factor_results, narratives, similar)

    @staticmethod
    def score(
        factors: List[ConvergenceFactor],
        narratives: Optional[List[NarrativeFlag]] = None,
        similar: Optional[SimilarSituationsResult] = None,
    ) -> ConvergenceResult:
        """Count agreeing factors into a ConvergenceResult, with the weighted lean."""
        over = sum(1 for f in factors if f.signal == Signal.OVER)
        under = sum(1 for f in factors if f.signal == Signal.UNDER)
        neutral = len(factors) - over - under

        if over == 0 and under == 0:
            direction = Direction.TOSS_UP
            score = 0
        elif over >= under:
            direction = Direction.OVER
            score = over
        else:
            direction = Direction.UNDER
            score = under

        return ConvergenceResult(
            score=score,
            direction=direction,
            confidence=score / TOTAL_FACTORS,
            factors=factors,
            over_count=over,
            under_count=under,
            neutral_count=neutral,
            lean=compute_lean(factors),
            narratives=list(narratives or []),
            similar_situations=similar,
        )

    def _narratives(self, player, game, log, season_stats, injuries, is_home, stat, line) -> List[NarrativeFlag]:
        # Tonight's rest comes from the most recent game
        rest_days = log[0].rest_days if log else 1
        is_b2b = log[0].is_back_to_back if log else False

        try:
            return detect_narratives(
                player, game, log, season_stats, injuries,
                is_home, rest_days, is_b2b, stat, line,
                thresholds=self.narrative_thresholds,
            )
        except Exception as e:
            logger.error(f"Error detecting narratives for {player.name}: {e}")
            return []

    def _similar(self, player, game, log, defense_ranking, stat, line, is_home) -> Optional[SimilarSituationsResult]:
        try:
            return find_similar_situations(player, game, log, defense_ranking, stat, line, is_home)
        except Exception as e:
            logger.error(f"Error finding similar situations for {player.name}: {e}")
            return None

    def evaluate_many(self, requests: Iterable[Dict]) -> List[ConvergenceResult]:
        """
        Evaluate several props.

        Args:
            requests: Keyword-argument dicts for evaluate()

        Returns:
            Results in request order
        """
        return [self.evaluate(**req) for req in requests]


# =============================================================================
# CONVENIENCE
# =============================================================================

_aggregator: Optional[ConvergenceAggregator] = None


def get_aggregator() -> ConvergenceAggregator:
    """Get singleton aggregator instance."""
    global _aggregator
    if _aggregator is None:
        _aggregator = ConvergenceAggregator()
    return _aggregator


def evaluate(
    player: Player,
    game: Game,
    game_logs,
    season_stats: Optional[SeasonStats],
    defense_ranking: Optional[DefenseRanking],
    stat: str,
    line: float,
    injuries: Optional[Sequence[InjuryContext]] = None,
) -> ConvergenceResult:
    """Evaluate a prop with the default aggregator."""
    return get_aggregator().evaluate(
        player, game, game_logs, season_stats, defense_ranking, stat, line, injuries=injuries,
    )
