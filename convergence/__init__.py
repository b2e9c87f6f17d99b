"""
Convergence Scoring Engine

Player-prop analysis by factor agreement: how many independent reads of
the same prop point the same way.

Core components (pure, no I/O):
- narrative_detector: Qualitative storylines (streaks, rest, milestones, ...)
- similar_situations: Comparable historical games with tiered relaxation
- factors/: One scorer per convergence factor
- aggregator: Counts agreeing factors into a 0-7 score
- autopsy: Post-mortem grading of missed bets

Collaborators:
- data_provider: NBA stats via nba_api
- injury_checker: Injury report via ESPN API
- context_builder: Concurrent fetch fan-out per prop
- board: Nightly top-picks board
- graveyard / db_manager: Missed-bet filing in Supabase
"""

from .models import (
    ConvergenceFactor,
    ConvergenceResult,
    DefenseRanking,
    Direction,
    Game,
    GameLog,
    GameLogEntry,
    InjuryContext,
    Lean,
    LeanTier,
    NarrativeFlag,
    Player,
    SeasonStats,
    Signal,
    SimilarSituationsResult,
    BetAutopsy,
    GraveyardEntry,
)
from .narrative_detector import detect_narratives
from .similar_situations import find_similar_situations
from .aggregator import (
    ConvergenceAggregator,
    MIN_BOARD_SCORE,
    TOTAL_FACTORS,
    compute_lean,
    evaluate,
    get_aggregator,
)
from .autopsy import AutopsyContext, analyze_loss_patterns, generate_autopsy
from .cache import Cache, NullCache, TTLCache

__all__ = [
    # Records
    'ConvergenceFactor',
    'ConvergenceResult',
    'DefenseRanking',
    'Direction',
    'Game',
    'GameLog',
    'GameLogEntry',
    'InjuryContext',
    'Lean',
    'LeanTier',
    'NarrativeFlag',
    'Player',
    'SeasonStats',
    'Signal',
    'SimilarSituationsResult',
    'BetAutopsy',
    'GraveyardEntry',
    # Core entry points
    'detect_narratives',
    'find_similar_situations',
    'evaluate',
    'generate_autopsy',
    'analyze_loss_patterns',
    'AutopsyContext',
    # Aggregator
    'ConvergenceAggregator',
    'get_aggregator',
    'compute_lean',
    'TOTAL_FACTORS',
    'MIN_BOARD_SCORE',
    # Cache
    'Cache',
    'TTLCache',
    'NullCache',
]

__version__ = '0.1.0'
