"""
Base Factor Framework

Defines the abstract base class and the input bundle shared by all
convergence factors.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from ..config import DEFAULT_FACTOR_THRESHOLDS, FactorThresholds
from ..models import (
    ConvergenceFactor,
    DefenseRanking,
    FactorKey,
    Game,
    GameLog,
    NarrativeFlag,
    Player,
    SeasonStats,
    Signal,
    SimilarSituationsResult,
)


@dataclass
class FactorInput:
    """
    Everything a factor may look at for one prop.

    Narratives and similar situations are computed once by the aggregator
    and shared across factors.
    """
    player: Player
    game: Game
    game_log: GameLog
    stat: str
    line: float
    is_home: bool
    season_stats: Optional[SeasonStats] = None
    defense_ranking: Optional[DefenseRanking] = None
    narratives: List[NarrativeFlag] = field(default_factory=list)
    similar_situations: Optional[SimilarSituationsResult] = None
    thresholds: FactorThresholds = DEFAULT_FACTOR_THRESHOLDS

    def recent_values(self, n: int) -> List[float]:
        return self.game_log[:n].values(self.stat)


class BaseFactor(ABC):
    """
    Abstract base class for all convergence factors.

    Each factor implements:
    - calculate(): Returns exactly one ConvergenceFactor for a prop

    `weight` is the factor's share of the weighted lean; weights across
    ALL_FACTORS sum to 1.0.
    """

    key: FactorKey
    name: str = "base"
    weight: float = 0.0

    @abstractmethod
    def calculate(self, inp: FactorInput) -> ConvergenceFactor:
        """
        Calculate factor for a prop.

        Args:
            inp: Full factor input

        Returns:
            ConvergenceFactor with signal, strength and detail
        """
        pass

    def neutral(self, detail: str) -> ConvergenceFactor:
        """Neutral strength-0 factor for missing or uninformative data."""
        return ConvergenceFactor.neutral(self.key, self.name, detail, weight=self.weight)

    def result(self, signal: Signal, strength: float, detail: str, data_point: str) -> ConvergenceFactor:
        return ConvergenceFactor(
            key=self.key,
            name=self.name,
            signal=signal,
            strength=strength,
            detail=detail,
            data_point=data_point,
            weight=self.weight,
        )

    @staticmethod
    def gap_signal(gap: float, threshold: float) -> Signal:
        """Over/under when `gap` clears `threshold`, neutral otherwise."""
        if gap > threshold:
            return Signal.OVER
        if gap < -threshold:
            return Signal.UNDER
        return Signal.NEUTRAL
