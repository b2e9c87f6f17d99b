"""Convergence Factors"""

from .base import BaseFactor, FactorInput
from .trend_factor import RecentTrendFactor
from .season_avg_factor import SeasonAverageFactor
from .matchup_factor import MatchupFactor
from .narrative_factor import NarrativeFactor
from .situations_factor import SimilarSituationsFactor
from .volatility_factor import VolatilityFactor
from .venue_factor import VenueFactor

# All factor classes in evaluation order
ALL_FACTORS = [
    RecentTrendFactor,
    SeasonAverageFactor,
    MatchupFactor,
    NarrativeFactor,
    SimilarSituationsFactor,
    VolatilityFactor,
    VenueFactor,
]

__all__ = [
    'BaseFactor',
    'FactorInput',
    'RecentTrendFactor',
    'SeasonAverageFactor',
    'MatchupFactor',
    'NarrativeFactor',
    'SimilarSituationsFactor',
    'VolatilityFactor',
    'VenueFactor',
    'ALL_FACTORS',
]
