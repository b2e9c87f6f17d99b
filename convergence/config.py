"""
Convergence Engine Configuration

Heuristic thresholds, runtime settings and static lookup tables.

The thresholds are product heuristics carried over unchanged from the
original scoring rules. They are exposed as frozen dataclasses so they can be
tuned per deployment without touching the scoring logic.

Runtime settings are read from the environment (`.env.local` / `.env`
loaded with python-dotenv), mirroring the pipeline scripts.
"""

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .models import Sport

logger = logging.getLogger(__name__)


# =============================================================================
# HEURISTIC THRESHOLDS
# =============================================================================

@dataclass(frozen=True)
class NarrativeThresholds:
    """Narrative detector thresholds (fractions are of the baseline/line)."""
    # Elevated vs opponent
    h2h_min_games: int = 3
    h2h_elevation: float = 0.20
    h2h_high_elevation: float = 0.30

    # Milestone watch
    milestones: Tuple[int, ...] = (1000, 2000, 5000, 10000, 15000, 20000, 25000, 30000)
    milestone_window: int = 100
    milestone_high_window: int = 20

    # Team streak
    streak_min_games: int = 3
    streak_length: int = 4
    streak_high_length: int = 7

    # Blowout bounce
    bounce_miss_pct: float = 0.40
    bounce_high_miss_pct: float = 0.60

    # Return from absence
    absence_gap_days: int = 7
    absence_high_gap_days: int = 14

    # Rest advantage
    rest_days: int = 3
    rest_high_days: int = 4

    # Stats whose usage rises when a key teammate sits
    usage_stats: FrozenSet[str] = frozenset({'points', 'assists'})


@dataclass(frozen=True)
class FactorThresholds:
    """Convergence factor thresholds."""
    # Recent trend
    trend_lookback: int = 10
    trend_min_games: int = 3
    trend_over_rate: float = 0.55
    trend_under_rate: float = 0.45

    # Season average vs line
    season_gap_pct: float = 0.15
    season_gap_min: float = 1.0

    # Opponent defense
    defense_top_rank: int = 10
    defense_bottom_rank: int = 21
    defense_mid_strength: float = 0.2

    # Narrative pulse
    narrative_full_strength: float = 4.0

    # Similar situations
    similar_over_rate: float = 0.60
    similar_under_rate: float = 0.40

    # Volatility / consistency
    volatility_lookback: int = 10
    volatility_min_games: int = 5
    volatility_min_z: float = 0.5
    volatility_full_z: float = 1.5

    # Home/away split
    venue_gap_pct: float = 0.12
    venue_gap_min: float = 0.8


@dataclass(frozen=True)
class AutopsyThresholds:
    """Autopsy root-cause and grading thresholds."""
    blowout_margin: float = 25.0
    low_minutes: float = 25.0
    narrow_miss: float = 1.5
    grade_a_margin: float = 1.0
    high_convergence: int = 5
    elite_convergence: int = 6
    low_convergence: int = 3


DEFAULT_NARRATIVE_THRESHOLDS = NarrativeThresholds()
DEFAULT_FACTOR_THRESHOLDS = FactorThresholds()
DEFAULT_AUTOPSY_THRESHOLDS = AutopsyThresholds()


# =============================================================================
# STATIC TABLES
# =============================================================================

RivalryTable = Mapping[Sport, Mapping[str, FrozenSet[str]]]


@lru_cache(maxsize=None)
def load_rivalries() -> RivalryTable:
    """
    Load the per-sport rivalry adjacency table.

    Read once from the packaged `data/rivalries.json`; the returned mappings
    are read-only.
    """
    raw = json.loads(
        resources.files('convergence').joinpath('data/rivalries.json').read_text(encoding='utf-8')
    )

    table = {}
    for sport in Sport:
        pairs = raw.get(sport.value, {})
        table[sport] = MappingProxyType({
            team: frozenset(opponents) for team, opponents in pairs.items()
        })

    logger.debug(f"Loaded rivalry table for {len(table)} sports")
    return MappingProxyType(table)


def is_rivalry(sport: Sport, team: str, opponent: str) -> bool:
    """Check if `opponent` is in `team`'s rivalry list for `sport`."""
    return opponent in load_rivalries().get(sport, {}).get(team, frozenset())


# =============================================================================
# RUNTIME SETTINGS
# =============================================================================

def load_env():
    """Load the first env file found, as the pipeline scripts do."""
    for env_path in ['.env.local', '.env', '../.env.local', '../.env']:
        if os.path.exists(env_path):
            load_dotenv(dotenv_path=env_path)
            return env_path
    return None


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the collaborators around the scoring core."""
    nba_season: str = '2025-26'
    cache_ttl_hours: float = 6.0
    board_batch_size: int = 10
    board_max_workers: int = 8
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_hours * 3600

    @classmethod
    def from_env(cls) -> 'Settings':
        load_env()
        defaults = cls()
        return cls(
            nba_season=os.getenv('NBA_SEASON', defaults.nba_season),
            cache_ttl_hours=float(os.getenv('CACHE_TTL_HOURS', defaults.cache_ttl_hours)),
            board_batch_size=int(os.getenv('BOARD_BATCH_SIZE', defaults.board_batch_size)),
            board_max_workers=int(os.getenv('BOARD_MAX_WORKERS', defaults.board_max_workers)),
            supabase_url=os.getenv('SUPABASE_URL'),
            supabase_key=os.getenv('SUPABASE_KEY'),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get singleton settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
