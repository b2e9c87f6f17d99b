"""
Convergence Engine Data Model

Plain records exchanged between the data provider, the scoring core and its
consumers. Every tagged field is a closed Enum so consumers can match on
members instead of comparing strings.

Records carry no behaviour beyond small derived helpers and `to_dict()`.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union


# =============================================================================
# ENUMS
# =============================================================================

class Sport(Enum):
    NBA = "nba"
    MLB = "mlb"
    NFL = "nfl"


class GameResult(Enum):
    WIN = "W"
    LOSS = "L"


class Signal(Enum):
    """Direction a single factor points to."""
    OVER = "over"
    UNDER = "under"
    NEUTRAL = "neutral"


class Direction(Enum):
    """Verdict direction of a full convergence evaluation."""
    OVER = "over"
    UNDER = "under"
    TOSS_UP = "toss-up"


class LeanTier(Enum):
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    NEUTRAL = "NEUTRAL"


class BetDirection(Enum):
    OVER = "over"
    UNDER = "under"


class Impact(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NarrativeType(Enum):
    ELEVATED_VS_OPPONENT = "elevated_vs_opponent"
    MILESTONE = "milestone"
    WINNING_STREAK = "winning_streak"
    LOSING_STREAK = "losing_streak"
    BLOWOUT_BOUNCE = "blowout_bounce"
    RETURN_FROM_INJURY = "return_from_injury"
    BACK_TO_BACK_ROAD = "back_to_back_road"
    REST_MISMATCH = "rest_mismatch"
    KEY_TEAMMATE_OUT = "key_teammate_out"
    RIVALRY = "rivalry"


class FactorKey(Enum):
    RECENT_TREND = "recent_trend"
    SEASON_AVG = "season_avg"
    MATCHUP = "matchup"
    NARRATIVE = "narrative"
    SIMILAR_SITUATIONS = "similar_situations"
    VOLATILITY = "volatility"
    VENUE = "venue"


class InjuryStatus(Enum):
    OUT = "Out"
    QUESTIONABLE = "Questionable"
    DAY_TO_DAY = "Day-to-Day"
    PROBABLE = "Probable"


class InjuryImpact(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class InjurySide(Enum):
    TEAMMATE = "teammate"
    OPPONENT = "opponent"


class RootCauseType(Enum):
    BLOWOUT = "blowout"
    INJURY_DURING_GAME = "injury_during_game"
    FOUL_TROUBLE = "foul_trouble"
    MINUTE_RESTRICTION = "minute_restriction"
    LINEUP_CHANGE = "lineup_change"
    GAME_FLOW = "game_flow"
    REGRESSION = "regression"
    LINE_WAS_SHARP = "line_was_sharp"
    BAD_MATCHUP_READ = "bad_matchup_read"
    OTHER = "other"


class CauseSeverity(Enum):
    PRIMARY = "primary"
    CONTRIBUTING = "contributing"
    MINOR = "minor"


class ProcessGrade(Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class BetResult(Enum):
    WIN = "WIN"
    LOSS = "LOSS"
    PUSH = "PUSH"
    VOID = "VOID"


# =============================================================================
# STAT KEYS
# =============================================================================

# Combo props are the sum of their component stats
COMBO_STATS: Dict[str, Tuple[str, ...]] = {
    'pra': ('points', 'rebounds', 'assists'),
    'pr': ('points', 'rebounds'),
    'pa': ('points', 'assists'),
    'ra': ('rebounds', 'assists'),
    'blocks_steals': ('blocks', 'steals'),
}


def get_stat_value(stats: Dict[str, float], stat: str) -> float:
    """
    Get stat value from a stats dict, handling combo props.

    Missing stats read as 0.0.
    """
    if stat in stats:
        return float(stats[stat] or 0.0)

    components = COMBO_STATS.get(stat)
    if components:
        return float(sum(stats.get(c, 0.0) or 0.0 for c in components))

    return 0.0


def _parse_date(value: Union[date, datetime, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


# =============================================================================
# PLAYERS AND GAMES
# =============================================================================

@dataclass(frozen=True)
class TeamRef:
    id: str
    abbrev: str
    name: str = ''


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    sport: Sport
    team: TeamRef
    position: str = ''

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'sport': self.sport.value,
            'team': self.team.abbrev,
            'position': self.position,
        }


@dataclass(frozen=True)
class Game:
    id: str
    sport: Sport
    date: date
    home_team: TeamRef
    away_team: TeamRef
    spread: Optional[float] = None   # home team spread
    total: Optional[float] = None    # game O/U total

    def is_home_for(self, player: Player) -> bool:
        if self.home_team.id and player.team.id:
            return self.home_team.id == player.team.id
        return self.home_team.abbrev == player.team.abbrev

    def opponent_for(self, player: Player) -> TeamRef:
        return self.away_team if self.is_home_for(player) else self.home_team

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'sport': self.sport.value,
            'date': self.date.isoformat(),
            'home_team': self.home_team.abbrev,
            'away_team': self.away_team.abbrev,
            'spread': self.spread,
            'total': self.total,
        }


# =============================================================================
# GAME LOGS
# =============================================================================

@dataclass(frozen=True)
class GameLogEntry:
    """One historical game for a player."""
    date: date
    opponent: str
    is_home: bool
    rest_days: int = 1
    is_back_to_back: bool = False
    stats: Dict[str, float] = field(default_factory=dict)
    result: Optional[GameResult] = None
    opponent_def_rank: int = 0   # 1 = best defense, 0 = unknown
    minutes_played: Optional[float] = None

    def __post_init__(self):
        # Accept ISO strings at the boundary
        if not isinstance(self.date, date) or isinstance(self.date, datetime):
            object.__setattr__(self, 'date', _parse_date(self.date))

    def value(self, stat: str) -> float:
        return get_stat_value(self.stats, stat)

    def to_dict(self) -> Dict:
        return {
            'date': self.date.isoformat(),
            'opponent': self.opponent,
            'is_home': self.is_home,
            'rest_days': self.rest_days,
            'is_back_to_back': self.is_back_to_back,
            'stats': dict(self.stats),
            'result': self.result.value if self.result else None,
            'opponent_def_rank': self.opponent_def_rank,
            'minutes_played': self.minutes_played,
        }


class GameLogOrderError(ValueError):
    """Raised when game log entries are not ordered most-recent-first."""


class GameLog(Sequence):
    """
    Immutable game log ordered most-recent-first.

    The ordering is validated on construction; several heuristics read
    `log[0]` as "last game played".
    """

    __slots__ = ('_entries',)

    def __init__(self, entries: Iterable[GameLogEntry] = ()):
        entries = tuple(entries)
        for newer, older in zip(entries, entries[1:]):
            if newer.date < older.date:
                raise GameLogOrderError(
                    f"Game log not most-recent-first: {newer.date} before {older.date}"
                )
        self._entries = entries

    @classmethod
    def from_entries(cls, entries: Iterable[GameLogEntry]) -> 'GameLog':
        """Build a log from entries in any order (sorted newest-first)."""
        return cls(sorted(entries, key=lambda e: e.date, reverse=True))

    @classmethod
    def coerce(cls, entries: Optional[Iterable[GameLogEntry]]) -> 'GameLog':
        """Return `entries` as a GameLog, sorting instead of raising."""
        if isinstance(entries, GameLog):
            return entries
        if not entries:
            return cls()
        return cls.from_entries(entries)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return GameLog(self._entries[index])
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other) -> bool:
        if isinstance(other, GameLog):
            return self._entries == other._entries
        return NotImplemented

    def __repr__(self) -> str:
        return f"GameLog({len(self._entries)} games)"

    def values(self, stat: str) -> List[float]:
        return [e.value(stat) for e in self._entries]

    def to_list(self) -> List[Dict]:
        return [e.to_dict() for e in self._entries]


@dataclass(frozen=True)
class SeasonStats:
    """Per (player, stat) season aggregate."""
    stat: str
    average: float = 0.0
    total: float = 0.0
    games_played: int = 0
    high: float = 0.0
    low: float = 0.0
    career_total: Optional[float] = None   # milestone watch; None = unknown

    @classmethod
    def from_game_log(
        cls,
        stat: str,
        game_log: Sequence,
        career_total: Optional[float] = None,
    ) -> 'SeasonStats':
        """
        Derive season aggregates from a game log.

        `total` is always the season sum. `career_total` is carried only
        when the provider knows the cumulative career figure.
        """
        values = [e.value(stat) for e in game_log]
        if not values:
            return cls(stat=stat, career_total=career_total)

        return cls(
            stat=stat,
            average=sum(values) / len(values),
            total=sum(values),
            games_played=len(values),
            high=max(values),
            low=min(values),
            career_total=career_total,
        )

    def to_dict(self) -> Dict:
        return self.__dict__.copy()


@dataclass(frozen=True)
class DefenseRanking:
    """Opponent defense vs a position/stat (rank 1 = best defense)."""
    team_abbrev: str
    rank: int
    average_allowed: float = 0.0
    position: str = ''
    stat: str = ''

    def to_dict(self) -> Dict:
        return self.__dict__.copy()


@dataclass(frozen=True)
class InjuryContext:
    player_name: str
    status: InjuryStatus
    impact: InjuryImpact
    team: InjurySide
    relevance: str = ''

    def to_dict(self) -> Dict:
        return {
            'player_name': self.player_name,
            'status': self.status.value,
            'impact': self.impact.value,
            'team': self.team.value,
            'relevance': self.relevance,
        }


# =============================================================================
# ENGINE OUTPUTS
# =============================================================================

@dataclass(frozen=True)
class NarrativeFlag:
    type: NarrativeType
    headline: str
    detail: str
    impact: Impact
    severity: Severity
    historical_stat: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'type': self.type.value,
            'headline': self.headline,
            'detail': self.detail,
            'impact': self.impact.value,
            'severity': self.severity.value,
            'historical_stat': self.historical_stat,
        }


@dataclass(frozen=True)
class SimilarSituationsResult:
    description: str
    matching_games: int
    avg_value: float
    hit_rate: float
    avg_margin: float

    def to_dict(self) -> Dict:
        return {
            'description': self.description,
            'matching_games': self.matching_games,
            'avg_value': round(self.avg_value, 4),
            'hit_rate': round(self.hit_rate, 4),
            'avg_margin': round(self.avg_margin, 4),
        }


@dataclass
class ConvergenceFactor:
    """
    One scored input to the aggregator.

    Attributes:
        key: Which factor produced this
        name: Display name
        signal: over / under / neutral
        strength: 0.0 to 1.0
        detail: Human-readable explanation
        data_point: Short supporting figure ("7/10 over")
        weight: Share of the weighted lean (weights across factors sum to 1)
    """
    key: FactorKey
    name: str
    signal: Signal
    strength: float
    detail: str = ''
    data_point: str = ''
    weight: float = 0.0

    def __post_init__(self):
        # Clamp values
        self.strength = max(0.0, min(1.0, float(self.strength)))

    @property
    def direction(self) -> int:
        """+1 over, -1 under, 0 neutral."""
        if self.signal == Signal.OVER:
            return 1
        if self.signal == Signal.UNDER:
            return -1
        return 0

    @classmethod
    def neutral(cls, key: FactorKey, name: str, detail: str, weight: float = 0.0) -> 'ConvergenceFactor':
        return cls(key=key, name=name, signal=Signal.NEUTRAL, strength=0.0,
                   detail=detail, data_point='N/A', weight=weight)

    def to_dict(self) -> Dict:
        return {
            'key': self.key.value,
            'name': self.name,
            'signal': self.signal.value,
            'strength': round(self.strength, 4),
            'weight': self.weight,
            'detail': self.detail,
            'data_point': self.data_point,
        }


@dataclass(frozen=True)
class Lean:
    """
    Weighted lean across all factors.

    Attributes:
        direction: over / under, or toss-up below the minimum lean
        confidence: |weighted lean| on a 1-99 scale
        tier: STRONG (65+), MODERATE (50-64) or NEUTRAL
    """
    direction: Direction
    confidence: int
    tier: LeanTier

    def to_dict(self) -> Dict:
        return {
            'direction': self.direction.value,
            'confidence': self.confidence,
            'tier': self.tier.value,
        }


@dataclass
class ConvergenceResult:
    """Result of one convergence evaluation."""
    score: int                  # 0..len(factors)
    direction: Direction
    confidence: float           # score / total factors
    factors: List[ConvergenceFactor] = field(default_factory=list)
    over_count: int = 0
    under_count: int = 0
    neutral_count: int = 0
    lean: Optional[Lean] = None

    # Supporting detail surfaced to consumers
    narratives: List[NarrativeFlag] = field(default_factory=list)
    similar_situations: Optional[SimilarSituationsResult] = None

    def to_dict(self) -> Dict:
        return {
            'score': self.score,
            'direction': self.direction.value,
            'confidence': round(self.confidence, 4),
            'over_count': self.over_count,
            'under_count': self.under_count,
            'neutral_count': self.neutral_count,
            'lean': self.lean.to_dict() if self.lean else None,
            'factors': [f.to_dict() for f in self.factors],
            'narratives': [n.to_dict() for n in self.narratives],
            'similar_situations': (
                self.similar_situations.to_dict() if self.similar_situations else None
            ),
        }


# =============================================================================
# GRAVEYARD
# =============================================================================

@dataclass(frozen=True)
class RootCause:
    type: RootCauseType
    label: str
    detail: str
    severity: CauseSeverity
    was_knowable: bool

    def to_dict(self) -> Dict:
        return {
            'type': self.type.value,
            'label': self.label,
            'detail': self.detail,
            'severity': self.severity.value,
            'was_knowable': self.was_knowable,
        }


@dataclass(frozen=True)
class BetAutopsy:
    process_grade: ProcessGrade
    root_causes: Tuple[RootCause, ...]
    unluck_score: int           # 0..100
    was_unlucky: bool
    would_bet_again: bool
    process_assessment: str
    lessons_learned: Tuple[str, ...]

    def to_dict(self) -> Dict:
        return {
            'process_grade': self.process_grade.value,
            'root_causes': [c.to_dict() for c in self.root_causes],
            'unluck_score': self.unluck_score,
            'was_unlucky': self.was_unlucky,
            'would_bet_again': self.would_bet_again,
            'process_assessment': self.process_assessment,
            'lessons_learned': list(self.lessons_learned),
        }


@dataclass(frozen=True)
class GraveyardEntry:
    """A missed bet with its autopsy. Snapshots are opaque dicts."""
    id: str
    player_name: str
    stat: str
    line: float
    direction: BetDirection
    actual_value: float
    margin: float
    convergence_at_time_of_bet: int
    autopsy: BetAutopsy
    game_date: Optional[date] = None
    convergence_snapshot: Optional[Dict[str, Any]] = None
    user_id: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'player_name': self.player_name,
            'stat': self.stat,
            'line': self.line,
            'direction': self.direction.value,
            'actual_value': self.actual_value,
            'margin': self.margin,
            'convergence_at_time_of_bet': self.convergence_at_time_of_bet,
            'game_date': self.game_date.isoformat() if self.game_date else None,
            'autopsy': self.autopsy.to_dict(),
            'convergence_snapshot': self.convergence_snapshot,
        }


@dataclass
class LossPatterns:
    total_entries: int = 0
    avg_margin: float = 0.0
    avg_convergence: float = 0.0
    avg_unluck_score: int = 0
    top_causes: List[Dict[str, Any]] = field(default_factory=list)
    grade_distribution: Dict[str, int] = field(
        default_factory=lambda: {g.value: 0 for g in ProcessGrade}
    )
    would_bet_again_rate: int = 0   # percent

    def to_dict(self) -> Dict:
        return {
            'total_entries': self.total_entries,
            'avg_margin': self.avg_margin,
            'avg_convergence': self.avg_convergence,
            'avg_unluck_score': self.avg_unluck_score,
            'top_causes': list(self.top_causes),
            'grade_distribution': dict(self.grade_distribution),
            'would_bet_again_rate': self.would_bet_again_rate,
        }
