"""
Narrative Detector

Scans a player's recent game log and tonight's context for qualitative
storylines (rest edge, revenge-style matchups, streaks, milestones, ...).

Each heuristic is independent:
- runs on every call, in no particular order of significance
- emits zero or one flag (key-teammate-out may emit one per injury)
- never raises; a heuristic without enough data simply emits nothing

Pure function of its inputs: no I/O, no clock.
"""

import logging
from typing import Callable, List, Optional, Sequence

from .config import DEFAULT_NARRATIVE_THRESHOLDS, NarrativeThresholds, is_rivalry
from .models import (
    Game,
    GameLog,
    GameResult,
    Impact,
    InjuryContext,
    InjuryImpact,
    InjurySide,
    InjuryStatus,
    NarrativeFlag,
    NarrativeType,
    Player,
    SeasonStats,
    Severity,
)

logger = logging.getLogger(__name__)


class NarrativeInput:
    """Everything a heuristic may look at."""

    __slots__ = (
        'player', 'game', 'game_log', 'season_stats', 'injuries',
        'is_home', 'rest_days', 'is_back_to_back', 'stat', 'line', 'thresholds',
    )

    def __init__(
        self,
        player: Player,
        game: Game,
        game_log: GameLog,
        season_stats: Optional[SeasonStats],
        injuries: Sequence[InjuryContext],
        is_home: bool,
        rest_days: int,
        is_back_to_back: bool,
        stat: str,
        line: float,
        thresholds: NarrativeThresholds,
    ):
        self.player = player
        self.game = game
        self.game_log = game_log
        self.season_stats = season_stats
        self.injuries = injuries
        self.is_home = is_home
        self.rest_days = rest_days
        self.is_back_to_back = is_back_to_back
        self.stat = stat
        self.line = line
        self.thresholds = thresholds

    @property
    def opponent(self) -> str:
        team = self.game.away_team if self.is_home else self.game.home_team
        return team.abbrev


def detect_narratives(
    player: Player,
    game: Game,
    game_logs,
    season_stats: Optional[SeasonStats],
    injuries: Optional[Sequence[InjuryContext]],
    is_home: bool,
    rest_days: int,
    is_back_to_back: bool,
    stat: str,
    line: float,
    thresholds: Optional[NarrativeThresholds] = None,
) -> List[NarrativeFlag]:
    """
    Detect narrative flags for a prop.

    Args:
        player: Player the prop is on
        game: Tonight's game
        game_logs: Player's game log (most recent first)
        season_stats: Season aggregate for `stat` (career_total drives milestones)
        injuries: Teammate/opponent injury context
        is_home: Whether the player is at home tonight
        rest_days: Days of rest before tonight
        is_back_to_back: Whether tonight is the second night of a B2B
        stat: Stat key ('points', 'rebounds', ...)
        line: Prop line

    Returns:
        List of NarrativeFlag (order carries no meaning)
    """
    inp = NarrativeInput(
        player=player,
        game=game,
        game_log=GameLog.coerce(game_logs),
        season_stats=season_stats,
        injuries=list(injuries or []),
        is_home=is_home,
        rest_days=rest_days or 0,
        is_back_to_back=bool(is_back_to_back),
        stat=stat,
        line=line or 0.0,
        thresholds=thresholds or DEFAULT_NARRATIVE_THRESHOLDS,
    )

    flags: List[NarrativeFlag] = []
    for detector in DETECTORS:
        try:
            flags.extend(detector(inp))
        except Exception as e:
            logger.warning(f"Narrative heuristic {detector.__name__} failed: {e}")

    return flags


# =============================================================================
# HEURISTICS
# =============================================================================

def detect_elevated_vs_opponent(inp: NarrativeInput) -> List[NarrativeFlag]:
    t = inp.thresholds
    opponent = inp.opponent
    h2h = [g for g in inp.game_log if g.opponent == opponent]

    if len(h2h) < t.h2h_min_games:
        return []

    h2h_avg = sum(g.value(inp.stat) for g in h2h) / len(h2h)

    # Prefer the provider's season average; fall back to the log
    baseline = inp.season_stats.average if inp.season_stats else 0.0
    if baseline <= 0 and inp.game_log:
        baseline = sum(inp.game_log.values(inp.stat)) / len(inp.game_log)
    if baseline <= 0:
        return []

    elevation = h2h_avg / baseline - 1
    if elevation <= t.h2h_elevation:
        return []

    return [NarrativeFlag(
        type=NarrativeType.ELEVATED_VS_OPPONENT,
        headline=f"Elevated vs {opponent}",
        detail=(
            f"Averages {h2h_avg:.1f} {inp.stat} vs {opponent} "
            f"({elevation * 100:.0f}% above season avg)"
        ),
        impact=Impact.POSITIVE,
        severity=Severity.HIGH if elevation > t.h2h_high_elevation else Severity.MEDIUM,
        historical_stat=f"{h2h_avg:.1f} avg in {len(h2h)} games vs {opponent}",
    )]


def detect_milestone(inp: NarrativeInput) -> List[NarrativeFlag]:
    t = inp.thresholds
    if inp.season_stats is None or inp.season_stats.career_total is None:
        return []

    total = inp.season_stats.career_total
    for milestone in t.milestones:
        remaining = milestone - total
        if 0 < remaining <= t.milestone_window:
            return [NarrativeFlag(
                type=NarrativeType.MILESTONE,
                headline=f"{remaining:,.0f} away from {milestone:,}",
                detail=(
                    f"{inp.player.name} has {total:,.0f} career {inp.season_stats.stat} "
                    f"- just {remaining:,.0f} from {milestone:,}"
                ),
                impact=Impact.POSITIVE,
                severity=Severity.HIGH if remaining <= t.milestone_high_window else Severity.MEDIUM,
            )]

    return []


def current_team_streak(game_log: GameLog) -> int:
    """
    Signed streak from the most recent game (+wins / -losses).

    A game without a result ends the walk.
    """
    streak = 0
    for g in game_log:
        if g.result is None:
            break
        if streak == 0:
            streak = 1 if g.result == GameResult.WIN else -1
        elif streak > 0 and g.result == GameResult.WIN:
            streak += 1
        elif streak < 0 and g.result == GameResult.LOSS:
            streak -= 1
        else:
            break
    return streak


def detect_team_streak(inp: NarrativeInput) -> List[NarrativeFlag]:
    t = inp.thresholds
    if len(inp.game_log) < t.streak_min_games:
        return []

    streak = current_team_streak(inp.game_log)
    length = abs(streak)
    if length < t.streak_length:
        return []

    severity = Severity.HIGH if length >= t.streak_high_length else Severity.MEDIUM

    if streak > 0:
        return [NarrativeFlag(
            type=NarrativeType.WINNING_STREAK,
            headline=f"{length}-game win streak",
            detail="Team on a hot streak - high confidence, rotations may tighten",
            impact=Impact.NEUTRAL,
            severity=severity,
        )]

    return [NarrativeFlag(
        type=NarrativeType.LOSING_STREAK,
        headline=f"{length}-game losing streak",
        detail="Team struggling - extended minutes for starters possible, or garbage time may increase",
        impact=Impact.NEUTRAL,
        severity=severity,
    )]


def detect_blowout_bounce(inp: NarrativeInput) -> List[NarrativeFlag]:
    t = inp.thresholds
    if len(inp.game_log) < 2 or inp.line <= 0:
        return []

    last_value = inp.game_log[0].value(inp.stat)
    margin = last_value - inp.line

    if margin >= -(inp.line * t.bounce_miss_pct):
        return []

    return [NarrativeFlag(
        type=NarrativeType.BLOWOUT_BOUNCE,
        headline="Bounce-back candidate",
        detail=(
            f"Last game: {last_value:g} {inp.stat} ({margin:+.1f} vs line). "
            "Significant underperformance often triggers regression to mean."
        ),
        impact=Impact.POSITIVE,
        severity=Severity.HIGH if margin < -(inp.line * t.bounce_high_miss_pct) else Severity.MEDIUM,
    )]


def detect_return_from_absence(inp: NarrativeInput) -> List[NarrativeFlag]:
    t = inp.thresholds
    if len(inp.game_log) < 2:
        return []

    day_gap = (inp.game_log[0].date - inp.game_log[1].date).days
    if day_gap < t.absence_gap_days:
        return []

    return [NarrativeFlag(
        type=NarrativeType.RETURN_FROM_INJURY,
        headline="Recent return",
        detail=(
            f"{day_gap}-day gap between games - possible injury return. "
            "Early-return games often feature minutes limits."
        ),
        impact=Impact.NEGATIVE,
        severity=Severity.HIGH if day_gap >= t.absence_high_gap_days else Severity.MEDIUM,
    )]


def detect_back_to_back_road(inp: NarrativeInput) -> List[NarrativeFlag]:
    if not (inp.is_back_to_back and not inp.is_home):
        return []

    return [NarrativeFlag(
        type=NarrativeType.BACK_TO_BACK_ROAD,
        headline="B2B road game",
        detail=(
            "Back-to-back on the road is the most fatiguing scenario. "
            "Historically correlates with reduced performance."
        ),
        impact=Impact.NEGATIVE,
        severity=Severity.HIGH,
    )]


def detect_rest_advantage(inp: NarrativeInput) -> List[NarrativeFlag]:
    t = inp.thresholds
    if inp.rest_days < t.rest_days:
        return []

    return [NarrativeFlag(
        type=NarrativeType.REST_MISMATCH,
        headline=f"{inp.rest_days} days rest",
        detail=(
            f"Well-rested with {inp.rest_days} days off. "
            "Extended rest generally boosts performance, especially for older players."
        ),
        impact=Impact.POSITIVE,
        severity=Severity.HIGH if inp.rest_days >= t.rest_high_days else Severity.MEDIUM,
    )]


def detect_key_teammate_out(inp: NarrativeInput) -> List[NarrativeFlag]:
    impact = Impact.POSITIVE if inp.stat in inp.thresholds.usage_stats else Impact.NEUTRAL

    return [
        NarrativeFlag(
            type=NarrativeType.KEY_TEAMMATE_OUT,
            headline=f"{inj.player_name} OUT",
            detail=inj.relevance or 'Teammate injury may affect usage',
            impact=impact,
            severity=Severity.HIGH,
        )
        for inj in inp.injuries
        if inj.team == InjurySide.TEAMMATE
        and inj.status == InjuryStatus.OUT
        and inj.impact == InjuryImpact.HIGH
    ]


def detect_rivalry(inp: NarrativeInput) -> List[NarrativeFlag]:
    team = inp.player.team.abbrev
    opponent = inp.opponent

    if not is_rivalry(inp.player.sport, team, opponent):
        return []

    return [NarrativeFlag(
        type=NarrativeType.RIVALRY,
        headline=f"Rivalry: {team} vs {opponent}",
        detail="Rivalry games tend to feature higher intensity and unpredictable performances.",
        impact=Impact.NEUTRAL,
        severity=Severity.MEDIUM,
    )]


DETECTORS: List[Callable[[NarrativeInput], List[NarrativeFlag]]] = [
    detect_elevated_vs_opponent,
    detect_milestone,
    detect_team_streak,
    detect_blowout_bounce,
    detect_return_from_absence,
    detect_back_to_back_road,
    detect_rest_advantage,
    detect_key_teammate_out,
    detect_rivalry,
]
