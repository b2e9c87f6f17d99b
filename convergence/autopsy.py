"""
Bet Autopsy

Post-mortem for a single missed bet: what went wrong, could it have been
seen coming, and was the process sound regardless of the result?

A good process with a bad result is still a good process. `would_bet_again`
is true exactly when the process grade is A or B.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .config import DEFAULT_AUTOPSY_THRESHOLDS, AutopsyThresholds
from .models import (
    BetAutopsy,
    BetDirection,
    CauseSeverity,
    GraveyardEntry,
    LossPatterns,
    ProcessGrade,
    RootCause,
    RootCauseType,
)

logger = logging.getLogger(__name__)

# In-game events nobody could have priced in before tip-off
UNFORESEEABLE_CAUSES = frozenset({
    RootCauseType.BLOWOUT,
    RootCauseType.INJURY_DURING_GAME,
    RootCauseType.MINUTE_RESTRICTION,
})

SOUND_PROCESS_GRADES = frozenset({ProcessGrade.A, ProcessGrade.B})


@dataclass(frozen=True)
class AutopsyContext:
    """What is known about how the game actually played out."""
    minutes_played: Optional[float] = None
    final_margin: Optional[float] = None     # point differential
    was_blowout: bool = False
    had_injury_during_game: bool = False
    had_lineup_change: bool = False
    is_back_to_back: bool = False


def bet_margin(direction: BetDirection, line: float, actual_value: float) -> float:
    """Signed distance from the line, positive when the bet was on the right side."""
    if direction == BetDirection.OVER:
        return actual_value - line
    return line - actual_value


def generate_autopsy(
    player_name: str,
    stat: str,
    line: float,
    direction: BetDirection,
    actual_value: float,
    convergence_at_time_of_bet: int,
    context: Optional[AutopsyContext] = None,
    thresholds: Optional[AutopsyThresholds] = None,
) -> BetAutopsy:
    """
    Generate an autopsy for a missed bet.

    Args:
        player_name: Player the bet was on
        stat: Stat key
        line: Prop line
        direction: over / under
        actual_value: Realized stat value
        convergence_at_time_of_bet: Convergence score when the bet was placed
        context: Optional in-game context

    Returns:
        BetAutopsy
    """
    ctx = context or AutopsyContext()
    t = thresholds or DEFAULT_AUTOPSY_THRESHOLDS
    direction = BetDirection(direction)
    margin = bet_margin(direction, line, actual_value)
    convergence = convergence_at_time_of_bet

    causes = identify_root_causes(convergence, margin, ctx, t)
    grade = grade_process(convergence, margin, causes, t)

    logger.debug(
        f"Autopsy {player_name} {stat} {direction.value} {line}: "
        f"margin {margin:+.1f}, grade {grade.value}"
    )

    return BetAutopsy(
        process_grade=grade,
        root_causes=tuple(causes),
        unluck_score=calculate_unluck_score(convergence, margin, causes, t),
        was_unlucky=assess_luck(convergence, margin, causes),
        would_bet_again=grade in SOUND_PROCESS_GRADES,
        process_assessment=build_process_assessment(grade, convergence, causes),
        lessons_learned=tuple(extract_lessons(causes, ctx)),
    )


# =============================================================================
# ROOT CAUSES
# =============================================================================

def identify_root_causes(
    convergence: int,
    margin: float,
    ctx: AutopsyContext,
    t: AutopsyThresholds = DEFAULT_AUTOPSY_THRESHOLDS,
) -> List[RootCause]:
    """Walk the cause checks in order; always returns at least one cause."""
    causes: List[RootCause] = []
    low_minutes = ctx.minutes_played is not None and ctx.minutes_played < t.low_minutes

    if ctx.was_blowout or (ctx.final_margin is not None and abs(ctx.final_margin) >= t.blowout_margin):
        final = f"{ctx.final_margin:g}" if ctx.final_margin is not None else 'unknown'
        causes.append(RootCause(
            type=RootCauseType.BLOWOUT,
            label='Game was a blowout',
            detail=f"Final margin of {final} points likely reduced playing time for starters.",
            severity=CauseSeverity.PRIMARY,
            was_knowable=False,
        ))

    if ctx.had_injury_during_game:
        causes.append(RootCause(
            type=RootCauseType.INJURY_DURING_GAME,
            label='Player was injured during the game',
            detail='An in-game injury cut into playing time and performance.',
            severity=CauseSeverity.PRIMARY,
            was_knowable=False,
        ))

    if low_minutes:
        causes.append(RootCause(
            type=RootCauseType.MINUTE_RESTRICTION,
            label='Limited minutes played',
            detail=(
                f"Only {ctx.minutes_played:g} minutes. Could indicate foul trouble, "
                "blowout or restriction."
            ),
            severity=CauseSeverity.PRIMARY if not causes else CauseSeverity.CONTRIBUTING,
            was_knowable=False,
        ))

    if low_minutes and not ctx.was_blowout:
        causes.append(RootCause(
            type=RootCauseType.FOUL_TROUBLE,
            label='Possible foul trouble',
            detail='Low minutes without a blowout game suggests foul trouble or in-game rest.',
            severity=CauseSeverity.CONTRIBUTING,
            was_knowable=False,
        ))

    if ctx.had_lineup_change:
        causes.append(RootCause(
            type=RootCauseType.LINEUP_CHANGE,
            label='Lineup change affected role',
            detail='A teammate entering or exiting the lineup may have shifted usage.',
            severity=CauseSeverity.CONTRIBUTING,
            was_knowable=True,
        ))

    if ctx.is_back_to_back:
        causes.append(RootCause(
            type=RootCauseType.GAME_FLOW,
            label='Back-to-back fatigue',
            detail='Playing on a back-to-back may have reduced energy and performance.',
            severity=CauseSeverity.CONTRIBUTING,
            was_knowable=True,
        ))

    # The remaining checks only apply when nothing concrete explains the miss
    if causes:
        return causes

    if abs(margin) <= t.narrow_miss:
        causes.append(RootCause(
            type=RootCauseType.REGRESSION,
            label='Narrow miss (variance)',
            detail=f"Missed by only {abs(margin):.1f}. This is within normal variance.",
            severity=CauseSeverity.PRIMARY,
            was_knowable=False,
        ))
    elif convergence >= t.high_convergence:
        causes.append(RootCause(
            type=RootCauseType.LINE_WAS_SHARP,
            label='Sharp line / market-efficient',
            detail=f"Despite {convergence}/7 convergence, the line held. Market may have been efficient.",
            severity=CauseSeverity.PRIMARY,
            was_knowable=False,
        ))
    elif convergence <= t.low_convergence:
        causes.append(RootCause(
            type=RootCauseType.BAD_MATCHUP_READ,
            label='Low convergence signal',
            detail=f"Convergence was only {convergence}/7, a weak signal to begin with.",
            severity=CauseSeverity.PRIMARY,
            was_knowable=True,
        ))
    else:
        causes.append(RootCause(
            type=RootCauseType.OTHER,
            label='No clear root cause',
            detail=f"Missed by {abs(margin):.1f}. No obvious external factor detected.",
            severity=CauseSeverity.PRIMARY,
            was_knowable=False,
        ))

    return causes


# =============================================================================
# GRADING
# =============================================================================

def grade_process(
    convergence: int,
    margin: float,
    causes: Sequence[RootCause],
    t: AutopsyThresholds = DEFAULT_AUTOPSY_THRESHOLDS,
) -> ProcessGrade:
    """
    Grade the decision, not the outcome.

    | convergence | knowable causes | |margin|  | grade |
    | >= 6        | none            | <= 1     | A     |
    | >= 6        | none            | > 1      | A if an unforeseeable in-game event was primary, else B |
    | >= 5        | none            | any      | B     |
    | >= 4        |                 |          | C     |
    | >= 3        |                 |          | D     |
    | otherwise   |                 |          | F     |
    """
    knowable = [c for c in causes if c.was_knowable]

    if convergence >= t.elite_convergence and not knowable:
        if abs(margin) <= t.grade_a_margin:
            return ProcessGrade.A
        if any(c.severity == CauseSeverity.PRIMARY and c.type in UNFORESEEABLE_CAUSES for c in causes):
            return ProcessGrade.A
        return ProcessGrade.B
    if convergence >= t.high_convergence and not knowable:
        return ProcessGrade.B
    if convergence >= 4:
        return ProcessGrade.C
    if convergence >= t.low_convergence:
        return ProcessGrade.D
    return ProcessGrade.F


def assess_luck(convergence: int, margin: float, causes: Sequence[RootCause]) -> bool:
    # Narrow miss on a strong read, or something nobody controls
    if abs(margin) <= 2 and convergence >= 5:
        return True
    return any(c.type in (RootCauseType.INJURY_DURING_GAME, RootCauseType.BLOWOUT) for c in causes)


def calculate_unluck_score(
    convergence: int,
    margin: float,
    causes: Sequence[RootCause],
    t: AutopsyThresholds = DEFAULT_AUTOPSY_THRESHOLDS,
) -> int:
    """0 = entirely bad process, 100 = entirely bad luck."""
    score = 50
    miss = abs(margin)

    if miss <= 0.5:
        score += 30
    elif miss <= 1.5:
        score += 20
    elif miss <= 3:
        score += 10
    else:
        score -= 10

    if convergence >= t.elite_convergence:
        score += 15
    elif convergence >= t.high_convergence:
        score += 10
    elif convergence <= t.low_convergence:
        score -= 15

    score += 5 * sum(1 for c in causes if not c.was_knowable)

    return max(0, min(100, score))


def build_process_assessment(grade: ProcessGrade, convergence: int, causes: Sequence[RootCause]) -> str:
    if grade == ProcessGrade.A:
        return (
            f"Strong process ({convergence}/7 convergence). The miss was driven by "
            "factors outside your control. Keep this approach."
        )
    if grade == ProcessGrade.B:
        return (
            f"Good process ({convergence}/7 convergence). Minor refinements possible "
            "but the analysis was solid."
        )
    if grade == ProcessGrade.C:
        knowable = [c.label for c in causes if c.was_knowable]
        tail = f"Consider: {', '.join(knowable)}." if knowable else 'The signal was mixed.'
        return f"Average process ({convergence}/7 convergence). {tail}"
    if grade == ProcessGrade.D:
        return (
            f"Below-average process ({convergence}/7 convergence). The data wasn't "
            "strongly supporting this pick."
        )
    return (
        f"Poor process ({convergence}/7 convergence). Convergence was low, so this "
        "was more of a gut call than a data-driven play."
    )


def extract_lessons(causes: Sequence[RootCause], ctx: AutopsyContext) -> List[str]:
    types = {c.type for c in causes}
    lessons = []

    if RootCauseType.BLOWOUT in types:
        lessons.append('Consider checking implied game script before betting player props in lopsided matchups.')
    if types & {RootCauseType.FOUL_TROUBLE, RootCauseType.MINUTE_RESTRICTION}:
        lessons.append('Minute projections should be cross-referenced with foul rate history.')
    if RootCauseType.BAD_MATCHUP_READ in types:
        lessons.append('Low convergence picks have a low base rate. Save these for small exposure plays.')
    if RootCauseType.LINEUP_CHANGE in types:
        lessons.append('Monitor lineup news closer to tip-off for late-breaking changes.')
    if ctx.is_back_to_back:
        lessons.append('Back-to-back games carry inherent variance. Factor in fatigue when sizing bets.')
    if types & {RootCauseType.REGRESSION, RootCauseType.LINE_WAS_SHARP}:
        lessons.append('Narrow misses on strong signals are part of the game. Process over results.')

    if not lessons:
        lessons.append('No clear process improvements identified. Continue trusting the convergence model.')

    return lessons


# =============================================================================
# AGGREGATE ANALYTICS
# =============================================================================

def analyze_loss_patterns(entries: Sequence[GraveyardEntry]) -> LossPatterns:
    """
    Summarize a set of graveyard entries.

    Margins are averaged by magnitude; the would-bet-again rate is a percent.
    """
    if not entries:
        return LossPatterns()

    total = len(entries)

    cause_counts = Counter(
        cause.type for entry in entries for cause in entry.autopsy.root_causes
    )
    top_causes = [
        {'type': cause_type.value, 'count': count, 'percentage': count / total * 100}
        for cause_type, count in sorted(cause_counts.items(), key=lambda kv: -kv[1])[:5]
    ]

    grades = {g.value: 0 for g in ProcessGrade}
    for entry in entries:
        grades[entry.autopsy.process_grade.value] += 1

    would_bet_again = sum(1 for e in entries if e.autopsy.would_bet_again)

    return LossPatterns(
        total_entries=total,
        avg_margin=round(sum(abs(e.margin) for e in entries) / total, 1),
        avg_convergence=round(sum(e.convergence_at_time_of_bet for e in entries) / total, 1),
        avg_unluck_score=round(sum(e.autopsy.unluck_score for e in entries) / total),
        top_causes=top_causes,
        grade_distribution=grades,
        would_bet_again_rate=round(would_bet_again / total * 100),
    )
