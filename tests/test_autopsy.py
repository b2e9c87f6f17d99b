import pytest

from convergence.autopsy import (
    AutopsyContext,
    analyze_loss_patterns,
    bet_margin,
    generate_autopsy,
)
from convergence.models import (
    BetDirection,
    CauseSeverity,
    GraveyardEntry,
    ProcessGrade,
    RootCauseType,
)


def _autopsy(convergence, actual, line=27.5, direction=BetDirection.OVER, context=None):
    return generate_autopsy('Jayson Tatum', 'points', line, direction, actual, convergence, context=context)


def _entry(convergence, actual, line=27.5, context=None):
    autopsy = _autopsy(convergence, actual, line=line, context=context)
    return GraveyardEntry(
        id=f"e{convergence}-{actual}",
        player_name='Jayson Tatum',
        stat='points',
        line=line,
        direction=BetDirection.OVER,
        actual_value=actual,
        margin=bet_margin(BetDirection.OVER, line, actual),
        convergence_at_time_of_bet=convergence,
        autopsy=autopsy,
    )


def test_narrow_miss_on_strong_signal_is_grade_a():
    autopsy = _autopsy(6, 27)

    assert autopsy.process_grade == ProcessGrade.A
    assert autopsy.would_bet_again
    assert autopsy.was_unlucky
    assert [c.type for c in autopsy.root_causes] == [RootCauseType.REGRESSION]
    assert autopsy.unluck_score == 100


@pytest.mark.parametrize('convergence,actual,context,grade', [
    (6, 22, None, ProcessGrade.B),
    (6, 22, AutopsyContext(was_blowout=True, final_margin=30), ProcessGrade.A),
    (5, 22, None, ProcessGrade.B),
    (4, 22, None, ProcessGrade.C),
    (3, 22, None, ProcessGrade.D),
    (2, 22, None, ProcessGrade.F),
    (6, 22, AutopsyContext(had_lineup_change=True), ProcessGrade.C),
])
def test_grade_table(convergence, actual, context, grade):
    assert _autopsy(convergence, actual, context=context).process_grade == grade


@pytest.mark.parametrize('convergence', range(0, 8))
@pytest.mark.parametrize('actual', [27.0, 26.0, 20.0])
def test_would_bet_again_follows_grade(convergence, actual):
    autopsy = _autopsy(convergence, actual)
    assert autopsy.would_bet_again == (autopsy.process_grade in (ProcessGrade.A, ProcessGrade.B))


def test_under_margin_sign():
    assert bet_margin(BetDirection.UNDER, 20, 25) == -5
    assert bet_margin(BetDirection.OVER, 20, 25) == 5

    autopsy = _autopsy(4, 25, line=20, direction=BetDirection.UNDER)
    assert autopsy.root_causes[0].type == RootCauseType.OTHER
    assert '5.0' in autopsy.root_causes[0].detail


def test_concrete_causes_in_order():
    ctx = AutopsyContext(minutes_played=18, final_margin=-28, had_lineup_change=True, is_back_to_back=True)
    autopsy = _autopsy(5, 15, context=ctx)

    types = [c.type for c in autopsy.root_causes]
    assert types == [
        RootCauseType.BLOWOUT,
        RootCauseType.MINUTE_RESTRICTION,
        RootCauseType.FOUL_TROUBLE,
        RootCauseType.LINEUP_CHANGE,
        RootCauseType.GAME_FLOW,
    ]
    assert autopsy.root_causes[0].severity == CauseSeverity.PRIMARY
    assert autopsy.root_causes[1].severity == CauseSeverity.CONTRIBUTING
    assert any('fatigue' in lesson for lesson in autopsy.lessons_learned)


def test_low_minutes_alone_is_primary():
    autopsy = _autopsy(5, 20, context=AutopsyContext(minutes_played=20))
    assert autopsy.root_causes[0].type == RootCauseType.MINUTE_RESTRICTION
    assert autopsy.root_causes[0].severity == CauseSeverity.PRIMARY


def test_unluck_score_is_clamped():
    ctx = AutopsyContext(was_blowout=True, had_injury_during_game=True, minutes_played=12)
    autopsy = _autopsy(7, 27.3, context=ctx)
    assert autopsy.unluck_score == 100

    autopsy = _autopsy(1, 15)
    assert 0 <= autopsy.unluck_score <= 100
    assert not autopsy.would_bet_again


def test_always_at_least_one_cause_and_lesson():
    for convergence in range(8):
        autopsy = _autopsy(convergence, 24)
        assert autopsy.root_causes
        assert autopsy.lessons_learned
        assert autopsy.process_assessment


def test_loss_patterns_empty():
    patterns = analyze_loss_patterns([])

    assert patterns.total_entries == 0
    assert patterns.top_causes == []
    assert patterns.grade_distribution == {'A': 0, 'B': 0, 'C': 0, 'D': 0, 'F': 0}
    assert patterns.would_bet_again_rate == 0


def test_loss_patterns():
    entries = [_entry(6, 27), _entry(6, 26.5), _entry(2, 20)]
    patterns = analyze_loss_patterns(entries)

    assert patterns.total_entries == 3
    assert patterns.avg_margin == pytest.approx(round((0.5 + 1.0 + 7.5) / 3, 1))
    assert patterns.avg_convergence == 4.7
    assert patterns.grade_distribution['A'] == 2
    assert patterns.grade_distribution['F'] == 1
    assert patterns.would_bet_again_rate == 67

    top = patterns.top_causes[0]
    assert top == {'type': 'regression', 'count': 2, 'percentage': pytest.approx(200 / 3)}


def test_repeated_autopsies_agree():
    ctx = AutopsyContext(minutes_played=22, final_margin=-12, had_lineup_change=True)

    first = _autopsy(5, 21, context=ctx)
    second = _autopsy(5, 21, context=ctx)

    assert first.to_dict() == second.to_dict()
    assert first == second
