import logging

from builders import NYK, make_game, make_log, season_for
from convergence.models import (
    Impact,
    InjuryContext,
    InjuryImpact,
    InjurySide,
    InjuryStatus,
    NarrativeType,
    SeasonStats,
    Severity,
)
from convergence.narrative_detector import current_team_streak, detect_narratives


def _detect(player, game, log, season=None, injuries=None, is_home=True,
            rest_days=1, is_b2b=False, stat='points', line=20.0):
    return detect_narratives(
        player, game, log, season, injuries or [], is_home, rest_days, is_b2b, stat, line,
    )


def _by_type(flags, flag_type):
    return [f for f in flags if f.type == flag_type]


def test_blowout_bounce_after_big_miss(player, game):
    log = make_log([10, 24, 24, 24, 23, 23, 23, 23, 23, 23])
    season = season_for(log)
    assert season.average == 22.0

    flags = _by_type(_detect(player, game, log, season, line=20.0), NarrativeType.BLOWOUT_BOUNCE)

    assert len(flags) == 1
    assert flags[0].impact == Impact.POSITIVE
    assert flags[0].severity == Severity.MEDIUM


def test_blowout_bounce_high_when_miss_exceeds_sixty_percent(player, game):
    log = make_log([5, 24, 24])
    flags = _by_type(_detect(player, game, log, line=20.0), NarrativeType.BLOWOUT_BOUNCE)
    assert flags[0].severity == Severity.HIGH


def test_blowout_bounce_needs_positive_line_and_two_games(player, game):
    assert not _by_type(_detect(player, game, make_log([0]), line=20.0), NarrativeType.BLOWOUT_BOUNCE)
    assert not _by_type(_detect(player, game, make_log([0, 10]), line=0.0), NarrativeType.BLOWOUT_BOUNCE)


def test_rest_advantage(player, game):
    flags = _by_type(_detect(player, game, make_log([20, 20]), rest_days=4), NarrativeType.REST_MISMATCH)
    assert len(flags) == 1
    assert flags[0].severity == Severity.HIGH
    assert flags[0].impact == Impact.POSITIVE

    flags = _by_type(_detect(player, game, make_log([20, 20]), rest_days=3), NarrativeType.REST_MISMATCH)
    assert flags[0].severity == Severity.MEDIUM

    assert not _by_type(_detect(player, game, make_log([20, 20]), rest_days=2), NarrativeType.REST_MISMATCH)


def test_back_to_back_road_only_on_the_road(player, game):
    log = make_log([20, 20])

    road = _by_type(_detect(player, game, log, is_home=False, is_b2b=True), NarrativeType.BACK_TO_BACK_ROAD)
    assert len(road) == 1
    assert road[0].severity == Severity.HIGH
    assert road[0].impact == Impact.NEGATIVE

    home = _by_type(_detect(player, game, log, is_home=True, is_b2b=True), NarrativeType.BACK_TO_BACK_ROAD)
    assert home == []


def test_elevated_vs_opponent(player):
    game = make_game(away=NYK)
    log = make_log(
        [30, 18, 30, 18, 30, 18, 18, 18, 18, 18],
        opponents=['NYK', 'MIA', 'NYK', 'MIA', 'NYK', 'MIA', 'MIA', 'MIA', 'MIA', 'MIA'],
    )
    season = SeasonStats(stat='points', average=20.0, games_played=10, high=30, low=18)

    flags = _by_type(_detect(player, game, log, season), NarrativeType.ELEVATED_VS_OPPONENT)

    assert len(flags) == 1
    assert flags[0].severity == Severity.HIGH
    assert flags[0].impact == Impact.POSITIVE
    assert 'NYK' in flags[0].headline


def test_elevated_vs_opponent_needs_three_meetings(player):
    game = make_game(away=NYK)
    log = make_log([30, 18, 30, 18], opponents=['NYK', 'MIA', 'NYK', 'MIA'])
    season = SeasonStats(stat='points', average=20.0, games_played=4)
    assert not _by_type(_detect(player, game, log, season), NarrativeType.ELEVATED_VS_OPPONENT)


def test_milestone_watch(player, game):
    log = make_log([20, 20])

    near = SeasonStats(stat='points', average=20.0, career_total=9950, games_played=2)
    flags = _by_type(_detect(player, game, log, near), NarrativeType.MILESTONE)
    assert len(flags) == 1
    assert flags[0].severity == Severity.MEDIUM

    very_near = SeasonStats(stat='points', average=20.0, career_total=9985, games_played=2)
    assert _by_type(_detect(player, game, log, very_near), NarrativeType.MILESTONE)[0].severity == Severity.HIGH

    far = SeasonStats(stat='points', average=20.0, career_total=9800, games_played=2)
    assert not _by_type(_detect(player, game, log, far), NarrativeType.MILESTONE)


def test_milestone_needs_a_career_total(player, game):
    # 950 season points must not read as 50 away from 1,000 career
    log = make_log([95] * 10)
    season = season_for(log)
    assert season.total == 950
    assert season.career_total is None

    assert not _by_type(_detect(player, game, log, season), NarrativeType.MILESTONE)

    season = season_for(log, career_total=950)
    assert _by_type(_detect(player, game, log, season), NarrativeType.MILESTONE)


def test_streak_severity_grows_without_flipping_impact(player, game):
    four = make_log([20] * 6, results=['W', 'W', 'W', 'W', 'L', 'L'])
    eight = make_log([20] * 9, results=['W'] * 8 + ['L'])

    flag4 = _by_type(_detect(player, game, four), NarrativeType.WINNING_STREAK)[0]
    flag8 = _by_type(_detect(player, game, eight), NarrativeType.WINNING_STREAK)[0]

    assert flag4.impact == flag8.impact
    assert flag4.severity == Severity.MEDIUM
    assert flag8.severity == Severity.HIGH


def test_losing_streak(player, game):
    log = make_log([20] * 5, results=['L', 'L', 'L', 'L', 'W'])
    flags = _by_type(_detect(player, game, log), NarrativeType.LOSING_STREAK)
    assert flags[0].headline == '4-game losing streak'


def test_streak_stops_at_missing_result():
    log = make_log([20] * 6, results=['W', 'W', None, 'W', 'W', 'W'])
    assert current_team_streak(log) == 2


def test_return_from_absence(player, game):
    log = make_log([20, 20, 20], spacing=15)
    flags = _by_type(_detect(player, game, log), NarrativeType.RETURN_FROM_INJURY)
    assert flags[0].severity == Severity.HIGH
    assert flags[0].impact == Impact.NEGATIVE

    assert not _by_type(_detect(player, game, make_log([20, 20], spacing=3)), NarrativeType.RETURN_FROM_INJURY)


def test_key_teammate_out(player, game):
    injuries = [
        InjuryContext('Jaylen Brown', InjuryStatus.OUT, InjuryImpact.HIGH, InjurySide.TEAMMATE, 'Knee'),
        InjuryContext('Derrick White', InjuryStatus.QUESTIONABLE, InjuryImpact.MEDIUM, InjurySide.TEAMMATE),
        InjuryContext('Paolo Banchero', InjuryStatus.OUT, InjuryImpact.HIGH, InjurySide.OPPONENT),
    ]
    log = make_log([20, 20])

    points = _by_type(_detect(player, game, log, injuries=injuries), NarrativeType.KEY_TEAMMATE_OUT)
    assert [f.headline for f in points] == ['Jaylen Brown OUT']
    assert points[0].impact == Impact.POSITIVE

    rebounds = _by_type(
        _detect(player, game, log, injuries=injuries, stat='rebounds'), NarrativeType.KEY_TEAMMATE_OUT,
    )
    assert rebounds[0].impact == Impact.NEUTRAL


def test_rivalry(player):
    flags = _by_type(_detect(player, make_game(away=NYK), make_log([20, 20])), NarrativeType.RIVALRY)
    assert len(flags) == 1
    assert flags[0].impact == Impact.NEUTRAL


def test_empty_inputs_emit_nothing(player, game):
    assert detect_narratives(player, game, [], None, None, True, 1, False, 'points', 20.0) == []


def test_failing_heuristic_is_skipped(player, game, caplog):
    # Not an InjuryContext: the teammate heuristic blows up, the rest still run
    with caplog.at_level(logging.WARNING):
        flags = _detect(player, game, make_log([20, 20]), injuries=[object()], rest_days=4)

    assert _by_type(flags, NarrativeType.REST_MISMATCH)
    assert 'detect_key_teammate_out' in caplog.text


def test_unsorted_log_is_coerced(player, game):
    log = list(make_log([10, 24, 24]))
    flags = _detect(player, game, list(reversed(log)), line=20.0)
    assert _by_type(flags, NarrativeType.BLOWOUT_BOUNCE)


def test_idempotent(player, game):
    log = make_log([10, 24, 24, 24], results=['W', 'W', 'W', 'W'])
    first = [f.to_dict() for f in _detect(player, game, log, rest_days=4)]
    second = [f.to_dict() for f in _detect(player, game, log, rest_days=4)]
    assert first == second
