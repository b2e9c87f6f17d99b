from datetime import date, datetime

import pytest

from builders import BOS, ORL, make_game, make_log, make_player
from convergence.models import (
    ConvergenceFactor,
    FactorKey,
    GameLog,
    GameLogEntry,
    GameLogOrderError,
    SeasonStats,
    Signal,
    get_stat_value,
)


def _entry(day, points=20.0):
    return GameLogEntry(date=day, opponent='MIA', is_home=True, stats={'points': points})


def test_game_log_rejects_oldest_first():
    with pytest.raises(GameLogOrderError):
        GameLog([_entry(date(2026, 1, 1)), _entry(date(2026, 1, 5))])


def test_game_log_from_entries_sorts_newest_first():
    log = GameLog.from_entries([_entry(date(2026, 1, 1), 10), _entry(date(2026, 1, 5), 30)])

    assert [e.date for e in log] == [date(2026, 1, 5), date(2026, 1, 1)]
    assert log.values('points') == [30.0, 10.0]


def test_game_log_slice_is_a_game_log():
    log = make_log([30, 20, 10])
    head = log[:2]

    assert isinstance(head, GameLog)
    assert head.values('points') == [30.0, 20.0]
    assert log[0].value('points') == 30.0


def test_coerce_passes_logs_through_and_handles_none():
    log = make_log([30, 20])
    assert GameLog.coerce(log) is log
    assert len(GameLog.coerce(None)) == 0


def test_entry_accepts_iso_strings():
    entry = GameLogEntry(date='2026-01-18T00:00:00', opponent='MIA', is_home=False)
    assert entry.date == date(2026, 1, 18)

    entry = GameLogEntry(date=datetime(2026, 1, 18, 19, 30), opponent='MIA', is_home=False)
    assert entry.date == date(2026, 1, 18)


def test_combo_stats_sum_components():
    stats = {'points': 25, 'rebounds': 8, 'assists': 6}

    assert get_stat_value(stats, 'pra') == 39.0
    assert get_stat_value(stats, 'pr') == 33.0
    assert get_stat_value(stats, 'blocks_steals') == 0.0
    assert get_stat_value(stats, 'threes') == 0.0


def test_season_stats_from_game_log():
    log = make_log([30, 20, 10])

    stats = SeasonStats.from_game_log('points', log)
    assert stats.average == 20.0
    assert stats.total == 60.0
    assert (stats.high, stats.low, stats.games_played) == (30.0, 10.0, 3)

    with_career = SeasonStats.from_game_log('points', log, career_total=9950)
    assert with_career.total == 60.0
    assert with_career.career_total == 9950
    assert stats.career_total is None
    assert SeasonStats.from_game_log('points', GameLog()).games_played == 0


def test_factor_strength_is_clamped():
    f = ConvergenceFactor(key=FactorKey.MATCHUP, name='m', signal=Signal.OVER, strength=1.7)
    assert f.strength == 1.0
    f = ConvergenceFactor(key=FactorKey.MATCHUP, name='m', signal=Signal.UNDER, strength=-0.2)
    assert f.strength == 0.0


def test_game_sides():
    player = make_player()
    home = make_game(home=BOS, away=ORL)
    away = make_game(home=ORL, away=BOS)

    assert home.is_home_for(player)
    assert home.opponent_for(player) == ORL
    assert not away.is_home_for(player)
    assert away.opponent_for(player) == ORL
