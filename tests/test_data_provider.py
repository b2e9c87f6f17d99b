import threading
import time
from datetime import date

import pandas as pd

from convergence.data_provider import RateLimiter, game_log_from_frame, parse_matchup, rank_defenses
from convergence.models import GameResult


def _gamelog_frame():
    # nba_api returns newest first; shuffled here on purpose
    return pd.DataFrame([
        {'GAME_DATE': 'Jan 14, 2026', 'MATCHUP': 'BOS vs. MIA', 'WL': 'W', 'PTS': 31, 'REB': 8, 'AST': 5, 'MIN': 36},
        {'GAME_DATE': 'Jan 18, 2026', 'MATCHUP': 'BOS @ NYK', 'WL': 'L', 'PTS': 22, 'REB': 10, 'AST': 7, 'MIN': 38},
        {'GAME_DATE': 'Jan 17, 2026', 'MATCHUP': 'BOS vs. ORL', 'WL': 'W', 'PTS': 27, 'REB': 6, 'AST': 4, 'MIN': 34},
    ])


def test_parse_matchup():
    assert parse_matchup('LAL vs. BOS') == ('BOS', True)
    assert parse_matchup('LAL @ BOS') == ('BOS', False)


def test_game_log_from_frame():
    log = game_log_from_frame(_gamelog_frame(), def_ranks={'NYK': 4})

    assert [e.date for e in log] == [date(2026, 1, 18), date(2026, 1, 17), date(2026, 1, 14)]

    latest = log[0]
    assert latest.opponent == 'NYK'
    assert not latest.is_home
    assert latest.result == GameResult.LOSS
    assert latest.opponent_def_rank == 4
    assert latest.minutes_played == 38.0
    assert latest.value('pra') == 39.0
    assert (latest.rest_days, latest.is_back_to_back) == (0, True)

    assert (log[1].rest_days, log[1].is_back_to_back) == (2, False)
    # Oldest game has nothing before it
    assert (log[2].rest_days, log[2].is_back_to_back) == (1, False)
    assert log[2].opponent_def_rank == 0


def test_game_log_from_empty_frame():
    assert len(game_log_from_frame(pd.DataFrame())) == 0


def test_rank_defenses():
    df = pd.DataFrame([
        {'TEAM_ID': 1, 'OPP_PTS': 118.0, 'OPP_REB': 44.0, 'OPP_AST': 27.0},
        {'TEAM_ID': 2, 'OPP_PTS': 105.0, 'OPP_REB': 41.0, 'OPP_AST': 23.0},
        {'TEAM_ID': 3, 'OPP_PTS': 111.0, 'OPP_REB': 47.0, 'OPP_AST': 25.0},
    ])
    ranks = rank_defenses(df, 'points', {1: 'WAS', 2: 'OKC', 3: 'BOS'})

    assert [ranks[t].rank for t in ('OKC', 'BOS', 'WAS')] == [1, 2, 3]
    assert ranks['WAS'].average_allowed == 118.0

    combo = rank_defenses(df, 'pra', {1: 'WAS', 2: 'OKC', 3: 'BOS'})
    assert combo['BOS'].average_allowed == 183.0

    assert rank_defenses(df, 'threes', {1: 'WAS'}) == {}


def test_rate_limiter_spaces_concurrent_calls():
    limiter = RateLimiter(min_interval=0.05)
    threads = [threading.Thread(target=limiter.wait) for _ in range(6)]

    start = time.time()
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    # First call is free, the other five each wait a full interval
    assert time.time() - start >= 5 * 0.05 * 0.95
