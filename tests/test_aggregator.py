import logging

import pytest

from builders import make_log, season_for
from convergence.aggregator import TOTAL_FACTORS, ConvergenceAggregator, compute_lean
from convergence.factors import ALL_FACTORS
from convergence.models import (
    ConvergenceFactor,
    DefenseRanking,
    Direction,
    FactorKey,
    GameLog,
    LeanTier,
    Signal,
)


def _factor(key, signal, strength=0.5, weight=0.0):
    return ConvergenceFactor(key=key, name=key.value, signal=signal, strength=strength, weight=weight)


def test_empty_inputs_are_a_toss_up(player, game):
    result = ConvergenceAggregator().evaluate(player, game, GameLog(), None, None, 'points', 20.0)

    assert result.direction == Direction.TOSS_UP
    assert result.score == 0
    assert result.confidence == 0.0
    assert len(result.factors) == TOTAL_FACTORS == 7
    assert result.neutral_count == 7
    assert all(f.strength == 0.0 for f in result.factors)


def test_strong_over(player, game):
    log = make_log([30] * 15)
    season = season_for(log)
    ranking = DefenseRanking(team_abbrev='ORL', rank=28, average_allowed=118.0)

    result = ConvergenceAggregator().evaluate(player, game, log, season, ranking, 'points', 20.0)

    assert result.direction == Direction.OVER
    assert result.under_count == 0
    assert result.over_count >= 6
    assert result.score == result.over_count
    assert result.confidence == pytest.approx(result.score / 7)
    assert result.similar_situations is not None

    by_key = {f.key: f for f in result.factors}
    for key in (FactorKey.RECENT_TREND, FactorKey.SEASON_AVG, FactorKey.MATCHUP,
                FactorKey.SIMILAR_SITUATIONS, FactorKey.VOLATILITY, FactorKey.VENUE):
        assert by_key[key].signal == Signal.OVER


def test_score_bounds_and_counts(player, game):
    log = make_log([25, 15, 22, 18, 30, 12, 21, 19, 26, 14])
    result = ConvergenceAggregator().evaluate(player, game, log, season_for(log), None, 'points', 20.5)

    assert 0 <= result.score <= 7
    assert 0.0 <= result.confidence <= 1.0
    assert result.over_count + result.under_count + result.neutral_count == 7
    assert result.score == max(result.over_count, result.under_count)


def test_evaluation_is_deterministic(player, game):
    log = make_log([28, 24, 19, 31, 22, 26, 18, 27, 25, 23, 21, 29])
    ranking = DefenseRanking(team_abbrev='ORL', rank=6)
    aggregator = ConvergenceAggregator()

    first = aggregator.evaluate(player, game, log, season_for(log), ranking, 'points', 24.5)
    second = aggregator.evaluate(player, game, log, season_for(log), ranking, 'points', 24.5)

    assert first.to_dict() == second.to_dict()


def test_failing_factor_reports_neutral(player, game, caplog):
    aggregator = ConvergenceAggregator()

    def boom(inp):
        raise RuntimeError('bad data')

    aggregator.factors[0].calculate = boom
    log = make_log([30] * 12)

    with caplog.at_level(logging.ERROR):
        result = aggregator.evaluate(player, game, log, season_for(log), None, 'points', 20.0)

    assert len(result.factors) == 7
    failed = result.factors[0]
    assert failed.signal == Signal.NEUTRAL
    assert failed.strength == 0.0
    assert 'bad data' in failed.detail
    assert 'Recent Trend' in caplog.text


def test_unsorted_log_is_accepted(player, game):
    log = make_log([30, 22, 18, 25, 27, 20])
    shuffled = [log[3], log[0], log[5], log[1], log[4], log[2]]

    aggregator = ConvergenceAggregator()
    a = aggregator.evaluate(player, game, shuffled, None, None, 'points', 20.0)
    b = aggregator.evaluate(player, game, log, None, None, 'points', 20.0)

    assert a.to_dict() == b.to_dict()


def test_tie_breaks_toward_over():
    factors = [
        _factor(FactorKey.RECENT_TREND, Signal.OVER),
        _factor(FactorKey.SEASON_AVG, Signal.OVER),
        _factor(FactorKey.MATCHUP, Signal.UNDER),
        _factor(FactorKey.NARRATIVE, Signal.UNDER),
        _factor(FactorKey.SIMILAR_SITUATIONS, Signal.NEUTRAL, 0.0),
        _factor(FactorKey.VOLATILITY, Signal.NEUTRAL, 0.0),
        _factor(FactorKey.VENUE, Signal.NEUTRAL, 0.0),
    ]
    result = ConvergenceAggregator.score(factors)

    assert result.direction == Direction.OVER
    assert result.score == 2
    assert result.neutral_count == 3


def test_under_majority():
    factors = [_factor(FactorKey.RECENT_TREND, Signal.UNDER), _factor(FactorKey.MATCHUP, Signal.UNDER),
               _factor(FactorKey.VENUE, Signal.OVER)]
    result = ConvergenceAggregator.score(factors)

    assert result.direction == Direction.UNDER
    assert result.score == 2
    assert result.confidence == pytest.approx(2 / 7)


def test_evaluate_many_keeps_order(player, game):
    high = make_log([35] * 10)
    low = make_log([5] * 10)
    results = ConvergenceAggregator().evaluate_many([
        dict(player=player, game=game, game_logs=high, season_stats=None,
             defense_ranking=None, stat='points', line=20.0),
        dict(player=player, game=game, game_logs=low, season_stats=None,
             defense_ranking=None, stat='points', line=20.0),
    ])

    assert [r.direction for r in results] == [Direction.OVER, Direction.UNDER]


def test_factor_weights_sum_to_one():
    assert sum(cls.weight for cls in ALL_FACTORS) == pytest.approx(1.0)
    assert all(cls.weight > 0 for cls in ALL_FACTORS)


def test_every_factor_reports_its_weight(player, game):
    result = ConvergenceAggregator().evaluate(player, game, GameLog(), None, None, 'points', 20.0)
    assert [f.weight for f in result.factors] == [cls.weight for cls in ALL_FACTORS]


@pytest.mark.parametrize('signal,strength,direction,confidence,tier', [
    (Signal.OVER, 0.0, Direction.TOSS_UP, 1, LeanTier.NEUTRAL),
    (Signal.OVER, 0.0625, Direction.TOSS_UP, 6, LeanTier.NEUTRAL),
    (Signal.OVER, 0.125, Direction.OVER, 13, LeanTier.NEUTRAL),
    (Signal.UNDER, 0.375, Direction.UNDER, 38, LeanTier.NEUTRAL),
    (Signal.OVER, 0.5, Direction.OVER, 50, LeanTier.MODERATE),
    (Signal.UNDER, 0.625, Direction.UNDER, 63, LeanTier.MODERATE),
    (Signal.OVER, 0.65625, Direction.OVER, 66, LeanTier.STRONG),
    (Signal.OVER, 1.0, Direction.OVER, 99, LeanTier.STRONG),
])
def test_lean_tiers(signal, strength, direction, confidence, tier):
    lean = compute_lean([_factor(FactorKey.RECENT_TREND, signal, strength, weight=1.0)])

    assert lean.direction == direction
    assert lean.confidence == confidence
    assert lean.tier == tier


def test_lean_is_weighted_not_counted():
    # Two light factors over, one heavy factor under
    factors = [
        _factor(FactorKey.VENUE, Signal.OVER, 1.0, weight=0.03),
        _factor(FactorKey.SIMILAR_SITUATIONS, Signal.OVER, 1.0, weight=0.09),
        _factor(FactorKey.RECENT_TREND, Signal.UNDER, 1.0, weight=0.26),
    ]
    result = ConvergenceAggregator.score(factors)

    assert result.direction == Direction.OVER
    assert result.lean.direction == Direction.UNDER
    assert result.lean.confidence == 14


def test_opposing_factors_cancel():
    lean = compute_lean([
        _factor(FactorKey.RECENT_TREND, Signal.OVER, 1.0, weight=0.5),
        _factor(FactorKey.SEASON_AVG, Signal.UNDER, 1.0, weight=0.5),
    ])
    assert lean.direction == Direction.TOSS_UP
    assert lean.tier == LeanTier.NEUTRAL


def test_strong_over_has_strong_lean(player, game):
    log = make_log([30] * 15)
    ranking = DefenseRanking(team_abbrev='ORL', rank=28)

    result = ConvergenceAggregator().evaluate(player, game, log, season_for(log), ranking, 'points', 20.0)

    assert result.lean.direction == Direction.OVER
    assert result.lean.tier == LeanTier.STRONG
    assert result.to_dict()['lean']['tier'] == 'STRONG'
