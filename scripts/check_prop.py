#!/usr/bin/env python3
"""
Convergence Engine - Single Prop Check

Evaluates one player prop for tonight's game and prints the factor
breakdown. With --actual, grades the bet afterwards and files it in the
graveyard if it lost.

Usage:
    python scripts/check_prop.py "Jayson Tatum" points 27.5
    python scripts/check_prop.py "Jayson Tatum" points 27.5 --date 2026-01-15
    python scripts/check_prop.py "Jayson Tatum" points 27.5 --direction over --actual 26 --json
"""

import sys
import json
import argparse
import logging
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from convergence.config import load_env
load_env()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger('check_prop')


def print_result(player, stat, line, result):
    print("=" * 60)
    print(f"{player.name} ({player.team.abbrev}) {stat} {line}")
    print("=" * 60)
    print(f"Convergence: {result.score}/7 {result.direction.value.upper()} "
          f"(confidence {result.confidence:.0%})")
    print(f"Over {result.over_count} / Under {result.under_count} / Neutral {result.neutral_count}")
    if result.lean:
        print(f"Weighted lean: {result.lean.direction.value.upper()} "
              f"{result.lean.confidence} ({result.lean.tier.value})")
    print("-" * 60)

    for f in result.factors:
        print(f"  {f.name:<20} {f.signal.value:<8} {f.strength:.2f}  {f.data_point}")
        if f.detail:
            print(f"  {'':<20} {f.detail}")

    if result.narratives:
        print("-" * 60)
        print("Narratives:")
        for n in result.narratives:
            print(f"  [{n.severity.value}] {n.headline}: {n.detail}")

    if result.similar_situations:
        s = result.similar_situations
        print("-" * 60)
        print(f"Similar: {s.description} ({s.matching_games} games, "
              f"{s.hit_rate:.0%} hit rate, avg {s.avg_value:.1f})")


def main():
    parser = argparse.ArgumentParser(description='Convergence check for a single prop')
    parser.add_argument('player', type=str, help='Player full name')
    parser.add_argument('stat', type=str, help="Stat key ('points', 'rebounds', 'pra', ...)")
    parser.add_argument('line', type=float, help='Prop line')
    parser.add_argument('--date', type=str, help='Game date (YYYY-MM-DD). Defaults to today.')
    parser.add_argument('--direction', type=str, choices=['over', 'under'],
                        help='Bet direction (defaults to the convergence direction)')
    parser.add_argument('--actual', type=float, help='Actual value, to grade and file a loss')
    parser.add_argument('--no-save', action='store_true', help='Do not persist graveyard entries')
    parser.add_argument('--json', action='store_true', help='Print JSON instead of a table')

    args = parser.parse_args()

    from convergence.aggregator import get_aggregator
    from convergence.context_builder import ContextBuilder
    from convergence.data_provider import get_data_provider
    from convergence.graveyard import GraveyardService

    provider = get_data_provider()

    player = provider.find_player(args.player)
    if player is None:
        logger.error(f"Player not found: {args.player}")
        sys.exit(1)

    game = provider.find_game_for_team(player.team.abbrev, args.date)
    if game is None:
        logger.error(f"No game found for {player.team.abbrev} on {args.date or 'today'}")
        sys.exit(1)

    inputs = ContextBuilder(data_provider=provider).build(player, game, args.stat, args.line)
    result = get_aggregator().evaluate(**inputs.as_evaluate_kwargs())

    output = {'result': result.to_dict()}

    if args.actual is not None:
        direction = args.direction or (
            result.direction.value if result.direction.value != 'toss-up' else 'over'
        )
        entry = GraveyardService().record(
            player.name, args.stat, args.line, direction, args.actual, result.score,
            game_date=game.date,
            convergence_snapshot=result.to_dict(),
            persist=not args.no_save,
        )
        output['graveyard'] = entry.to_dict() if entry else None

    if args.json:
        print(json.dumps(output, indent=2))
        return

    print_result(player, args.stat, args.line, result)

    if args.actual is not None:
        print("-" * 60)
        entry = output['graveyard']
        if entry is None:
            print(f"Actual {args.actual}: not a loss, nothing filed")
        else:
            autopsy = entry['autopsy']
            print(f"Autopsy: grade {autopsy['process_grade']}, unluck {autopsy['unluck_score']}/100, "
                  f"would bet again: {autopsy['would_bet_again']}")
            print(f"  {autopsy['process_assessment']}")
            for lesson in autopsy['lessons_learned']:
                print(f"  - {lesson}")


if __name__ == '__main__':
    main()
