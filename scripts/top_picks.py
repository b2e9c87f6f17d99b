#!/usr/bin/env python3
"""
Convergence Engine - Nightly Top Picks Board

Reads a slate of props from CSV (columns: player, stat, line), evaluates
every prop for the date's games and prints the ones with score >= 4.

Usage:
    python scripts/top_picks.py props.csv
    python scripts/top_picks.py props.csv --date 2026-01-15 --batch-size 12 --json
"""

import sys
import json
import argparse
import logging
from pathlib import Path

import pandas as pd

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
logger = logging.getLogger('top_picks')


def load_candidates(path: str, provider, date: str = None):
    """Resolve CSV rows into board candidates; unknown players or teams without a game are skipped."""
    from convergence.board import BoardCandidate

    df = pd.read_csv(path)
    missing = {'player', 'stat', 'line'} - set(df.columns)
    if missing:
        raise ValueError(f"CSV missing columns: {', '.join(sorted(missing))}")

    candidates = []
    for _, row in df.iterrows():
        player = provider.find_player(str(row['player']))
        if player is None:
            continue

        game = provider.find_game_for_team(player.team.abbrev, date)
        if game is None:
            logger.warning(f"No game for {player.name} ({player.team.abbrev})")
            continue

        candidates.append(BoardCandidate(
            player=player,
            game=game,
            stat=str(row['stat']),
            line=float(row['line']),
        ))

    return candidates


def main():
    parser = argparse.ArgumentParser(description='Convergence top picks board')
    parser.add_argument('props', type=str, help='CSV with player, stat, line columns')
    parser.add_argument('--date', type=str, help='Game date (YYYY-MM-DD). Defaults to today.')
    parser.add_argument('--batch-size', type=int, help='Candidates per batch (clamped to 8-15)')
    parser.add_argument('--json', action='store_true', help='Print JSON instead of a table')

    args = parser.parse_args()

    from convergence.board import TopPicksBoard
    from convergence.cache import TTLCache
    from convergence.config import get_settings
    from convergence.context_builder import ContextBuilder
    from convergence.data_provider import get_data_provider

    settings = get_settings()
    provider = get_data_provider()

    candidates = load_candidates(args.props, provider, args.date)
    logger.info(f"Loaded {len(candidates)} candidates from {args.props}")

    board = TopPicksBoard(
        builder=ContextBuilder(data_provider=provider),
        cache=TTLCache(default_ttl=settings.cache_ttl_seconds),
        batch_size=args.batch_size or settings.board_batch_size,
        max_workers=settings.board_max_workers,
    )
    picks = board.run(candidates)

    if args.json:
        print(json.dumps([p.to_dict() for p in picks], indent=2))
        return

    print("=" * 70)
    print(f"Top Picks ({len(picks)} of {len(candidates)} props)")
    print("=" * 70)
    for p in picks:
        c = p.candidate
        print(f"{p.result.score}/7 {p.result.direction.value.upper():<6} "
              f"{c.player.name:<25} {c.stat:<10} {c.line:<6} "
              f"avg strength {p.average_strength:.2f}")


if __name__ == '__main__':
    main()
