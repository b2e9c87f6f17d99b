"""
Similar-Situations Matcher

Finds games in a player's history played under conditions resembling
tonight's: venue, opponent defense quality and rest.

Matching relaxes in tiers; the first tier with enough games wins:
1. Exact   - venue + defense tier + rest tier
2. Relaxed - venue + defense tier (only when a defense tier is known;
   games with an unknown opponent rank never match a defense tier)
3. Broad   - venue only

Fewer than MIN_MATCHING_GAMES comparables after the broad tier means
there is nothing meaningful to report.
"""

import logging
from typing import Optional

from .models import (
    DefenseRanking,
    Game,
    GameLog,
    GameLogEntry,
    Player,
    SimilarSituationsResult,
)

logger = logging.getLogger(__name__)

# Hard floors, not tunables
MIN_HISTORY_GAMES = 10
MIN_MATCHING_GAMES = 5

RESTED_DAYS = 3

DEFENSE_TIER_LABELS = {
    'top': 'top-10 defense',
    'mid': 'mid-tier defense',
    'bottom': 'bottom-10 defense',
}


def get_defense_tier(rank: int) -> Optional[str]:
    """
    Bucket a defense rank: top (1-10), mid (11-20), bottom (21+).

    Rank 0 (unknown) belongs to no tier, so unranked games never count as
    defense matches.
    """
    if rank <= 0:
        return None
    if rank <= 10:
        return 'top'
    if rank <= 20:
        return 'mid'
    return 'bottom'


def get_rest_tier(game_log: GameLog) -> str:
    """Tonight's rest tier, read from the most recent log entry."""
    if not game_log:
        return 'normal'
    recent = game_log[0]
    if recent.is_back_to_back:
        return 'b2b'
    if recent.rest_days >= RESTED_DAYS:
        return 'rested'
    return 'normal'


def _matches_rest_tier(entry: GameLogEntry, tier: str) -> bool:
    if tier == 'b2b':
        return entry.is_back_to_back
    if tier == 'rested':
        return entry.rest_days >= RESTED_DAYS
    return not entry.is_back_to_back and entry.rest_days < RESTED_DAYS


def _describe(player: Player, is_home: bool, def_tier: Optional[str], rest_tier: Optional[str]) -> str:
    parts = [player.name, 'at home' if is_home else 'on the road']

    if def_tier:
        parts.append(f"vs {DEFENSE_TIER_LABELS[def_tier]}")

    if rest_tier == 'b2b':
        parts.append('on back-to-back')
    elif rest_tier == 'rested':
        parts.append('on 3+ days rest')

    return ' '.join(parts)


def find_similar_situations(
    player: Player,
    game: Game,
    game_logs,
    defense_ranking: Optional[DefenseRanking],
    stat: str,
    line: float,
    is_home: bool,
) -> Optional[SimilarSituationsResult]:
    """
    Find comparable historical games for tonight's prop.

    Args:
        player: Player the prop is on
        game: Tonight's game
        game_logs: Player's game log (most recent first)
        defense_ranking: Tonight's opponent defense ranking, if known
        stat: Stat key
        line: Prop line
        is_home: Whether the player is at home tonight

    Returns:
        SimilarSituationsResult, or None when there are too few comparables
    """
    log = GameLog.coerce(game_logs)
    if len(log) < MIN_HISTORY_GAMES:
        return None

    # Unknown tonight (no ranking or rank 0) drops the defense constraint
    def_tier = get_defense_tier(defense_ranking.rank) if defense_ranking else None
    rest_tier = get_rest_tier(log)

    def same_venue(g: GameLogEntry) -> bool:
        return g.is_home == is_home

    def same_defense(g: GameLogEntry) -> bool:
        return def_tier is None or get_defense_tier(g.opponent_def_rank) == def_tier

    tiers = [
        (lambda g: same_venue(g) and same_defense(g) and _matches_rest_tier(g, rest_tier),
         def_tier, rest_tier),
    ]
    if def_tier:
        tiers.append((lambda g: same_venue(g) and same_defense(g), def_tier, None))
    tiers.append((same_venue, None, None))

    for matcher, tier_def, tier_rest in tiers:
        matches = [g for g in log if matcher(g)]
        if len(matches) >= MIN_MATCHING_GAMES:
            break
    else:
        logger.debug(f"Too few comparable games for {player.name} ({stat})")
        return None

    values = [g.value(stat) for g in matches]
    hits = sum(1 for v in values if v > line)
    avg_value = sum(values) / len(values)

    return SimilarSituationsResult(
        description=_describe(player, is_home, tier_def, tier_rest),
        matching_games=len(matches),
        avg_value=avg_value,
        hit_rate=hits / len(matches),
        avg_margin=avg_value - line,
    )
