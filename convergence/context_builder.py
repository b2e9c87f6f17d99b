"""
Prop Context Builder

Fans out the independent fetches a prop needs (game log, opponent
defense, injuries) and joins them into a PropInputs bundle for the
aggregator.

A failed sub-fetch degrades to an empty value instead of failing the
prop; the aggregator turns empty inputs into neutral factors.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .models import (
    DefenseRanking,
    Game,
    GameLog,
    InjuryContext,
    Player,
    SeasonStats,
)

logger = logging.getLogger(__name__)


def gather_settled(
    tasks: Dict[str, Tuple[Callable[[], Any], Any]],
    max_workers: int = 4,
) -> Dict[str, Any]:
    """
    Run named tasks concurrently and collect every outcome.

    Args:
        tasks: name -> (zero-arg callable, default returned if it raises)
        max_workers: Thread pool size

    Returns:
        name -> result (or its default when the task failed)
    """
    results: Dict[str, Any] = {name: default for name, (_, default) in tasks.items()}
    if not tasks:
        return results

    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        futures = {ex.submit(fn): name for name, (fn, _) in tasks.items()}
        for fut in as_completed(futures):
            name = futures[fut]
            try:
                results[name] = fut.result()
            except Exception as e:
                logger.warning(f"Sub-fetch {name} failed, using default: {e}")

    return results


@dataclass
class PropInputs:
    """Everything the aggregator needs for one prop."""
    player: Player
    game: Game
    stat: str
    line: float
    game_log: GameLog = field(default_factory=GameLog)
    season_stats: Optional[SeasonStats] = None
    defense_ranking: Optional[DefenseRanking] = None
    injuries: List[InjuryContext] = field(default_factory=list)

    def as_evaluate_kwargs(self) -> Dict[str, Any]:
        return {
            'player': self.player,
            'game': self.game,
            'game_logs': self.game_log,
            'season_stats': self.season_stats,
            'defense_ranking': self.defense_ranking,
            'stat': self.stat,
            'line': self.line,
            'injuries': self.injuries,
        }


class ContextBuilder:
    """
    Builds PropInputs with concurrent, failure-tolerant fetches.

    Data sources:
    - NBADataProvider: game logs, season stats, defense rankings
    - NBAInjuryChecker: teammate / opponent injuries
    """

    def __init__(self, data_provider=None, injury_checker=None, max_workers: int = 3):
        """Collaborators are lazy-loaded unless injected."""
        self._data_provider = data_provider
        self._injury_checker = injury_checker
        self.max_workers = max_workers

    @property
    def data_provider(self):
        """Lazy load data provider."""
        if self._data_provider is None:
            from .data_provider import get_data_provider
            self._data_provider = get_data_provider()
        return self._data_provider

    @property
    def injury_checker(self):
        """Lazy load injury checker."""
        if self._injury_checker is None:
            from .injury_checker import get_injury_checker
            self._injury_checker = get_injury_checker()
        return self._injury_checker

    def build(self, player: Player, game: Game, stat: str, line: float) -> PropInputs:
        """
        Build inputs for a player prop.

        Args:
            player: Player the prop is on
            game: Tonight's game
            stat: Stat key
            line: Prop line

        Returns:
            PropInputs; failed fetches leave their field empty
        """
        opponent = game.opponent_for(player).abbrev

        fetched = gather_settled({
            'game_log': (
                lambda: self.data_provider.get_player_game_log(player.id, stat=stat),
                GameLog(),
            ),
            'defense_ranking': (
                lambda: self.data_provider.get_defense_ranking(opponent, player.position, stat),
                None,
            ),
            'injuries': (
                lambda: self.injury_checker.get_injury_context(player, game),
                [],
            ),
        }, max_workers=self.max_workers)

        game_log = GameLog.coerce(fetched['game_log'])

        # Season stats depend on the log
        try:
            season_stats = self.data_provider.get_season_stats(player.id, stat, game_log)
        except Exception as e:
            logger.warning(f"Season stats for {player.name} failed, deriving from log: {e}")
            season_stats = SeasonStats.from_game_log(stat, game_log)

        return PropInputs(
            player=player,
            game=game,
            stat=stat,
            line=line,
            game_log=game_log,
            season_stats=season_stats,
            defense_ranking=fetched['defense_ranking'],
            injuries=list(fetched['injuries'] or []),
        )
