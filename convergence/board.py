"""
Top Picks Board

Evaluates a full slate of (player, stat, line) candidates and surfaces the
ones where enough factors agree.

Workflow:
1. Chunk candidates into small batches (8-15)
2. Evaluate each batch concurrently; a failing candidate is logged and skipped
3. Cache every result under its natural parameters
4. Keep results with score >= MIN_BOARD_SCORE, strongest first
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .aggregator import MIN_BOARD_SCORE, ConvergenceAggregator, get_aggregator
from .cache import Cache, NullCache, make_key
from .context_builder import ContextBuilder
from .models import ConvergenceResult, Game, Player

logger = logging.getLogger(__name__)

MIN_BATCH_SIZE = 8
MAX_BATCH_SIZE = 15


@dataclass(frozen=True)
class BoardCandidate:
    player: Player
    game: Game
    stat: str
    line: float

    @property
    def cache_key(self) -> str:
        return make_key('convergence', self.player.id, self.game.id, self.game.date, self.stat, self.line)


@dataclass
class BoardPick:
    candidate: BoardCandidate
    result: ConvergenceResult

    @property
    def average_strength(self) -> float:
        factors = self.result.factors
        if not factors:
            return 0.0
        return sum(f.strength for f in factors) / len(factors)

    def to_dict(self) -> Dict:
        c = self.candidate
        return {
            'player': c.player.name,
            'team': c.player.team.abbrev,
            'game_id': c.game.id,
            'stat': c.stat,
            'line': c.line,
            'average_strength': round(self.average_strength, 4),
            **self.result.to_dict(),
        }


def chunk(items: List, size: int) -> List[List]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class TopPicksBoard:
    """
    Nightly board over a slate of candidates.

    Usage:
        board = TopPicksBoard()
        picks = board.run(candidates)
    """

    def __init__(
        self,
        builder: Optional[ContextBuilder] = None,
        aggregator: Optional[ConvergenceAggregator] = None,
        cache: Optional[Cache] = None,
        batch_size: int = 10,
        max_workers: Optional[int] = None,
        min_score: int = MIN_BOARD_SCORE,
    ):
        self.builder = builder or ContextBuilder()
        self.aggregator = aggregator or get_aggregator()
        self.cache = cache if cache is not None else NullCache()
        self.batch_size = max(MIN_BATCH_SIZE, min(MAX_BATCH_SIZE, batch_size))
        self.max_workers = max_workers or self.batch_size
        self.min_score = min_score

    def evaluate_candidate(self, candidate: BoardCandidate) -> ConvergenceResult:
        """Evaluate one candidate, going through the cache."""
        cached = self.cache.get(candidate.cache_key)
        if cached is not None:
            return cached

        inputs = self.builder.build(candidate.player, candidate.game, candidate.stat, candidate.line)
        result = self.aggregator.evaluate(**inputs.as_evaluate_kwargs())

        self.cache.set(candidate.cache_key, result)
        return result

    def _run_batch(self, batch: List[BoardCandidate]) -> List[BoardPick]:
        picks = []
        with ThreadPoolExecutor(max_workers=min(len(batch), self.max_workers)) as ex:
            futures = {ex.submit(self.evaluate_candidate, c): c for c in batch}
            for fut in as_completed(futures):
                candidate = futures[fut]
                try:
                    picks.append(BoardPick(candidate=candidate, result=fut.result()))
                except Exception as e:
                    logger.error(
                        f"Error evaluating {candidate.player.name} {candidate.stat} {candidate.line}: {e}"
                    )
        return picks

    def evaluate_all(self, candidates: Iterable[BoardCandidate]) -> List[BoardPick]:
        """Evaluate every candidate, unfiltered (failures dropped)."""
        candidates = list(candidates)
        batches = chunk(candidates, self.batch_size)
        logger.info(f"Evaluating {len(candidates)} candidates in {len(batches)} batches")

        picks: List[BoardPick] = []
        for i, batch in enumerate(batches, start=1):
            batch_picks = self._run_batch(batch)
            logger.debug(f"Batch {i}/{len(batches)}: {len(batch_picks)}/{len(batch)} evaluated")
            picks.extend(batch_picks)
        return picks

    def run(self, candidates: Iterable[BoardCandidate]) -> List[BoardPick]:
        """
        Build the board.

        Returns:
            Picks with score >= min_score, sorted by score then average
            factor strength (descending)
        """
        picks = [p for p in self.evaluate_all(candidates) if p.result.score >= self.min_score]
        picks.sort(key=lambda p: (p.result.score, p.average_strength), reverse=True)

        logger.info(f"Board: {len(picks)} picks at score >= {self.min_score}")
        return picks
