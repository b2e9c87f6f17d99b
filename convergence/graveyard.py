"""
Bet Graveyard

Grades a settled bet and, when it lost, files it in the graveyard with an
autopsy.

Usage:
    from convergence.graveyard import GraveyardService

    service = GraveyardService()
    entry = service.record('Jayson Tatum', 'points', 27.5, 'over', 26, 6)
"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from .autopsy import AutopsyContext, analyze_loss_patterns, bet_margin, generate_autopsy
from .models import BetDirection, BetResult, GraveyardEntry, LossPatterns

logger = logging.getLogger(__name__)


def grade_bet(direction: BetDirection, line: float, actual: Optional[float]) -> BetResult:
    """
    Grade a single prop bet.

    No actual value (player did not play) is VOID; landing on the line is PUSH.
    """
    if actual is None:
        return BetResult.VOID
    if actual == line:
        return BetResult.PUSH
    if BetDirection(direction) == BetDirection.OVER:
        return BetResult.WIN if actual > line else BetResult.LOSS
    return BetResult.WIN if actual < line else BetResult.LOSS


class GraveyardService:
    """
    Files losing bets with their autopsy.

    Only LOSS results are recorded; wins, pushes and voids are ignored.
    """

    def __init__(self, db_manager=None):
        """
        Args:
            db_manager: GraveyardDBManager instance (lazy loaded if not provided)
        """
        self._db = db_manager

    @property
    def db(self):
        """Lazy load database manager."""
        if self._db is None:
            from .db_manager import get_db_manager
            self._db = get_db_manager()
        return self._db

    def record(
        self,
        player_name: str,
        stat: str,
        line: float,
        direction: BetDirection,
        actual_value: Optional[float],
        convergence_at_time_of_bet: int,
        context: Optional[AutopsyContext] = None,
        game_date: Optional[date] = None,
        convergence_snapshot: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
        persist: bool = True,
    ) -> Optional[GraveyardEntry]:
        """
        Grade a bet and file it if it lost.

        Args:
            player_name: Player the bet was on
            stat: Stat key
            line: Prop line
            direction: over / under
            actual_value: Realized value (None = did not play)
            convergence_at_time_of_bet: Score when the bet was placed
            context: Optional in-game context for the autopsy
            game_date: Date of the game
            convergence_snapshot: Opaque ConvergenceResult dict stored as-is
            user_id: Owner of the bet
            persist: Save through the db manager

        Returns:
            GraveyardEntry for a loss, None otherwise
        """
        direction = BetDirection(direction)
        result = grade_bet(direction, line, actual_value)

        if result != BetResult.LOSS:
            logger.debug(f"{player_name} {stat} {direction.value} {line}: {result.value}, not filed")
            return None

        autopsy = generate_autopsy(
            player_name, stat, line, direction, actual_value,
            convergence_at_time_of_bet, context=context,
        )

        entry = GraveyardEntry(
            id=str(uuid.uuid4()),
            user_id=user_id,
            player_name=player_name,
            stat=stat,
            line=line,
            direction=direction,
            actual_value=actual_value,
            margin=bet_margin(direction, line, actual_value),
            convergence_at_time_of_bet=convergence_at_time_of_bet,
            game_date=game_date,
            autopsy=autopsy,
            convergence_snapshot=convergence_snapshot,
        )

        if persist:
            self.db.save_entry(entry)

        logger.info(
            f"Filed {player_name} {stat} {direction.value} {line} "
            f"(actual {actual_value}, grade {autopsy.process_grade.value})"
        )
        return entry

    def loss_patterns(self, user_id: Optional[str] = None, limit: int = 100) -> LossPatterns:
        """Aggregate patterns across stored entries."""
        entries: List[GraveyardEntry] = self.db.get_entries(user_id=user_id, limit=limit)
        return analyze_loss_patterns(entries)
