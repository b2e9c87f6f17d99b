"""
Matchup Factor

Opponent defense rank and the defense-adjusted expectation it implies.
"""

from ..models import ConvergenceFactor, FactorKey, Signal
from .base import BaseFactor, FactorInput

# Middle of a 30-team league
LEAGUE_MID_RANK = 15.5


class MatchupFactor(BaseFactor):
    """
    Soft defenses (rank 21+) favor OVER, elite defenses (rank 1-10) favor UNDER.

    Strength grows linearly toward the extremes of the ranking:
    rank 30 -> 1.0, rank 1 -> 1.0. Mid-pack defenses are a weak neutral.
    """

    key = FactorKey.MATCHUP
    name = "Opponent Defense"
    weight = 0.18

    def calculate(self, inp: FactorInput) -> ConvergenceFactor:
        t = inp.thresholds
        ranking = inp.defense_ranking

        if ranking is None or ranking.rank <= 0:
            return self.neutral("No defensive ranking available")

        rank = ranking.rank
        if rank >= t.defense_bottom_rank:
            signal = Signal.OVER
            strength = (rank - 20) / 10
        elif rank <= t.defense_top_rank:
            signal = Signal.UNDER
            strength = (11 - rank) / 10
        else:
            signal = Signal.NEUTRAL
            strength = t.defense_mid_strength

        detail = f"Opponent ranks #{rank} defending {inp.player.position or 'this position'}"
        if inp.season_stats is not None and inp.season_stats.games_played > 0:
            expected = inp.season_stats.average * (1 + (rank - LEAGUE_MID_RANK) / 100)
            detail += f" (adjusted expectation {expected:.1f})"

        return self.result(
            signal,
            strength,
            detail=detail,
            data_point=f"{ranking.average_allowed:.1f} {inp.stat}/game allowed",
        )
