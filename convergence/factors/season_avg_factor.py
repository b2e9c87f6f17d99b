"""
Season Average Factor

Compares the season average to tonight's line.
"""

from ..models import ConvergenceFactor, FactorKey
from .base import BaseFactor, FactorInput


class SeasonAverageFactor(BaseFactor):
    """Season average vs line; fires when the gap clears 15% of the line (min 1.0)."""

    key = FactorKey.SEASON_AVG
    name = "Season Average"
    weight = 0.20

    def calculate(self, inp: FactorInput) -> ConvergenceFactor:
        t = inp.thresholds
        stats = inp.season_stats

        if stats is None or stats.games_played <= 0:
            return self.neutral("No season data")

        gap = stats.average - inp.line
        threshold = max(t.season_gap_min, inp.line * t.season_gap_pct)

        return self.result(
            self.gap_signal(gap, threshold),
            min(1.0, abs(gap) / (2.5 * threshold)),
            detail=f"Season avg: {stats.average:.1f} vs line {inp.line:g} ({stats.games_played} games)",
            data_point=f"{gap:+.1f} {'above' if gap > 0 else 'below'} line",
        )
