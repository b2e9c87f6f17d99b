"""
Recent Trend Factor

How often has the player cleared tonight's line lately, and by how much?
"""

from ..models import ConvergenceFactor, FactorKey, Signal
from .base import BaseFactor, FactorInput


class RecentTrendFactor(BaseFactor):
    """
    Hit rate over the last N games, backed by the average gap to the line.

    Calculation:
    - Hit rate = share of recent games strictly above the line
    - > 55% favors OVER, < 45% favors UNDER
    - Strength blends hit-rate edge (60%) with average-vs-line gap (40%)
    """

    key = FactorKey.RECENT_TREND
    name = "Recent Trend"
    weight = 0.26

    def calculate(self, inp: FactorInput) -> ConvergenceFactor:
        t = inp.thresholds
        values = inp.recent_values(t.trend_lookback)

        if len(values) < t.trend_min_games:
            return self.neutral("Insufficient recent data")

        hits = sum(1 for v in values if v > inp.line)
        hit_rate = hits / len(values)
        avg = sum(values) / len(values)

        if hit_rate > t.trend_over_rate:
            signal = Signal.OVER
        elif hit_rate < t.trend_under_rate:
            signal = Signal.UNDER
        else:
            signal = Signal.NEUTRAL

        rate_edge = abs(hit_rate - 0.5) * 2
        gap_edge = min(1.0, abs(avg - inp.line) / max(1.0, 0.3 * inp.line))
        strength = min(1.0, 0.6 * rate_edge + 0.4 * gap_edge)

        return self.result(
            signal,
            strength,
            detail=f"L{len(values)} avg: {avg:.1f} vs line {inp.line:g} ({hit_rate * 100:.0f}% hit rate)",
            data_point=f"{hits}/{len(values)} over",
        )
