"""
Volatility Factor

How many standard deviations the recent mean sits from the line.
A consistent player well clear of the line is a stronger read than a
boom-or-bust one with the same average.
"""

import math

from ..models import ConvergenceFactor, FactorKey, Signal
from .base import BaseFactor, FactorInput


def consistency_label(cv: float) -> str:
    """Label a coefficient of variation."""
    if cv < 0.2:
        return 'low'
    if cv < 0.4:
        return 'medium'
    return 'high'


class VolatilityFactor(BaseFactor):
    """
    z = (mean - line) / stdev over the last N games (population stdev).

    |z| >= 0.5 signals toward the sign of z; strength saturates at |z| = 1.5.
    """

    key = FactorKey.VOLATILITY
    name = "Consistency"
    weight = 0.14

    def calculate(self, inp: FactorInput) -> ConvergenceFactor:
        t = inp.thresholds
        values = inp.recent_values(t.volatility_lookback)

        if len(values) < t.volatility_min_games:
            return self.neutral("Insufficient data for volatility")

        mean = sum(values) / len(values)
        stdev = math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))
        gap = mean - inp.line

        if stdev == 0:
            # Every game identical: certain unless sitting exactly on the line
            z = 0.0 if gap == 0 else math.copysign(math.inf, gap)
            strength = 0.0 if gap == 0 else 1.0
        else:
            z = gap / stdev
            strength = min(1.0, abs(z) / t.volatility_full_z)

        if abs(z) >= t.volatility_min_z:
            signal = Signal.OVER if z > 0 else Signal.UNDER
        else:
            signal = Signal.NEUTRAL

        cv = stdev / mean if mean > 0 else 0.0
        z_text = f"{z:+.2f}" if math.isfinite(z) else ('+inf' if z > 0 else '-inf')

        return self.result(
            signal,
            strength,
            detail=f"L{len(values)} mean {mean:.1f}, stdev {stdev:.1f} ({consistency_label(cv)} volatility)",
            data_point=f"z {z_text}",
        )
