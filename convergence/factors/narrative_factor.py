"""
Narrative Pulse Factor

Reduces the detected narrative flags to a single net polarity.
"""

from ..models import ConvergenceFactor, FactorKey, Impact, Severity, Signal
from .base import BaseFactor, FactorInput

SEVERITY_WEIGHTS = {
    Severity.HIGH: 2.0,
    Severity.MEDIUM: 1.0,
    Severity.LOW: 0.5,
}


class NarrativeFactor(BaseFactor):
    """Positive flags push OVER, negative flags push UNDER; neutral flags are context only."""

    key = FactorKey.NARRATIVE
    name = "Narrative Pulse"
    weight = 0.10

    def calculate(self, inp: FactorInput) -> ConvergenceFactor:
        if not inp.narratives:
            return self.neutral("No narratives detected")

        net = 0.0
        positives = negatives = 0
        for flag in inp.narratives:
            severity_weight = SEVERITY_WEIGHTS[flag.severity]
            if flag.impact == Impact.POSITIVE:
                net += severity_weight
                positives += 1
            elif flag.impact == Impact.NEGATIVE:
                net -= severity_weight
                negatives += 1

        if net > 0:
            signal = Signal.OVER
        elif net < 0:
            signal = Signal.UNDER
        else:
            signal = Signal.NEUTRAL

        headlines = ', '.join(f.headline for f in inp.narratives[:3])

        return self.result(
            signal,
            min(1.0, abs(net) / inp.thresholds.narrative_full_strength),
            detail=headlines,
            data_point=f"{positives} positive / {negatives} negative",
        )
