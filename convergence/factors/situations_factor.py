"""
Similar Situations Factor

Hit rate in historical games that resemble tonight.
"""

from ..models import ConvergenceFactor, FactorKey, Signal
from .base import BaseFactor, FactorInput


class SimilarSituationsFactor(BaseFactor):

    key = FactorKey.SIMILAR_SITUATIONS
    name = "Similar Situations"
    weight = 0.09

    def calculate(self, inp: FactorInput) -> ConvergenceFactor:
        t = inp.thresholds
        similar = inp.similar_situations

        if similar is None:
            return self.neutral("Not enough comparable games")

        if similar.hit_rate > t.similar_over_rate:
            signal = Signal.OVER
        elif similar.hit_rate < t.similar_under_rate:
            signal = Signal.UNDER
        else:
            signal = Signal.NEUTRAL

        return self.result(
            signal,
            abs(similar.hit_rate - 0.5) * 2,
            detail=f"{similar.description}: {similar.avg_value:.1f} avg ({similar.avg_margin:+.1f} vs line)",
            data_point=f"{similar.hit_rate * 100:.0f}% hit rate in {similar.matching_games} games",
        )
