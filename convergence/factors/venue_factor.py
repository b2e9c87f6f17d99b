"""
Venue Factor

Home/away split against tonight's line.
"""

from ..models import ConvergenceFactor, FactorKey
from .base import BaseFactor, FactorInput


class VenueFactor(BaseFactor):

    key = FactorKey.VENUE
    name = "Home/Away Split"
    weight = 0.03

    def calculate(self, inp: FactorInput) -> ConvergenceFactor:
        t = inp.thresholds
        season_avg = inp.season_stats.average if inp.season_stats else 0.0

        home = [g.value(inp.stat) for g in inp.game_log if g.is_home]
        away = [g.value(inp.stat) for g in inp.game_log if not g.is_home]
        home_avg = sum(home) / len(home) if home else season_avg
        away_avg = sum(away) / len(away) if away else season_avg

        if not inp.game_log and season_avg <= 0:
            return self.neutral("No venue data")

        venue_avg = home_avg if inp.is_home else away_avg
        venue = 'Home' if inp.is_home else 'Away'
        gap = venue_avg - inp.line
        threshold = max(t.venue_gap_min, inp.line * t.venue_gap_pct)

        return self.result(
            self.gap_signal(gap, threshold),
            min(1.0, abs(gap) / (2.5 * threshold)),
            detail=f"{venue} avg: {venue_avg:.1f} (H: {home_avg:.1f} / A: {away_avg:.1f})",
            data_point=f"{venue} {venue_avg:.1f} avg",
        )
