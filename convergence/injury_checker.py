"""
NBA Injury Checker

Fetches the league injury report from ESPN's public API and turns it into
InjuryContext records for a player's teammates and tonight's opponent.

Data Source: https://site.api.espn.com/apis/site/v2/sports/basketball/nba/injuries
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import requests

from .models import Game, InjuryContext, InjuryImpact, InjurySide, InjuryStatus, Player

logger = logging.getLogger(__name__)


def normalize_status(status: str) -> InjuryStatus:
    """
    Map an ESPN status string onto the closed status set.

    Doubtful and suspended read as Out; anything unrecognized as Questionable.
    """
    s = (status or '').lower()
    if 'out' in s or 'suspended' in s or 'doubtful' in s:
        return InjuryStatus.OUT
    if 'questionable' in s:
        return InjuryStatus.QUESTIONABLE
    if 'probable' in s:
        return InjuryStatus.PROBABLE
    if 'day-to-day' in s or 'day to day' in s:
        return InjuryStatus.DAY_TO_DAY
    return InjuryStatus.QUESTIONABLE


def estimate_impact(status: str) -> InjuryImpact:
    """Rough impact of an absence from the raw status string."""
    s = (status or '').lower()
    if 'out' in s or 'suspended' in s or 'doubtful' in s:
        return InjuryImpact.HIGH
    if 'questionable' in s:
        return InjuryImpact.MEDIUM
    if 'probable' in s or 'day-to-day' in s:
        return InjuryImpact.LOW
    return InjuryImpact.MEDIUM


@dataclass
class InjuryReportEntry:
    """One row of the ESPN injury report."""
    player_name: str
    team: str
    status: str
    detail: Optional[str] = None

    def to_context(self, side: InjurySide) -> InjuryContext:
        default = (
            'Teammate injury may affect usage' if side == InjurySide.TEAMMATE
            else 'Opponent injury may affect matchup'
        )
        return InjuryContext(
            player_name=self.player_name,
            status=normalize_status(self.status),
            impact=estimate_impact(self.status),
            team=side,
            relevance=self.detail or default,
        )


def _normalize_name(name: str) -> str:
    """Normalize player name for matching."""
    if not name:
        return ""
    name = name.lower().strip()
    for suffix in [' jr.', ' jr', ' iii', ' ii', ' iv', ' sr.', ' sr']:
        name = name.replace(suffix, '')
    return name


def parse_espn_injuries(data: Dict) -> List[InjuryReportEntry]:
    """
    Parse the ESPN injuries payload.

    Each athlete's own team abbreviation wins over the parent team block,
    which only carries a display name.
    """
    entries = []
    for team_data in data.get('injuries', []):
        fallback_team = team_data.get('displayName', 'Unknown')[:3].upper()

        for injury in team_data.get('injuries', []):
            athlete = injury.get('athlete', {}) or {}
            player_name = athlete.get('displayName', '')
            if not player_name:
                continue

            team_abbrev = (athlete.get('team', {}) or {}).get('abbreviation', fallback_team)
            details = injury.get('details', {}) or {}
            detail = injury.get('shortComment') or details.get('detail') or None

            entries.append(InjuryReportEntry(
                player_name=player_name,
                team=team_abbrev,
                status=injury.get('status', ''),
                detail=detail,
            ))
    return entries


class NBAInjuryChecker:
    """
    Injury checker using ESPN's public API.

    Features:
    - Fetches all NBA injuries from ESPN
    - Caches results for 30 minutes
    - Splits a game's report into teammates and opponents
    """

    ESPN_INJURIES_URL = "https://site.api.espn.com/apis/site/v2/sports/basketball/nba/injuries"

    # Cache TTL in seconds (30 minutes)
    CACHE_TTL = 1800

    REQUEST_TIMEOUT = 15

    def __init__(self):
        self._by_team: Dict[str, List[InjuryReportEntry]] = {}
        self._cache_time: float = 0

    def _is_cache_valid(self) -> bool:
        return self._cache_time > 0 and (time.time() - self._cache_time) < self.CACHE_TTL

    def _fetch_injuries(self) -> bool:
        """
        Fetch injury data from ESPN API.

        Returns:
            True if successful, False otherwise
        """
        try:
            response = requests.get(self.ESPN_INJURIES_URL, timeout=self.REQUEST_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Error fetching ESPN injuries: {e}")
            return False
        except ValueError as e:
            logger.error(f"Error parsing ESPN injuries response: {e}")
            return False

        self.load(parse_espn_injuries(data))
        logger.info(f"Fetched {sum(len(v) for v in self._by_team.values())} injuries from ESPN")
        return True

    def load(self, entries: List[InjuryReportEntry]):
        """Replace the cached report."""
        by_team: Dict[str, List[InjuryReportEntry]] = {}
        for entry in entries:
            by_team.setdefault(entry.team.upper(), []).append(entry)
        self._by_team = by_team
        self._cache_time = time.time()

    def refresh(self) -> bool:
        """Force refresh of injury data from ESPN."""
        logger.info("Refreshing injury data from ESPN...")
        return self._fetch_injuries()

    def _ensure_data(self):
        if not self._is_cache_valid():
            self._fetch_injuries()

    def get_team_injuries(self, team: str) -> List[InjuryReportEntry]:
        """All report rows for a team abbreviation."""
        self._ensure_data()
        return list(self._by_team.get(team.upper(), []))

    def get_injury_context(self, player: Player, game: Game) -> List[InjuryContext]:
        """
        Injury context for a player's game.

        Returns:
            Teammates (excluding the player) followed by opponents
        """
        team = player.team.abbrev
        opponent = game.opponent_for(player).abbrev
        own_name = _normalize_name(player.name)

        teammates = [
            e.to_context(InjurySide.TEAMMATE)
            for e in self.get_team_injuries(team)
            if _normalize_name(e.player_name) != own_name
        ]
        opponents = [
            e.to_context(InjurySide.OPPONENT)
            for e in self.get_team_injuries(opponent)
        ]
        return teammates + opponents


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

_checker: Optional[NBAInjuryChecker] = None


def get_injury_checker() -> NBAInjuryChecker:
    """Get singleton injury checker instance."""
    global _checker
    if _checker is None:
        _checker = NBAInjuryChecker()
    return _checker
