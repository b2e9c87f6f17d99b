"""
NBA Data Provider

Wraps nba_api with caching and turns its frames into the records the
convergence engine consumes:
- Player game logs (most recent first, with rest / back-to-back enrichment)
- Season aggregates with career totals (milestone watch)
- Team defense rankings by stat allowed (matchup, similar situations)
- Player / team / schedule lookups

Every fetch failure is logged and degrades to an empty value; the engine
turns empty inputs into neutral factors.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd
from nba_api.stats.endpoints import (
    commonplayerinfo,
    leaguedashteamstats,
    playercareerstats,
    playergamelog,
    scoreboardv2,
)
from nba_api.stats.static import players, teams

from .cache import Cache, TTLCache, make_key
from .config import get_settings
from .models import (
    COMBO_STATS,
    DefenseRanking,
    Game,
    GameLog,
    GameLogEntry,
    GameResult,
    Player,
    SeasonStats,
    Sport,
    TeamRef,
)

logger = logging.getLogger(__name__)


# =============================================================================
# STAT COLUMN MAPPINGS
# =============================================================================

# Stat key -> PlayerGameLog / PlayerCareerStats column
STAT_COLUMNS = {
    'points': 'PTS',
    'rebounds': 'REB',
    'assists': 'AST',
    'threes': 'FG3M',
    'steals': 'STL',
    'blocks': 'BLK',
    'turnovers': 'TOV',
    'fgm': 'FGM',
    'ftm': 'FTM',
    'minutes': 'MIN',
}

# Stat key -> LeagueDashTeamStats (Opponent measure) column
OPPONENT_COLUMNS = {
    stat: f"OPP_{col}" for stat, col in STAT_COLUMNS.items() if stat != 'minutes'
}

GAME_DATE_FORMAT = '%b %d, %Y'


def _columns_for(stat: str, mapping: Dict[str, str]) -> List[str]:
    if stat in mapping:
        return [mapping[stat]]
    return [mapping[c] for c in COMBO_STATS.get(stat, ()) if c in mapping]


def parse_matchup(matchup: str):
    """
    Parse a MATCHUP cell.

    'LAL vs. BOS' -> ('BOS', True), 'LAL @ BOS' -> ('BOS', False)
    """
    if ' vs. ' in matchup:
        return matchup.split(' vs. ', 1)[1].strip(), True
    if ' @ ' in matchup:
        return matchup.split(' @ ', 1)[1].strip(), False
    return matchup.strip(), False


def _parse_game_date(value) -> datetime:
    try:
        return datetime.strptime(str(value), GAME_DATE_FORMAT)
    except ValueError:
        return pd.to_datetime(value).to_pydatetime()


def game_log_from_frame(df: pd.DataFrame, def_ranks: Optional[Dict[str, int]] = None) -> GameLog:
    """
    Build a GameLog from a PlayerGameLog frame.

    Args:
        df: PlayerGameLog data frame (any row order)
        def_ranks: Team abbrev -> current defense rank, for opponent_def_rank

    Returns:
        GameLog, most recent first, with rest days and back-to-back filled in
    """
    if df is None or df.empty:
        return GameLog()

    def_ranks = def_ranks or {}
    rows = []
    for _, row in df.iterrows():
        opponent, is_home = parse_matchup(str(row.get('MATCHUP', '')))

        stats = {}
        for stat, col in STAT_COLUMNS.items():
            if col in row and pd.notna(row[col]):
                stats[stat] = float(row[col])

        wl = row.get('WL')
        result = GameResult(wl) if wl in ('W', 'L') else None

        rows.append({
            'date': _parse_game_date(row['GAME_DATE']).date(),
            'opponent': opponent,
            'is_home': is_home,
            'stats': stats,
            'result': result,
            'opponent_def_rank': def_ranks.get(opponent, 0),
            'minutes_played': stats.get('minutes'),
        })

    rows.sort(key=lambda r: r['date'], reverse=True)

    entries = []
    for i, r in enumerate(rows):
        rest_days, is_b2b = 1, False
        if i + 1 < len(rows):
            gap = (r['date'] - rows[i + 1]['date']).days
            rest_days = max(0, gap - 1)
            is_b2b = gap <= 1
        entries.append(GameLogEntry(rest_days=rest_days, is_back_to_back=is_b2b, **r))

    return GameLog(entries)


def rank_defenses(df: pd.DataFrame, stat: str, abbrev_by_id: Dict[int, str]) -> Dict[str, DefenseRanking]:
    """
    Rank teams by opponent stat allowed per game (1 = allows the least).

    Args:
        df: LeagueDashTeamStats frame, Opponent measure, PerGame
        stat: Stat key (combo stats are summed)
        abbrev_by_id: TEAM_ID -> abbreviation

    Returns:
        Team abbrev -> DefenseRanking
    """
    columns = _columns_for(stat, OPPONENT_COLUMNS)
    if df is None or df.empty or not columns or not all(c in df.columns for c in columns):
        return {}

    allowed = df[columns].sum(axis=1)
    ranked = df.assign(_ALLOWED=allowed).sort_values('_ALLOWED', ascending=True)

    rankings = {}
    for rank, (_, row) in enumerate(ranked.iterrows(), start=1):
        abbrev = abbrev_by_id.get(int(row['TEAM_ID']))
        if not abbrev:
            continue
        rankings[abbrev] = DefenseRanking(
            team_abbrev=abbrev,
            rank=rank,
            average_allowed=float(row['_ALLOWED']),
            stat=stat,
        )
    return rankings


class RateLimiter:
    """
    Rate limiter for nba_api calls.

    Shared across the fetch threads; the lock is held through the sleep so
    calls go out one at a time, min_interval apart.
    """

    def __init__(self, min_interval: float = 0.6):
        self.min_interval = min_interval
        self.last_call = 0
        self._lock = threading.Lock()

    def wait(self):
        with self._lock:
            elapsed = time.time() - self.last_call
            if elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)
            self.last_call = time.time()


class NBADataProvider:
    """
    Historical data provider for the convergence engine.

    Provides:
    - Player lookups and game logs
    - Season aggregates with career totals
    - Defense rankings per stat
    - Today's games
    """

    # Cache TTLs (seconds); defaults come from settings
    CACHE_TTL = {
        'player_gamelog': 3600,      # 1 hour
        'career': 86400,             # 24 hours
        'team_stats': 6 * 3600,      # 6 hours
        'player_info': 86400,        # 24 hours
        'schedule': 3600,            # 1 hour
    }

    def __init__(self, season: Optional[str] = None, cache: Optional[Cache] = None):
        settings = get_settings()
        self.season = season or settings.nba_season
        self.rate_limiter = RateLimiter(min_interval=0.6)
        self.cache = cache if cache is not None else TTLCache(default_ttl=settings.cache_ttl_seconds)

        # Static lookups
        self._players_by_name: Dict[str, Dict] = {}
        self._teams_by_abbrev: Dict[str, Dict] = {}
        self._teams_by_id: Dict[int, Dict] = {}

        self._init_static_data()

    def _init_static_data(self):
        """Initialize static player and team lookups."""
        for player in players.get_active_players():
            self._players_by_name[player['full_name'].lower()] = player

        for team in teams.get_teams():
            self._teams_by_abbrev[team['abbreviation']] = team
            self._teams_by_id[team['id']] = team

        logger.info(f"Loaded {len(self._players_by_name)} players, {len(self._teams_by_abbrev)} teams")

    def _get_cached(self, key: str):
        return self.cache.get(key)

    def _set_cached(self, key: str, value, ttl_type: str):
        self.cache.set(key, value, ttl=self.CACHE_TTL.get(ttl_type))

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def team_ref(self, abbrev: str) -> TeamRef:
        team = self._teams_by_abbrev.get(abbrev.upper())
        if not team:
            return TeamRef(id='', abbrev=abbrev.upper())
        return TeamRef(id=str(team['id']), abbrev=team['abbreviation'], name=team['full_name'])

    def team_ref_by_id(self, team_id: int) -> TeamRef:
        team = self._teams_by_id.get(int(team_id))
        if not team:
            return TeamRef(id=str(team_id), abbrev='UNK')
        return TeamRef(id=str(team['id']), abbrev=team['abbreviation'], name=team['full_name'])

    def find_player(self, name: str) -> Optional[Player]:
        """
        Find an active player by full name (case-insensitive).

        Team and position come from CommonPlayerInfo.
        """
        static = self._players_by_name.get(name.lower())
        if not static:
            logger.warning(f"Player not found: {name}")
            return None

        player_id = static['id']
        cache_key = make_key('player_info', player_id)
        info = self._get_cached(cache_key)

        if info is None:
            self.rate_limiter.wait()
            try:
                df = commonplayerinfo.CommonPlayerInfo(player_id=player_id).get_data_frames()[0]
                info = df.iloc[0].to_dict() if not df.empty else {}
                self._set_cached(cache_key, info, 'player_info')
            except Exception as e:
                logger.error(f"Error fetching player info for {name}: {e}")
                info = {}

        team = (
            self.team_ref_by_id(info['TEAM_ID']) if info.get('TEAM_ID')
            else TeamRef(id='', abbrev=str(info.get('TEAM_ABBREVIATION', 'UNK')))
        )

        return Player(
            id=str(player_id),
            name=static['full_name'],
            sport=Sport.NBA,
            team=team,
            position=str(info.get('POSITION', '')),
        )

    # =========================================================================
    # GAME LOGS
    # =========================================================================

    def get_player_gamelog_frame(self, player_id, season: Optional[str] = None) -> pd.DataFrame:
        """Raw PlayerGameLog frame (cached)."""
        season = season or self.season
        cache_key = make_key('gamelog', player_id, season)

        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        self.rate_limiter.wait()
        try:
            gamelog = playergamelog.PlayerGameLog(
                player_id=player_id,
                season=season,
                season_type_all_star='Regular Season'
            )
            df = gamelog.get_data_frames()[0]
            self._set_cached(cache_key, df, 'player_gamelog')
            return df
        except Exception as e:
            logger.error(f"Error fetching gamelog for {player_id}: {e}")
            return pd.DataFrame()

    def get_player_game_log(self, player_id, season: Optional[str] = None, stat: str = 'points') -> GameLog:
        """
        Get a player's game log, most recent first.

        Opponent defense ranks are today's ranks for `stat`.
        """
        df = self.get_player_gamelog_frame(player_id, season)
        if df.empty:
            return GameLog()

        def_ranks = {abbrev: r.rank for abbrev, r in self.get_defense_rankings(stat).items()}
        return game_log_from_frame(df, def_ranks)

    # =========================================================================
    # SEASON STATS
    # =========================================================================

    def get_career_total(self, player_id, stat: str) -> Optional[float]:
        """Career regular-season total for `stat`, None when unavailable."""
        columns = _columns_for(stat, STAT_COLUMNS)
        if not columns:
            return None

        cache_key = make_key('career', player_id)
        df = self._get_cached(cache_key)

        if df is None:
            self.rate_limiter.wait()
            try:
                career = playercareerstats.PlayerCareerStats(player_id=player_id)
                # Second result set is CareerTotalsRegularSeason
                df = career.get_data_frames()[1]
                self._set_cached(cache_key, df, 'career')
            except Exception as e:
                logger.error(f"Error fetching career stats for {player_id}: {e}")
                return None

        if df.empty or not all(c in df.columns for c in columns):
            return None

        return float(df[columns].iloc[0].sum())

    def get_season_stats(self, player_id, stat: str, game_log: Optional[GameLog] = None) -> SeasonStats:
        """Season aggregates from the game log, with the career total for milestones."""
        if game_log is None:
            game_log = self.get_player_game_log(player_id, stat=stat)
        return SeasonStats.from_game_log(stat, game_log, career_total=self.get_career_total(player_id, stat))

    # =========================================================================
    # DEFENSE RANKINGS
    # =========================================================================

    def get_opponent_stats(self) -> pd.DataFrame:
        """LeagueDashTeamStats, Opponent measure, per game (cached)."""
        cache_key = make_key('opponent_stats', self.season)

        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        self.rate_limiter.wait()
        try:
            stats = leaguedashteamstats.LeagueDashTeamStats(
                season=self.season,
                per_mode_detailed='PerGame',
                measure_type_detailed_defense='Opponent'
            )
            df = stats.get_data_frames()[0]
            self._set_cached(cache_key, df, 'team_stats')
            return df
        except Exception as e:
            logger.error(f"Error fetching opponent stats: {e}")
            return pd.DataFrame()

    def get_defense_rankings(self, stat: str) -> Dict[str, DefenseRanking]:
        abbrev_by_id = {tid: t['abbreviation'] for tid, t in self._teams_by_id.items()}
        return rank_defenses(self.get_opponent_stats(), stat, abbrev_by_id)

    def get_defense_ranking(self, team_abbrev: str, position: str, stat: str) -> Optional[DefenseRanking]:
        """
        Defense ranking of `team_abbrev` for `stat`.

        League data is team-level; `position` is carried through unresolved.
        """
        ranking = self.get_defense_rankings(stat).get(team_abbrev.upper())
        if ranking is None:
            return None
        return DefenseRanking(
            team_abbrev=ranking.team_abbrev,
            rank=ranking.rank,
            average_allowed=ranking.average_allowed,
            position=position,
            stat=stat,
        )

    # =========================================================================
    # TODAY'S GAMES
    # =========================================================================

    def get_todays_games(self, date: str = None) -> List[Game]:
        """
        Get games for a specific date.

        Args:
            date: Date string (YYYY-MM-DD), defaults to today
        """
        if date is None:
            date = datetime.now().strftime('%Y-%m-%d')

        cache_key = make_key('games', date)
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        self.rate_limiter.wait()
        try:
            scoreboard = scoreboardv2.ScoreboardV2(game_date=date)
            df = scoreboard.get_data_frames()[0]
        except Exception as e:
            logger.error(f"Error fetching games for {date}: {e}")
            return []

        game_date = datetime.strptime(date, '%Y-%m-%d').date()
        games = [
            Game(
                id=str(row['GAME_ID']),
                sport=Sport.NBA,
                date=game_date,
                home_team=self.team_ref_by_id(row['HOME_TEAM_ID']),
                away_team=self.team_ref_by_id(row['VISITOR_TEAM_ID']),
            )
            for _, row in df.iterrows()
        ]

        self._set_cached(cache_key, games, 'schedule')
        return games

    def find_game_for_team(self, team_abbrev: str, date: str = None) -> Optional[Game]:
        for game in self.get_todays_games(date):
            if team_abbrev in (game.home_team.abbrev, game.away_team.abbrev):
                return game
        return None


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

_provider: Optional[NBADataProvider] = None


def get_data_provider() -> NBADataProvider:
    """Get singleton data provider instance."""
    global _provider
    if _provider is None:
        _provider = NBADataProvider()
    return _provider
