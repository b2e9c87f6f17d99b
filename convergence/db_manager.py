"""
Graveyard Database Manager

Handles Supabase persistence for missed-bet autopsies.

Tables:
    - graveyard_entries: one row per analyzed miss; the autopsy and the
      convergence snapshot are stored as JSON columns

The convergence snapshot is opaque here: it is written and read back as
plain JSON without interpretation.
"""

import logging
import os
from datetime import date
from typing import Dict, List, Optional

from .config import load_env
from .models import (
    BetAutopsy,
    BetDirection,
    CauseSeverity,
    GraveyardEntry,
    ProcessGrade,
    RootCause,
    RootCauseType,
)

logger = logging.getLogger(__name__)

TABLE = "graveyard_entries"

_supabase_client = None


def _get_supabase_client():
    """Lazy-load Supabase client from SUPABASE_URL / SUPABASE_KEY."""
    global _supabase_client
    if _supabase_client is not None:
        return _supabase_client

    from supabase import create_client

    load_env()

    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_KEY")

    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY required in environment")

    _supabase_client = create_client(url, key)
    return _supabase_client


# =============================================================================
# ROW MAPPING
# =============================================================================

def autopsy_from_dict(data: Dict) -> BetAutopsy:
    return BetAutopsy(
        process_grade=ProcessGrade(data['process_grade']),
        root_causes=tuple(
            RootCause(
                type=RootCauseType(c['type']),
                label=c['label'],
                detail=c['detail'],
                severity=CauseSeverity(c['severity']),
                was_knowable=bool(c['was_knowable']),
            )
            for c in data.get('root_causes', [])
        ),
        unluck_score=int(data['unluck_score']),
        was_unlucky=bool(data['was_unlucky']),
        would_bet_again=bool(data['would_bet_again']),
        process_assessment=data.get('process_assessment', ''),
        lessons_learned=tuple(data.get('lessons_learned', [])),
    )


def entry_to_row(entry: GraveyardEntry) -> Dict:
    return entry.to_dict()


def entry_from_row(row: Dict) -> GraveyardEntry:
    game_date = row.get('game_date')
    return GraveyardEntry(
        id=row['id'],
        user_id=row.get('user_id'),
        player_name=row['player_name'],
        stat=row['stat'],
        line=float(row['line']),
        direction=BetDirection(row['direction']),
        actual_value=float(row['actual_value']),
        margin=float(row['margin']),
        convergence_at_time_of_bet=int(row['convergence_at_time_of_bet']),
        game_date=date.fromisoformat(game_date[:10]) if game_date else None,
        autopsy=autopsy_from_dict(row['autopsy']),
        convergence_snapshot=row.get('convergence_snapshot'),
    )


class GraveyardDBManager:
    """
    Manages the graveyard_entries table.

    Uses Supabase Python client for simplicity.
    """

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None, client=None):
        """
        Initialize database manager.

        Args:
            url: Optional Supabase URL (defaults to SUPABASE_URL env var)
            key: Optional Supabase key (defaults to SUPABASE_KEY env var)
            client: Pre-built client (takes precedence)
        """
        if client is not None:
            self.client = client
        elif url and key:
            from supabase import create_client
            self.client = create_client(url, key)
        else:
            self.client = _get_supabase_client()

        logger.info("[Graveyard DB] Connected to Supabase")

    def save_entry(self, entry: GraveyardEntry) -> Dict:
        """
        Insert a graveyard entry.

        Re-analyzing the same bet inserts a new row; entries are never updated.

        Returns:
            Saved row
        """
        row = entry_to_row(entry)
        result = self.client.table(TABLE).insert(row).execute()

        logger.info(
            f"[Graveyard DB] Saved {entry.player_name} {entry.stat} {entry.direction.value} "
            f"{entry.line} (grade {entry.autopsy.process_grade.value})"
        )
        return result.data[0] if result.data else row

    def get_entries(self, user_id: Optional[str] = None, limit: int = 100) -> List[GraveyardEntry]:
        """
        Most recent entries first.

        Args:
            user_id: Optional filter by user
            limit: Max rows
        """
        query = self.client.table(TABLE).select("*")
        if user_id:
            query = query.eq("user_id", user_id)

        rows = query.order("created_at", desc=True).limit(limit).execute().data or []

        entries = []
        for row in rows:
            try:
                entries.append(entry_from_row(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"[Graveyard DB] Skipping malformed row {row.get('id')}: {e}")
        return entries

    def test_connection(self) -> bool:
        """Test database connection."""
        try:
            self.client.table(TABLE).select("id").limit(1).execute()
            return True
        except Exception as e:
            logger.error(f"[Graveyard DB] Connection test failed: {e}")
            return False


# Singleton instance
_db_manager: Optional[GraveyardDBManager] = None


def get_db_manager() -> GraveyardDBManager:
    """Get singleton database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = GraveyardDBManager()
    return _db_manager
