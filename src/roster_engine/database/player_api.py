"""
Player API - players table and status history.
"""

from datetime import datetime
from typing import List, Optional

from ..models.entities import Player, StatusChange
from ..models.enums import PlayerStatus
from ..utils.time_utils import to_db_time
from .base_api import TableAPI


class PlayerAPI(TableAPI):
    """
    Player rows are written only through the status state machine and the
    exemption manager; this class just persists what they decide.
    """

    def insert_player(self, external_id: str, username: str, created_at: datetime) -> int:
        cursor = self._execute(
            """INSERT INTO players (external_id, username, status, created_at)
               VALUES (?, ?, 'free_agent', ?)""",
            (external_id, username, to_db_time(created_at))
        )
        return cursor.lastrowid

    def get_player(self, player_id: int) -> Optional[Player]:
        row = self._query_one("SELECT * FROM players WHERE player_id = ?", (player_id,))
        return Player.from_row(row) if row else None

    def get_player_by_external_id(self, external_id: str) -> Optional[Player]:
        row = self._query_one("SELECT * FROM players WHERE external_id = ?", (external_id,))
        return Player.from_row(row) if row else None

    def update_affiliation(
        self,
        player_id: int,
        status: PlayerStatus,
        team_id: Optional[int],
        is_exempt: bool
    ) -> None:
        """Write status, team and exemption in one statement."""
        self._execute(
            """UPDATE players
               SET status = ?, current_team_id = ?, is_exempt = ?
               WHERE player_id = ?""",
            (status.value, team_id, int(is_exempt), player_id)
        )

    def set_exempt(self, player_id: int, is_exempt: bool) -> None:
        self._execute(
            "UPDATE players SET is_exempt = ? WHERE player_id = ?",
            (int(is_exempt), player_id)
        )

    def exempt_players(self, team_id: int) -> List[Player]:
        rows = self._query_all(
            """SELECT * FROM players
               WHERE current_team_id = ? AND is_exempt = 1
               ORDER BY player_id""",
            (team_id,)
        )
        return [Player.from_row(r) for r in rows]

    # =========================================================================
    # Status history
    # =========================================================================

    def insert_status_change(
        self,
        player_id: int,
        from_status: PlayerStatus,
        to_status: PlayerStatus,
        team_id: Optional[int],
        reason: str,
        changed_at: datetime
    ) -> int:
        cursor = self._execute(
            """INSERT INTO player_status_history
               (player_id, from_status, to_status, team_id, reason, changed_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (player_id, from_status.value, to_status.value, team_id, reason, to_db_time(changed_at))
        )
        return cursor.lastrowid

    def status_history(self, player_id: int) -> List[StatusChange]:
        rows = self._query_all(
            """SELECT * FROM player_status_history
               WHERE player_id = ?
               ORDER BY history_id""",
            (player_id,)
        )
        return [StatusChange.from_row(r) for r in rows]
