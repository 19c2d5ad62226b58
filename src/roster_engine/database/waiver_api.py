"""
Waiver API - waivers table.
"""

from datetime import datetime
from typing import List, Optional

from ..models.entities import Waiver
from ..models.enums import WaiverStatus
from ..utils.time_utils import to_db_time
from .base_api import TableAPI


class WaiverAPI(TableAPI):

    def insert_waiver(
        self,
        player_id: int,
        from_team_id: int,
        start_time: datetime,
        end_time: datetime
    ) -> int:
        cursor = self._execute(
            """INSERT INTO waivers (player_id, from_team_id, start_time, end_time, status)
               VALUES (?, ?, ?, ?, 'active')""",
            (player_id, from_team_id, to_db_time(start_time), to_db_time(end_time))
        )
        return cursor.lastrowid

    def get_waiver(self, waiver_id: int) -> Optional[Waiver]:
        row = self._query_one("SELECT * FROM waivers WHERE waiver_id = ?", (waiver_id,))
        return Waiver.from_row(row) if row else None

    def find_active_waiver(self, player_id: int) -> Optional[Waiver]:
        row = self._query_one(
            "SELECT * FROM waivers WHERE player_id = ? AND status = 'active'",
            (player_id,)
        )
        return Waiver.from_row(row) if row else None

    def list_waivers(self, status: Optional[WaiverStatus] = None) -> List[Waiver]:
        if status is None:
            rows = self._query_all("SELECT * FROM waivers ORDER BY waiver_id")
        else:
            rows = self._query_all(
                "SELECT * FROM waivers WHERE status = ? ORDER BY end_time, waiver_id",
                (status.value,)
            )
        return [Waiver.from_row(r) for r in rows]

    def expired_active_ids(self, now: datetime) -> List[int]:
        """Active waivers whose clearing window has elapsed (end_time <= now)."""
        rows = self._query_all(
            """SELECT waiver_id FROM waivers
               WHERE status = 'active' AND end_time <= ?
               ORDER BY end_time, waiver_id""",
            (to_db_time(now),)
        )
        return [r["waiver_id"] for r in rows]

    def resolve(
        self,
        waiver_id: int,
        new_status: WaiverStatus,
        resolved_at: datetime,
        claimed_by_team_id: Optional[int] = None
    ) -> bool:
        """
        Close an active waiver as cleared or claimed.

        Returns:
            False if the waiver was no longer active (someone else resolved it)
        """
        cursor = self._execute(
            """UPDATE waivers
               SET status = ?, resolved_at = ?, claimed_by_team_id = ?
               WHERE waiver_id = ? AND status = 'active'""",
            (new_status.value, to_db_time(resolved_at), claimed_by_team_id, waiver_id)
        )
        return cursor.rowcount == 1
