"""
Team API - teams table, cached cap column and roster reads.
"""

from datetime import datetime
from typing import List, Optional

from ..models.entities import Team
from ..models.views import RosterEntry
from ..utils.time_utils import to_db_time
from .base_api import TableAPI


class TeamAPI(TableAPI):
    """
    Handles:
    - Creating teams and changing cap limits
    - Reading and adjusting the cached available_cap
    - Salary aggregates that define the cap ledger
    - Roster listing
    """

    def insert_team(
        self,
        name: str,
        cap_ceiling: int,
        cap_floor: int,
        created_at: datetime
    ) -> int:
        """
        Insert a team with an empty roster (available cap = ceiling).

        Returns:
            team_id of the new team
        """
        cursor = self._execute(
            """INSERT INTO teams (name, cap_ceiling, cap_floor, available_cap, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (name, cap_ceiling, cap_floor, cap_ceiling, to_db_time(created_at))
        )
        return cursor.lastrowid

    def get_team(self, team_id: int) -> Optional[Team]:
        row = self._query_one("SELECT * FROM teams WHERE team_id = ?", (team_id,))
        return Team.from_row(row) if row else None

    def get_team_by_name(self, name: str) -> Optional[Team]:
        row = self._query_one("SELECT * FROM teams WHERE name = ?", (name,))
        return Team.from_row(row) if row else None

    def list_teams(self) -> List[Team]:
        return [Team.from_row(r) for r in self._query_all("SELECT * FROM teams ORDER BY team_id")]

    def update_cap_limits(self, team_id: int, cap_ceiling: int, cap_floor: int) -> None:
        self._execute(
            "UPDATE teams SET cap_ceiling = ?, cap_floor = ? WHERE team_id = ?",
            (cap_ceiling, cap_floor, team_id)
        )

    # =========================================================================
    # Cached ledger column
    # =========================================================================

    def adjust_available_cap(self, team_id: int, delta: int) -> None:
        """Incremental cache update: positive delta frees cap space."""
        self._execute(
            "UPDATE teams SET available_cap = available_cap + ? WHERE team_id = ?",
            (delta, team_id)
        )

    def set_available_cap(self, team_id: int, value: int) -> None:
        self._execute(
            "UPDATE teams SET available_cap = ? WHERE team_id = ?",
            (value, team_id)
        )

    # =========================================================================
    # Salary aggregates
    # =========================================================================

    def counted_salary(self, team_id: int) -> int:
        """Sum of active salaries whose player is not exempt."""
        return self._scalar(
            """SELECT SUM(c.salary)
               FROM contracts c
               JOIN players p ON p.player_id = c.player_id
               WHERE c.team_id = ? AND c.status = 'active' AND p.is_exempt = 0""",
            (team_id,)
        )

    def total_active_salary(self, team_id: int) -> int:
        """Sum of all active salaries, exempt players included."""
        return self._scalar(
            "SELECT SUM(salary) FROM contracts WHERE team_id = ? AND status = 'active'",
            (team_id,)
        )

    def count_exempt_players(self, team_id: int) -> int:
        return self._scalar(
            "SELECT COUNT(*) FROM players WHERE current_team_id = ? AND is_exempt = 1",
            (team_id,)
        )

    # =========================================================================
    # Roster
    # =========================================================================

    def team_roster(self, team_id: int) -> List[RosterEntry]:
        """
        Signed players of a team with their active salary and exempt flag.

        Returns:
            Roster entries ordered by salary descending
        """
        rows = self._query_all(
            """SELECT p.player_id, p.external_id, p.username, p.is_exempt,
                      c.contract_id, COALESCE(c.salary, 0) AS salary
               FROM players p
               LEFT JOIN contracts c
                   ON c.player_id = p.player_id AND c.status = 'active'
               WHERE p.current_team_id = ? AND p.status = 'signed'
               ORDER BY salary DESC, p.player_id""",
            (team_id,)
        )
        return [
            RosterEntry(
                player_id=r["player_id"],
                external_id=r["external_id"],
                username=r["username"],
                is_exempt=bool(r["is_exempt"]),
                salary=r["salary"],
                contract_id=r["contract_id"],
            )
            for r in rows
        ]
