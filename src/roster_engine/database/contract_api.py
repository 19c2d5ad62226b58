"""
Contract API - contracts table.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from ..models.entities import Contract
from ..models.enums import ContractStatus
from ..utils.time_utils import to_db_time
from .base_api import TableAPI


class ContractAPI(TableAPI):
    """
    Handles:
    - Inserting offers and directly-activated contracts (waiver claims)
    - Status updates with compare-and-set on the expected status
    - Re-pointing an active contract to a new team (trades)
    - Open/active contract lookups per player
    """

    def insert_contract(
        self,
        player_id: int,
        team_id: int,
        salary: int,
        term_days: int,
        start_date: datetime,
        end_date: datetime,
        status: ContractStatus,
        created_at: datetime,
        offer_expires_at: Optional[datetime] = None,
        originating_message_ref: Optional[str] = None
    ) -> int:
        """
        Insert contract.

        Returns:
            contract_id of newly created contract

        Raises:
            sqlite3.IntegrityError: If the player already has an open contract
        """
        resolved_at = created_at if status == ContractStatus.ACTIVE else None
        cursor = self._execute(
            """INSERT INTO contracts (
                   player_id, team_id, salary, term_days, start_date, end_date,
                   status, offer_expires_at, originating_message_ref, created_at, resolved_at
               ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                player_id, team_id, salary, term_days,
                to_db_time(start_date), to_db_time(end_date),
                status.value, to_db_time(offer_expires_at), originating_message_ref,
                to_db_time(created_at), to_db_time(resolved_at),
            )
        )
        return cursor.lastrowid

    def get_contract(self, contract_id: int) -> Optional[Contract]:
        row = self._query_one("SELECT * FROM contracts WHERE contract_id = ?", (contract_id,))
        return Contract.from_row(row) if row else None

    def find_open_contract(self, player_id: int) -> Optional[Contract]:
        """Pending or active contract for a player, if any."""
        row = self._query_one(
            """SELECT * FROM contracts
               WHERE player_id = ? AND status IN ('pending', 'active')
               LIMIT 1""",
            (player_id,)
        )
        return Contract.from_row(row) if row else None

    def find_active_contract(self, player_id: int) -> Optional[Contract]:
        row = self._query_one(
            """SELECT * FROM contracts
               WHERE player_id = ? AND status = 'active'
               LIMIT 1""",
            (player_id,)
        )
        return Contract.from_row(row) if row else None

    def player_contracts(self, player_id: int) -> List[Contract]:
        rows = self._query_all(
            "SELECT * FROM contracts WHERE player_id = ? ORDER BY contract_id",
            (player_id,)
        )
        return [Contract.from_row(r) for r in rows]

    def team_contracts(self, team_id: int, statuses: Iterable[ContractStatus] = (ContractStatus.ACTIVE,)) -> List[Contract]:
        values = [s.value for s in statuses]
        placeholders = ", ".join("?" for _ in values)
        rows = self._query_all(
            f"""SELECT * FROM contracts
                WHERE team_id = ? AND status IN ({placeholders})
                ORDER BY salary DESC, contract_id""",
            [team_id, *values]
        )
        return [Contract.from_row(r) for r in rows]

    def stale_offer_ids(self, now: datetime) -> List[int]:
        """Pending offers whose answer deadline has passed."""
        rows = self._query_all(
            """SELECT contract_id FROM contracts
               WHERE status = 'pending'
                 AND offer_expires_at IS NOT NULL
                 AND offer_expires_at <= ?
               ORDER BY contract_id""",
            (to_db_time(now),)
        )
        return [r["contract_id"] for r in rows]

    def update_status(
        self,
        contract_id: int,
        new_status: ContractStatus,
        expected: ContractStatus,
        resolved_at: datetime
    ) -> bool:
        """
        Compare-and-set status transition.

        Returns:
            True if the row was in `expected` and now holds `new_status`
        """
        cursor = self._execute(
            """UPDATE contracts
               SET status = ?, resolved_at = ?
               WHERE contract_id = ? AND status = ?""",
            (new_status.value, to_db_time(resolved_at), contract_id, expected.value)
        )
        return cursor.rowcount == 1

    def repoint(self, contract_id: int, team_id: int) -> None:
        """Move an active contract to another team (trade, no re-signing)."""
        self._execute(
            "UPDATE contracts SET team_id = ? WHERE contract_id = ? AND status = 'active'",
            (team_id, contract_id)
        )
