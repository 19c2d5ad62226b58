"""
Transaction Log API - roster_transactions audit table.
"""

from datetime import datetime
from typing import List, Optional

from ..models.entities import RosterTransaction
from ..models.enums import TransactionType
from ..utils.time_utils import to_db_time
from .base_api import TableAPI


class TransactionLogAPI(TableAPI):

    def log_transaction(
        self,
        transaction_type: TransactionType,
        created_at: datetime,
        team_id: Optional[int] = None,
        player_id: Optional[int] = None,
        contract_id: Optional[int] = None,
        cap_impact: int = 0,
        description: Optional[str] = None
    ) -> int:
        """
        Log roster transaction.

        Args:
            transaction_type: SIGNING, RELEASE, TRADE, ...
            created_at: When the transaction committed
            team_id: Team whose cap is affected
            player_id: Player involved
            contract_id: Contract involved
            cap_impact: Change to team's available cap (negative = consumed)
            description: Free-text summary

        Returns:
            transaction_id of logged transaction
        """
        cursor = self._execute(
            """INSERT INTO roster_transactions
               (transaction_type, team_id, player_id, contract_id, cap_impact, description, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (transaction_type.value, team_id, player_id, contract_id,
             cap_impact, description, to_db_time(created_at))
        )
        return cursor.lastrowid

    def get_transactions(
        self,
        team_id: Optional[int] = None,
        transaction_type: Optional[TransactionType] = None
    ) -> List[RosterTransaction]:
        query = "SELECT * FROM roster_transactions WHERE 1 = 1"
        params: list = []

        if team_id is not None:
            query += " AND team_id = ?"
            params.append(team_id)

        if transaction_type is not None:
            query += " AND transaction_type = ?"
            params.append(transaction_type.value)

        query += " ORDER BY transaction_id"
        return [RosterTransaction.from_row(r) for r in self._query_all(query, params)]
