"""
Trade Proposal API - trade_proposals and trade_proposal_players tables.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from ..models.entities import TradeMove, TradeProposal
from ..models.enums import TradeStatus
from ..utils.time_utils import to_db_time
from .base_api import TableAPI


class TradeProposalAPI(TableAPI):
    """
    Persists the two-phase trade workflow. Status transitions are
    compare-and-set on the expected current status.
    """

    def insert_proposal(
        self,
        from_team_id: int,
        to_team_id: int,
        moves: Sequence[TradeMove],
        proposed_by: str,
        response_deadline: Optional[datetime],
        created_at: datetime,
        note: Optional[str] = None
    ) -> int:
        """
        Create a pending proposal and its player moves.

        Returns:
            proposal_id of created proposal
        """
        cursor = self._execute(
            """INSERT INTO trade_proposals
               (from_team_id, to_team_id, status, proposed_by, response_deadline, note, created_at)
               VALUES (?, ?, 'pending', ?, ?, ?, ?)""",
            (from_team_id, to_team_id, proposed_by, to_db_time(response_deadline), note, to_db_time(created_at))
        )
        proposal_id = cursor.lastrowid

        self.conn.executemany(
            """INSERT INTO trade_proposal_players (proposal_id, player_id, from_team_id, to_team_id)
               VALUES (?, ?, ?, ?)""",
            [(proposal_id, m.player_id, m.from_team_id, m.to_team_id) for m in moves]
        )
        return proposal_id

    def get_proposal(self, proposal_id: int) -> Optional[TradeProposal]:
        row = self._query_one("SELECT * FROM trade_proposals WHERE proposal_id = ?", (proposal_id,))
        if not row:
            return None
        return TradeProposal.from_row(row, self._moves(proposal_id))

    def list_proposals(
        self,
        team_id: Optional[int] = None,
        status: Optional[TradeStatus] = None
    ) -> List[TradeProposal]:
        """
        List proposals, newest first.

        Args:
            team_id: Only proposals where the team is either side
            status: Only proposals in this status
        """
        query = "SELECT * FROM trade_proposals WHERE 1 = 1"
        params: list = []

        if team_id is not None:
            query += " AND (from_team_id = ? OR to_team_id = ?)"
            params.extend([team_id, team_id])

        if status is not None:
            query += " AND status = ?"
            params.append(status.value)

        query += " ORDER BY proposal_id DESC"

        return [
            TradeProposal.from_row(row, self._moves(row["proposal_id"]))
            for row in self._query_all(query, params)
        ]

    def _moves(self, proposal_id: int) -> List[TradeMove]:
        rows = self._query_all(
            """SELECT player_id, from_team_id, to_team_id
               FROM trade_proposal_players
               WHERE proposal_id = ?
               ORDER BY player_id""",
            (proposal_id,)
        )
        return [TradeMove.from_row(r) for r in rows]

    # =========================================================================
    # Status transitions
    # =========================================================================

    def record_response(
        self,
        proposal_id: int,
        new_status: TradeStatus,
        responded_by: str,
        responded_at: datetime,
        review_deadline: Optional[datetime] = None,
        note: Optional[str] = None
    ) -> bool:
        """Receiving team's answer: pending -> accepted/rejected."""
        cursor = self._execute(
            """UPDATE trade_proposals
               SET status = ?, responded_by = ?, responded_at = ?,
                   review_deadline = ?, note = COALESCE(?, note)
               WHERE proposal_id = ? AND status = 'pending'""",
            (new_status.value, responded_by, to_db_time(responded_at),
             to_db_time(review_deadline), note, proposal_id)
        )
        return cursor.rowcount == 1

    def record_review(
        self,
        proposal_id: int,
        new_status: TradeStatus,
        reviewed_by: str,
        reviewed_at: datetime,
        admin_note: Optional[str] = None
    ) -> bool:
        """Administrator decision: accepted -> admin_approved/admin_rejected."""
        cursor = self._execute(
            """UPDATE trade_proposals
               SET status = ?, reviewed_by = ?, reviewed_at = ?, admin_note = ?
               WHERE proposal_id = ? AND status = 'accepted'""",
            (new_status.value, reviewed_by, to_db_time(reviewed_at), admin_note, proposal_id)
        )
        return cursor.rowcount == 1
