"""
Roster entities.

Plain dataclasses returned by the repository. They are snapshots: mutating
one does not touch the store. All writes go through engine operations.
"""

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..utils.time_utils import from_db_time
from .enums import ContractStatus, PlayerStatus, TradeStatus, TransactionType, WaiverStatus


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Team:
    team_id: int
    name: str
    cap_ceiling: int
    cap_floor: int
    available_cap: int
    """Cached ledger value; always recomputable from active contracts."""

    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Team":
        return cls(
            team_id=row["team_id"],
            name=row["name"],
            cap_ceiling=row["cap_ceiling"],
            cap_floor=row["cap_floor"],
            available_cap=row["available_cap"],
            created_at=from_db_time(row["created_at"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team_id": self.team_id,
            "name": self.name,
            "cap_ceiling": self.cap_ceiling,
            "cap_floor": self.cap_floor,
            "available_cap": self.available_cap,
            "created_at": _iso(self.created_at),
        }


@dataclass
class Player:
    player_id: int
    external_id: str
    """Identity in the consuming system (e.g. a chat user id)."""

    username: str
    status: PlayerStatus = PlayerStatus.FREE_AGENT
    current_team_id: Optional[int] = None
    is_exempt: bool = False

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Player":
        return cls(
            player_id=row["player_id"],
            external_id=row["external_id"],
            username=row["username"],
            status=PlayerStatus(row["status"]),
            current_team_id=row["current_team_id"],
            is_exempt=bool(row["is_exempt"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "external_id": self.external_id,
            "username": self.username,
            "status": self.status.value,
            "current_team_id": self.current_team_id,
            "is_exempt": self.is_exempt,
        }


@dataclass
class Contract:
    contract_id: int
    player_id: int
    team_id: int
    salary: int
    term_days: int
    start_date: datetime
    end_date: datetime
    status: ContractStatus
    offer_expires_at: Optional[datetime] = None
    originating_message_ref: Optional[str] = None
    """Consumer's reference to the message that carried the offer."""

    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Contract":
        return cls(
            contract_id=row["contract_id"],
            player_id=row["player_id"],
            team_id=row["team_id"],
            salary=row["salary"],
            term_days=row["term_days"],
            start_date=from_db_time(row["start_date"]),
            end_date=from_db_time(row["end_date"]),
            status=ContractStatus(row["status"]),
            offer_expires_at=from_db_time(row["offer_expires_at"]),
            originating_message_ref=row["originating_message_ref"],
            created_at=from_db_time(row["created_at"]),
            resolved_at=from_db_time(row["resolved_at"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contract_id": self.contract_id,
            "player_id": self.player_id,
            "team_id": self.team_id,
            "salary": self.salary,
            "term_days": self.term_days,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "status": self.status.value,
            "offer_expires_at": _iso(self.offer_expires_at),
            "originating_message_ref": self.originating_message_ref,
            "created_at": _iso(self.created_at),
            "resolved_at": _iso(self.resolved_at),
        }


@dataclass(frozen=True)
class TradeMove:
    """One player changing teams as part of a trade."""

    player_id: int
    from_team_id: int
    to_team_id: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "TradeMove":
        return cls(
            player_id=row["player_id"],
            from_team_id=row["from_team_id"],
            to_team_id=row["to_team_id"],
        )


@dataclass
class TradeProposal:
    proposal_id: int
    from_team_id: int
    to_team_id: int
    status: TradeStatus
    moves: List[TradeMove] = field(default_factory=list)
    proposed_by: Optional[str] = None
    responded_by: Optional[str] = None
    reviewed_by: Optional[str] = None
    response_deadline: Optional[datetime] = None
    review_deadline: Optional[datetime] = None
    note: Optional[str] = None
    admin_note: Optional[str] = None
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row, moves: List[TradeMove]) -> "TradeProposal":
        return cls(
            proposal_id=row["proposal_id"],
            from_team_id=row["from_team_id"],
            to_team_id=row["to_team_id"],
            status=TradeStatus(row["status"]),
            moves=list(moves),
            proposed_by=row["proposed_by"],
            responded_by=row["responded_by"],
            reviewed_by=row["reviewed_by"],
            response_deadline=from_db_time(row["response_deadline"]),
            review_deadline=from_db_time(row["review_deadline"]),
            note=row["note"],
            admin_note=row["admin_note"],
            created_at=from_db_time(row["created_at"]),
            responded_at=from_db_time(row["responded_at"]),
            reviewed_at=from_db_time(row["reviewed_at"]),
        )

    @property
    def current_deadline(self) -> Optional[datetime]:
        """Deadline of the step the proposal is waiting on; None once settled."""
        if self.status == TradeStatus.PENDING:
            return self.response_deadline
        if self.status == TradeStatus.ACCEPTED:
            return self.review_deadline
        return None

    def is_lapsed(self, now: datetime) -> bool:
        """Still open on paper, but its waiting step can no longer happen."""
        if self.status.is_terminal:
            return False
        deadline = self.current_deadline
        return deadline is not None and now >= deadline

    @property
    def player_ids(self) -> List[int]:
        return [move.player_id for move in self.moves]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "from_team_id": self.from_team_id,
            "to_team_id": self.to_team_id,
            "status": self.status.value,
            "moves": [
                {"player_id": m.player_id, "from_team_id": m.from_team_id, "to_team_id": m.to_team_id}
                for m in self.moves
            ],
            "proposed_by": self.proposed_by,
            "responded_by": self.responded_by,
            "reviewed_by": self.reviewed_by,
            "response_deadline": _iso(self.response_deadline),
            "review_deadline": _iso(self.review_deadline),
            "note": self.note,
            "admin_note": self.admin_note,
            "created_at": _iso(self.created_at),
            "responded_at": _iso(self.responded_at),
            "reviewed_at": _iso(self.reviewed_at),
        }


@dataclass
class Waiver:
    waiver_id: int
    player_id: int
    from_team_id: int
    start_time: datetime
    end_time: datetime
    status: WaiverStatus
    claimed_by_team_id: Optional[int] = None
    resolved_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Waiver":
        return cls(
            waiver_id=row["waiver_id"],
            player_id=row["player_id"],
            from_team_id=row["from_team_id"],
            start_time=from_db_time(row["start_time"]),
            end_time=from_db_time(row["end_time"]),
            status=WaiverStatus(row["status"]),
            claimed_by_team_id=row["claimed_by_team_id"],
            resolved_at=from_db_time(row["resolved_at"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "waiver_id": self.waiver_id,
            "player_id": self.player_id,
            "from_team_id": self.from_team_id,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "status": self.status.value,
            "claimed_by_team_id": self.claimed_by_team_id,
            "resolved_at": _iso(self.resolved_at),
        }


@dataclass
class StatusChange:
    history_id: int
    player_id: int
    from_status: PlayerStatus
    to_status: PlayerStatus
    team_id: Optional[int]
    reason: str
    changed_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "StatusChange":
        return cls(
            history_id=row["history_id"],
            player_id=row["player_id"],
            from_status=PlayerStatus(row["from_status"]),
            to_status=PlayerStatus(row["to_status"]),
            team_id=row["team_id"],
            reason=row["reason"],
            changed_at=from_db_time(row["changed_at"]),
        )


@dataclass
class RosterTransaction:
    transaction_id: int
    transaction_type: TransactionType
    team_id: Optional[int]
    player_id: Optional[int]
    contract_id: Optional[int]
    cap_impact: int
    """Change to the team's available cap (negative = cap consumed)."""

    description: Optional[str]
    created_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "RosterTransaction":
        return cls(
            transaction_id=row["transaction_id"],
            transaction_type=TransactionType(row["transaction_type"]),
            team_id=row["team_id"],
            player_id=row["player_id"],
            contract_id=row["contract_id"],
            cap_impact=row["cap_impact"],
            description=row["description"],
            created_at=from_db_time(row["created_at"]),
        )


@dataclass(frozen=True)
class Actor:
    """
    The party invoking an operation.

    Consumers resolve their own user model (chat roles, web sessions) to an
    Actor; the engine only checks team membership and admin rights.
    """

    actor_id: str
    team_id: Optional[int] = None
    is_admin: bool = False

    @classmethod
    def team_agent(cls, actor_id: str, team_id: int) -> "Actor":
        return cls(actor_id=actor_id, team_id=team_id)

    @classmethod
    def league_admin(cls, actor_id: str) -> "Actor":
        return cls(actor_id=actor_id, is_admin=True)

    def acts_for(self, team_id: Optional[int]) -> bool:
        return team_id is not None and self.team_id == team_id
