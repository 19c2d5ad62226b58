"""
Roster data model: status enums, entity snapshots and read views.
"""

from .enums import ContractStatus, PlayerStatus, TradeStatus, TransactionType, WaiverStatus
from .entities import (
    Actor,
    Contract,
    Player,
    RosterTransaction,
    StatusChange,
    Team,
    TradeMove,
    TradeProposal,
    Waiver,
)
from .views import CapComplianceResult, PlayerHistory, RosterEntry, TeamCapSummary

__all__ = [
    "ContractStatus",
    "PlayerStatus",
    "TradeStatus",
    "TransactionType",
    "WaiverStatus",
    "Actor",
    "Contract",
    "Player",
    "RosterTransaction",
    "StatusChange",
    "Team",
    "TradeMove",
    "TradeProposal",
    "Waiver",
    "CapComplianceResult",
    "PlayerHistory",
    "RosterEntry",
    "TeamCapSummary",
]
