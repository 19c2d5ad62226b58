"""
Roster & Salary-Cap Transaction Engine

Keeps team cap accounting, player affiliation and contract state consistent
across contract offers, two-phase trades and time-boxed waiver claims.

Core Components:
- LeagueDatabase: SQLite store, one transaction per operation
- CapLedger: Available cap per team (ceiling minus active non-exempt salary)
- PlayerStatusMachine: free_agent / signed / waivers transitions
- ExemptionManager: At most two cap-exempt players per team
- ContractManager: Offer, accept, reject, expire, terminate
- TradeCoordinator: Propose, accept, admin approve
- WaiverProcess: Release, claim, sweep
- CapValidator: Ceiling and floor compliance reports
- RosterEngine: Facade and read views
"""

from .config.engine_settings import EngineSettings
from .contracts.contract_manager import ContractManager
from .database.connection import LeagueDatabase
from .engine import RosterEngine
from .errors import (
    ContractNotFound,
    ExemptionLimitReached,
    InsufficientCap,
    InvalidStateTransition,
    NotFound,
    OfferExpired,
    PlayerAlreadyUnderContract,
    PlayerNotFound,
    RosterEngineError,
    StalePrecondition,
    TeamNotFound,
    Timeout,
    TradeProposalNotFound,
    Unauthorized,
    WaiverNotFound,
)
from .models import Actor
from .salary_cap import CapLedger, CapValidator, ExemptionManager
from .transactions import PlayerStatusMachine, TradeCoordinator, WaiverProcess

__version__ = "1.0.0"

__all__ = [
    "EngineSettings",
    "LeagueDatabase",
    "RosterEngine",
    "Actor",
    "CapLedger",
    "CapValidator",
    "ExemptionManager",
    "ContractManager",
    "PlayerStatusMachine",
    "TradeCoordinator",
    "WaiverProcess",
    "RosterEngineError",
    "NotFound",
    "TeamNotFound",
    "PlayerNotFound",
    "ContractNotFound",
    "TradeProposalNotFound",
    "WaiverNotFound",
    "InvalidStateTransition",
    "InsufficientCap",
    "ExemptionLimitReached",
    "PlayerAlreadyUnderContract",
    "StalePrecondition",
    "Timeout",
    "OfferExpired",
    "Unauthorized",
]
