"""
Roster Transactions

Player status state machine, two-phase trades and the waiver wire.
"""

from .player_status import ALLOWED_TRANSITIONS, PlayerStatusMachine
from .trade_coordinator import TradeCoordinator
from .waiver_process import WaiverProcess

__all__ = [
    'ALLOWED_TRANSITIONS',
    'PlayerStatusMachine',
    'TradeCoordinator',
    'WaiverProcess',
]
