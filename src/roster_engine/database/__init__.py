"""
Roster/contract store.

LeagueDatabase owns connections and schema; LeagueRepository exposes the
per-table APIs inside one unit of work.
"""

from .connection import LeagueDatabase
from .repository import LeagueRepository
from .transaction_context import TransactionContext, TransactionState

__all__ = [
    "LeagueDatabase",
    "LeagueRepository",
    "TransactionContext",
    "TransactionState",
]
