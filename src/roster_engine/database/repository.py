"""
League repository: the per-table APIs bound to one connection.
"""

import sqlite3

from .contract_api import ContractAPI
from .player_api import PlayerAPI
from .team_api import TeamAPI
from .trade_proposal_api import TradeProposalAPI
from .transaction_log_api import TransactionLogAPI
from .waiver_api import WaiverAPI


class LeagueRepository:
    """
    Groups the table APIs that share a unit of work.

    A repository lives exactly as long as the transaction it was opened
    for; components receive it as an argument and never hold on to it.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.teams = TeamAPI(conn)
        self.players = PlayerAPI(conn)
        self.contracts = ContractAPI(conn)
        self.trades = TradeProposalAPI(conn)
        self.waivers = WaiverAPI(conn)
        self.log = TransactionLogAPI(conn)
