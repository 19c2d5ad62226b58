"""
Base class for table APIs.

Table APIs run on the connection of the current unit of work; they never
commit. The enclosing TransactionContext decides commit or rollback.
"""

import sqlite3
from typing import Any, List, Optional, Sequence


class TableAPI:
    """Shared query helpers for the per-table APIs."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self.conn.execute(sql, tuple(params))

    def _query_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        return self.conn.execute(sql, tuple(params)).fetchone()

    def _query_all(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        return self.conn.execute(sql, tuple(params)).fetchall()

    def _scalar(self, sql: str, params: Sequence[Any] = (), default: Any = 0) -> Any:
        row = self.conn.execute(sql, tuple(params)).fetchone()
        if row is None or row[0] is None:
            return default
        return row[0]
