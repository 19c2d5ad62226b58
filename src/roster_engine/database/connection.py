"""
Database connection for the roster engine.

Every unit of work opens its own connection, so engine components can be
shared between threads. SQLite serializes writers; BEGIN IMMEDIATE makes
each mutating operation take the write lock before its first read.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from ..config.engine_settings import EngineSettings
from .repository import LeagueRepository
from .transaction_context import TransactionContext, TransactionMode


class LeagueDatabase:
    """
    Database connection manager for the roster engine.

    Handles:
    - Schema initialization
    - Connection setup (WAL, foreign keys, busy timeout)
    - Unit-of-work scopes yielding a LeagueRepository
    """

    def __init__(self, db_path: Optional[str] = None, settings: Optional[EngineSettings] = None):
        """
        Initialize the database.

        Args:
            db_path: Path to SQLite database. Uses settings.DB_PATH if not provided.
            settings: Engine settings (busy timeout, default path)
        """
        self.settings = settings or EngineSettings()
        self.db_path = db_path or self.settings.DB_PATH
        self.logger = logging.getLogger(__name__)
        self._ensure_directory()
        self._ensure_schema()

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def _ensure_schema(self) -> None:
        """Apply database schema if tables don't exist."""
        schema_path = Path(__file__).parent / "schema.sql"

        if not schema_path.exists():
            raise FileNotFoundError(f"Schema file not found: {schema_path}")

        with open(schema_path, 'r') as f:
            schema_sql = f.read()

        conn = self.connect()
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(schema_sql)
        finally:
            conn.close()

        self.logger.debug(f"Schema ready at {self.db_path}")

    def connect(self) -> sqlite3.Connection:
        """
        Open a new connection.

        isolation_level=None hands transaction control to TransactionContext.
        """
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.settings.BUSY_TIMEOUT_SECONDS,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def unit_of_work(
        self,
        operation: str,
        mode: TransactionMode = "IMMEDIATE"
    ) -> Iterator[LeagueRepository]:
        """
        Run a block as one atomic transaction.

        Commits if the block returns, rolls back and re-raises otherwise.

        Usage:
            with db.unit_of_work("contract.accept") as repo:
                repo.contracts.update_status(...)
                repo.players.update_affiliation(...)
        """
        conn = self.connect()
        try:
            with TransactionContext(conn, mode=mode, operation=operation):
                yield LeagueRepository(conn)
        finally:
            conn.close()

    @contextmanager
    def read(self, operation: str = "read") -> Iterator[LeagueRepository]:
        """Consistent snapshot for read-only views."""
        with self.unit_of_work(operation, mode="DEFERRED") as repo:
            yield repo
