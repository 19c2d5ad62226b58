"""
Transaction Context Module

Atomic unit of work for roster operations. A trade touching two teams,
several players and their contracts either commits every row or none.

Usage:
    with TransactionContext(conn, mode="IMMEDIATE", operation="trade.approve") as tx:
        conn.execute("UPDATE contracts ...")
        conn.execute("UPDATE players ...")
        conn.execute("UPDATE teams ...")
        # Commits on clean exit, rolls back if anything raised

    Nested contexts become savepoints:
        with TransactionContext(conn, mode="IMMEDIATE") as tx:
            ...
            with TransactionContext(conn) as inner:
                ...  # rolled back alone if it raises and the outer catches

Modes:
    DEFERRED  - read-only views; lock taken on first write
    IMMEDIATE - every mutating engine operation; write lock taken at BEGIN so
                the reads that drive a decision cannot be invalidated
                before the writes commit
    EXCLUSIVE - maintenance (schema changes)
"""

import itertools
import logging
import sqlite3
from enum import Enum
from typing import Literal, Optional

from ..errors import RosterEngineError
from ..logging_config import log_engine_error


class TransactionState(Enum):
    """Transaction lifecycle states."""
    INACTIVE = "inactive"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


TransactionMode = Literal["DEFERRED", "IMMEDIATE", "EXCLUSIVE"]

_savepoint_ids = itertools.count(1)


class TransactionContext:
    """
    Context manager for atomic database transactions.

    Attributes:
        connection: SQLite connection (autocommit mode, isolation_level=None)
        mode: BEGIN mode for top-level transactions
        operation: Label used in log lines (e.g. "waiver.claim")
        state: Current transaction state
        savepoint_name: Savepoint name when nested
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        mode: TransactionMode = "DEFERRED",
        operation: str = "unit_of_work"
    ):
        """
        Initialize transaction context.

        Args:
            connection: Active SQLite connection
            mode: Transaction mode (DEFERRED, IMMEDIATE, EXCLUSIVE)
            operation: Label for logging

        Raises:
            ValueError: If connection is None or mode is invalid
            TypeError: If connection is not a sqlite3.Connection
        """
        if connection is None:
            raise ValueError("Connection cannot be None")

        if not isinstance(connection, sqlite3.Connection):
            raise TypeError(f"Expected sqlite3.Connection, got {type(connection)}")

        if mode not in ("DEFERRED", "IMMEDIATE", "EXCLUSIVE"):
            raise ValueError(f"Invalid transaction mode: {mode}. Must be DEFERRED, IMMEDIATE, or EXCLUSIVE")

        self.connection = connection
        self.mode = mode
        self.operation = operation
        self.state = TransactionState.INACTIVE
        self.savepoint_name: Optional[str] = None
        self.is_nested = connection.in_transaction
        self.logger = logging.getLogger(__name__)

        if self.is_nested:
            self.savepoint_name = f"sp_{next(_savepoint_ids)}"

    def __enter__(self) -> "TransactionContext":
        try:
            if self.is_nested:
                self.logger.debug(f"[{self.operation}] Creating savepoint: {self.savepoint_name}")
                self.connection.execute(f"SAVEPOINT {self.savepoint_name}")
            else:
                self.logger.debug(f"[{self.operation}] Beginning {self.mode} transaction")
                self.connection.execute(f"BEGIN {self.mode}")

            self.state = TransactionState.ACTIVE
            return self

        except sqlite3.OperationalError as e:
            # "database is locked" after busy timeout lands here
            self.logger.error(f"[{self.operation}] Failed to begin transaction: {e}")
            self.state = TransactionState.INACTIVE
            raise

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """
        Commit on success, roll back on exception. Exceptions always
        propagate.
        """
        if self.state != TransactionState.ACTIVE:
            self.logger.debug(f"[{self.operation}] Transaction already {self.state.value}, skipping auto-action")
            return False

        if exc_type is None:
            try:
                self._commit_internal()
            except sqlite3.Error:
                self._rollback_internal()
                raise
        else:
            if isinstance(exc_val, RosterEngineError):
                log_engine_error(self.logger, exc_val, operation=self.operation)
            else:
                self.logger.warning(f"[{self.operation}] {exc_type.__name__}: {exc_val}")
            self.logger.debug(f"[{self.operation}] Rolling back")
            try:
                self._rollback_internal()
            except sqlite3.Error as rollback_error:
                self.logger.critical(f"[{self.operation}] Rollback failed: {rollback_error}")

        return False

    def _commit_internal(self) -> None:
        if self.is_nested:
            self.connection.execute(f"RELEASE {self.savepoint_name}")
        else:
            self.connection.commit()

        self.state = TransactionState.COMMITTED
        self.logger.debug(f"[{self.operation}] Committed")

    def _rollback_internal(self) -> None:
        if self.state == TransactionState.ROLLED_BACK:
            return

        if self.is_nested:
            self.connection.execute(f"ROLLBACK TO {self.savepoint_name}")
            # ROLLBACK TO keeps the savepoint open
            self.connection.execute(f"RELEASE {self.savepoint_name}")
        else:
            self.connection.rollback()

        self.state = TransactionState.ROLLED_BACK
        self.logger.debug(f"[{self.operation}] Rolled back")

    def commit(self) -> None:
        """Commit before the block ends. Raises RuntimeError unless active."""
        self._require_active("commit")
        self._commit_internal()

    def rollback(self) -> None:
        """Abandon the unit of work. Raises RuntimeError unless active."""
        self._require_active("roll back")
        self._rollback_internal()

    def _require_active(self, action: str) -> None:
        if self.state != TransactionState.ACTIVE:
            raise RuntimeError(f"[{self.operation}] cannot {action} a {self.state.value} transaction")

    @property
    def is_active(self) -> bool:
        return self.state == TransactionState.ACTIVE

    @property
    def is_committed(self) -> bool:
        return self.state == TransactionState.COMMITTED

    @property
    def is_rolled_back(self) -> bool:
        return self.state == TransactionState.ROLLED_BACK

    def __repr__(self) -> str:
        target = self.savepoint_name or self.mode
        return f"<TransactionContext {self.operation} {target} {self.state.value}>"
