"""
Roster Engine Settings

Central place for every league rule constant and workflow deadline used by
the transaction engine. Components receive an EngineSettings instance so
tests can shorten windows without monkeypatching module globals.

Override at deployment time with environment variables:
    ROSTER_ENGINE_DB_PATH
    ROSTER_ENGINE_OFFER_EXPIRY_HOURS
    ROSTER_ENGINE_WAIVER_CLEARING_HOURS
    ROSTER_ENGINE_TRADE_RESPONSE_HOURS
    ROSTER_ENGINE_ADMIN_REVIEW_HOURS
    ROSTER_ENGINE_BUSY_TIMEOUT_SECONDS
"""

import os
from dataclasses import dataclass, fields, replace
from datetime import timedelta
from typing import Mapping, Optional


ENV_PREFIX = "ROSTER_ENGINE_"


@dataclass(frozen=True)
class EngineSettings:
    """
    League rules and workflow timing.

    True league rules (exempt limit, ELC terms, default cap) sit next to
    workflow timing (offer expiry, trade windows, waiver clearing) because
    both are read on every transition attempt.
    """

    # ================================================================
    # STORAGE
    # ================================================================

    DB_PATH: str = "data/database/roster_engine.db"
    BUSY_TIMEOUT_SECONDS: float = 5.0
    # How long a connection waits for another writer's lock

    # ================================================================
    # CAP RULES
    # ================================================================

    DEFAULT_CAP_CEILING: int = 82_500_000
    DEFAULT_CAP_FLOOR: int = 0
    MAX_EXEMPT_PER_TEAM: int = 2

    VERIFY_CAP_ON_WRITE: bool = True
    # True:  recompute the ledger after each write and repair drift
    # False: trust incremental updates (use reconcile() periodically)

    # ================================================================
    # CONTRACT TEMPLATES
    # ================================================================

    ELC_SALARY: int = 925_000
    ELC_TERM_DAYS: int = 210  # 30 weeks

    # ================================================================
    # WORKFLOW DEADLINES
    # ================================================================

    INTERACTIVE_SELECTION_SECONDS: int = 30
    OFFER_EXPIRY_HOURS: int = 24
    TRADE_RESPONSE_HOURS: int = 24
    ADMIN_REVIEW_HOURS: int = 24
    WAIVER_CLEARING_HOURS: int = 48

    @property
    def offer_expiry(self) -> timedelta:
        return timedelta(hours=self.OFFER_EXPIRY_HOURS)

    @property
    def trade_response_window(self) -> timedelta:
        return timedelta(hours=self.TRADE_RESPONSE_HOURS)

    @property
    def admin_review_window(self) -> timedelta:
        return timedelta(hours=self.ADMIN_REVIEW_HOURS)

    @property
    def waiver_clearing_window(self) -> timedelta:
        return timedelta(hours=self.WAIVER_CLEARING_HOURS)

    @property
    def interactive_selection_timeout(self) -> timedelta:
        return timedelta(seconds=self.INTERACTIVE_SELECTION_SECONDS)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineSettings":
        """
        Build settings from ROSTER_ENGINE_* environment variables.

        Unset variables keep their defaults. Values are coerced to the
        type of the default.

        Raises:
            ValueError: If a variable cannot be converted
        """
        environ = os.environ if environ is None else environ
        defaults = cls()
        overrides = {}

        for f in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{f.name}")
            if raw is None:
                continue
            current = getattr(defaults, f.name)
            try:
                if isinstance(current, bool):
                    overrides[f.name] = raw.strip().lower() in ("1", "true", "yes", "on")
                else:
                    overrides[f.name] = type(current)(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {ENV_PREFIX}{f.name}: {raw!r}") from e

        return replace(defaults, **overrides)
