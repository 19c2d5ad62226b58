"""
Cap Ledger

Available cap for a team is always

    cap_ceiling - SUM(salary of active contracts whose player is not exempt)

teams.available_cap caches that value. Mutating operations adjust the cache
incrementally inside their own unit of work (debit/credit) and, when
VERIFY_CAP_ON_WRITE is on, re-derive it before commit so drift never
outlives the transaction that caused it.
"""

import logging
from typing import Dict, Optional

from ..config.engine_settings import EngineSettings
from ..database.connection import LeagueDatabase
from ..database.repository import LeagueRepository
from ..errors import InsufficientCap, TeamNotFound
from ..models.entities import Team
from ..models.views import TeamCapSummary


class CapLedger:
    """
    Computes and maintains team cap space.

    Public methods open their own read or write scope. Methods taking a
    `repo` run inside the caller's unit of work and are what the contract,
    trade, waiver and exemption components use.
    """

    def __init__(self, db: LeagueDatabase, settings: Optional[EngineSettings] = None):
        self.db = db
        self.settings = settings or db.settings
        self.logger = logging.getLogger(__name__)

    # ========================================================================
    # PUBLIC QUERIES
    # ========================================================================

    def available_cap(self, team_id: int) -> int:
        """
        Ceiling minus active non-exempt salary, computed from contracts.

        Raises:
            TeamNotFound: If the team does not exist
        """
        with self.db.read("cap.available") as repo:
            return self.compute(repo, team_id)

    def can_afford(self, team_id: int, salary: int) -> bool:
        """True if the team has at least `salary` in cap space."""
        return self.available_cap(team_id) >= salary

    def cap_summary(self, team_id: int) -> TeamCapSummary:
        with self.db.read("cap.summary") as repo:
            return self.summarize(repo, team_id)

    def reconcile(self, team_id: Optional[int] = None) -> Dict[int, int]:
        """
        Recompute cached cap for one team or every team and repair drift.

        Returns:
            Dict mapping team_id -> drift found (cached - computed); only
            teams whose cache was wrong are included
        """
        with self.db.unit_of_work("cap.reconcile") as repo:
            if team_id is not None:
                team_ids = [self.require_team(repo, team_id).team_id]
            else:
                team_ids = [t.team_id for t in repo.teams.list_teams()]

            repaired = {}
            for tid in team_ids:
                drift = self._repair(repo, tid)
                if drift:
                    repaired[tid] = drift

        if repaired:
            self.logger.warning(f"Reconciled cap drift for {len(repaired)} team(s): {repaired}")
        else:
            self.logger.info(f"Cap reconcile: {len(team_ids)} team(s) consistent")
        return repaired

    # ========================================================================
    # UNIT-OF-WORK HELPERS
    # ========================================================================

    @staticmethod
    def require_team(repo: LeagueRepository, team_id: int) -> Team:
        team = repo.teams.get_team(team_id)
        if team is None:
            raise TeamNotFound(team_id)
        return team

    def compute(self, repo: LeagueRepository, team_id: int) -> int:
        team = self.require_team(repo, team_id)
        return team.cap_ceiling - repo.teams.counted_salary(team_id)

    def ensure_affordable(self, repo: LeagueRepository, team_id: int, salary: int) -> int:
        """
        Check cap space inside a unit of work.

        Args:
            salary: Cap the operation would consume; zero or negative always passes

        Returns:
            Available cap at the time of the check

        Raises:
            InsufficientCap: If salary exceeds available cap
        """
        available = self.compute(repo, team_id)
        if salary > 0 and salary > available:
            raise InsufficientCap(team_id, salary, available)
        return available

    def debit(self, repo: LeagueRepository, team_id: int, amount: int) -> None:
        """Consume cap space (salary now counts)."""
        repo.teams.adjust_available_cap(team_id, -amount)

    def credit(self, repo: LeagueRepository, team_id: int, amount: int) -> None:
        """Free cap space (salary no longer counts)."""
        repo.teams.adjust_available_cap(team_id, amount)

    def verify(self, repo: LeagueRepository, team_id: int) -> int:
        """
        Compare the cache with a recomputation after a write.

        No-op unless VERIFY_CAP_ON_WRITE. Drift is repaired in the same
        transaction and logged.

        Returns:
            Drift found (0 when consistent or verification is off)
        """
        if not self.settings.VERIFY_CAP_ON_WRITE:
            return 0
        drift = self._repair(repo, team_id)
        if drift:
            self.logger.warning(f"Team {team_id} cap cache drifted by {drift:,}; repaired")
        return drift

    def refresh(self, repo: LeagueRepository, team_id: int) -> int:
        """Unconditionally rewrite the cache (after the ceiling changes)."""
        value = self.compute(repo, team_id)
        repo.teams.set_available_cap(team_id, value)
        return value

    def summarize(self, repo: LeagueRepository, team_id: int) -> TeamCapSummary:
        team = self.require_team(repo, team_id)
        counted = repo.teams.counted_salary(team_id)
        total = repo.teams.total_active_salary(team_id)
        return TeamCapSummary(
            team_id=team.team_id,
            name=team.name,
            cap_ceiling=team.cap_ceiling,
            cap_floor=team.cap_floor,
            available_cap=team.cap_ceiling - counted,
            total_active_salary=total,
            counted_salary=counted,
            exempt_salary=total - counted,
            exempt_player_count=repo.teams.count_exempt_players(team_id),
            roster_size=len(repo.teams.team_roster(team_id)),
        )

    def _repair(self, repo: LeagueRepository, team_id: int) -> int:
        team = self.require_team(repo, team_id)
        expected = team.cap_ceiling - repo.teams.counted_salary(team_id)
        drift = team.available_cap - expected
        if drift:
            repo.teams.set_available_cap(team_id, expected)
        return drift
