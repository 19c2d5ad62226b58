"""
Salary Cap Validator

Compliance reporting for league administration:
- Ceiling violations (counted salary above the cap)
- Floor monitoring (counted salary below the floor)

The floor is informational: no engine operation is blocked by it.
"""

import logging
from typing import Dict

from ..database.connection import LeagueDatabase
from ..database.repository import LeagueRepository
from ..models.views import CapComplianceResult
from .cap_ledger import CapLedger


class CapValidator:
    """
    Read-only compliance checks built on the cap ledger.
    """

    def __init__(self, db: LeagueDatabase, ledger: CapLedger):
        self.db = db
        self.ledger = ledger
        self.logger = logging.getLogger(__name__)

    def check_cap_compliance(self, team_id: int) -> CapComplianceResult:
        """
        Check one team against its ceiling and floor.

        Args:
            team_id: Team ID

        Returns:
            CapComplianceResult; is_compliant is False only when over the ceiling

        Raises:
            TeamNotFound: If the team does not exist
        """
        with self.db.read("cap.compliance") as repo:
            return self._evaluate(repo, team_id)

    def check_all_teams_compliance(self) -> Dict[int, CapComplianceResult]:
        """
        Check every team in the league.

        Returns:
            Dict mapping team_id -> CapComplianceResult
        """
        with self.db.read("cap.compliance_all") as repo:
            results = {
                team.team_id: self._evaluate(repo, team.team_id)
                for team in repo.teams.list_teams()
            }

        violations = [tid for tid, r in results.items() if not r.is_compliant]
        below_floor = [tid for tid, r in results.items() if r.below_floor]
        if violations:
            self.logger.warning(f"Teams over the cap: {violations}")
        if below_floor:
            self.logger.info(f"Teams below the cap floor: {below_floor}")
        return results

    def _evaluate(self, repo: LeagueRepository, team_id: int) -> CapComplianceResult:
        team = self.ledger.require_team(repo, team_id)
        counted = repo.teams.counted_salary(team_id)

        if counted > team.cap_ceiling:
            message = f"Over cap by ${counted - team.cap_ceiling:,}"
            is_compliant = False
        else:
            message = f"${team.cap_ceiling - counted:,} in cap space"
            is_compliant = True

        below_floor = counted < team.cap_floor
        if below_floor:
            message += f"; ${team.cap_floor - counted:,} below floor"

        return CapComplianceResult(
            team_id=team_id,
            is_compliant=is_compliant,
            below_floor=below_floor,
            message=message,
            counted_salary=counted,
            cap_ceiling=team.cap_ceiling,
            cap_floor=team.cap_floor,
        )
