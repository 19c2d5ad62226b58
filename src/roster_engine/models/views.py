"""
Read-side views for consumers (dashboards, command replies).

Views are computed from the store on request and never written back.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .entities import Contract, Player, StatusChange


@dataclass
class TeamCapSummary:
    team_id: int
    name: str
    cap_ceiling: int
    cap_floor: int
    available_cap: int
    """Recomputed from active contracts."""

    total_active_salary: int
    """All active salary, exempt players included."""

    counted_salary: int
    """Active salary that counts against the ceiling (non-exempt)."""

    exempt_salary: int
    exempt_player_count: int
    roster_size: int

    @property
    def below_floor(self) -> bool:
        return self.counted_salary < self.cap_floor

    @property
    def over_cap(self) -> bool:
        return self.available_cap < 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team_id": self.team_id,
            "name": self.name,
            "cap_ceiling": self.cap_ceiling,
            "cap_floor": self.cap_floor,
            "available_cap": self.available_cap,
            "total_active_salary": self.total_active_salary,
            "counted_salary": self.counted_salary,
            "exempt_salary": self.exempt_salary,
            "exempt_player_count": self.exempt_player_count,
            "roster_size": self.roster_size,
        }


@dataclass
class RosterEntry:
    player_id: int
    external_id: str
    username: str
    is_exempt: bool
    salary: int
    """Active contract salary, 0 if the contract is missing."""

    contract_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "external_id": self.external_id,
            "username": self.username,
            "is_exempt": self.is_exempt,
            "salary": self.salary,
            "contract_id": self.contract_id,
        }


@dataclass
class PlayerHistory:
    player: Player
    current_contract: Optional[Contract]
    status_history: List[StatusChange] = field(default_factory=list)
    contracts: List[Contract] = field(default_factory=list)


@dataclass
class CapComplianceResult:
    team_id: int
    is_compliant: bool
    below_floor: bool
    message: str
    counted_salary: int
    cap_ceiling: int
    cap_floor: int
