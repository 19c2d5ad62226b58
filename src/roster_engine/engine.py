"""
Roster Engine

Single entry point for consumers (chat command handlers, web handlers).
Wires the components to one store and exposes league administration and
the read-side views. Every mutation goes through an engine operation;
consumers never write the store directly.

Usage:
    engine = RosterEngine("data/database/league.db")
    team = engine.create_team("Otters", cap_ceiling=1_000_000)
    player = engine.register_player("discord:1234", "skater99")

    offer = engine.contracts.offer(player.player_id, team.team_id, 900_000, 210)
    engine.contracts.accept(offer.contract_id)

    engine.team_cap_summary(team.team_id).available_cap   # 100_000
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config.engine_settings import EngineSettings
from .contracts.contract_manager import ContractManager
from .database.connection import LeagueDatabase
from .errors import PlayerNotFound, Unauthorized
from .models.entities import Actor, Player, RosterTransaction, Team
from .models.enums import TransactionType
from .models.views import PlayerHistory, RosterEntry, TeamCapSummary
from .salary_cap.cap_ledger import CapLedger
from .salary_cap.cap_validator import CapValidator
from .salary_cap.exemption_manager import ExemptionManager
from .transactions.player_status import PlayerStatusMachine
from .transactions.trade_coordinator import TradeCoordinator
from .transactions.waiver_process import WaiverProcess
from .utils.time_utils import Clock, as_utc, utc_clock, utc_now


class RosterEngine:
    """
    Facade over the roster and salary-cap components.

    Components are public attributes:
        ledger      CapLedger
        exemptions  ExemptionManager
        contracts   ContractManager
        trades      TradeCoordinator
        waivers     WaiverProcess
        validator   CapValidator
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        settings: Optional[EngineSettings] = None,
        clock: Clock = utc_now
    ):
        """
        Args:
            db_path: SQLite file; defaults to settings.DB_PATH
            settings: League rules and deadlines; defaults to EngineSettings()
            clock: Source of "now" for every deadline and timestamp
        """
        self.settings = settings or EngineSettings()
        self.clock = utc_clock(clock)
        self.db = LeagueDatabase(db_path, self.settings)
        self.logger = logging.getLogger(__name__)

        self.status_machine = PlayerStatusMachine()
        self.ledger = CapLedger(self.db, self.settings)
        self.exemptions = ExemptionManager(self.db, self.ledger, self.settings, clock)
        self.contracts = ContractManager(self.db, self.ledger, self.status_machine, self.settings, clock)
        self.trades = TradeCoordinator(
            self.db, self.ledger, self.exemptions, self.status_machine, self.settings, clock
        )
        self.waivers = WaiverProcess(self.db, self.ledger, self.contracts, self.status_machine, self.settings, clock)
        self.validator = CapValidator(self.db, self.ledger)

    # ========================================================================
    # LEAGUE ADMINISTRATION
    # ========================================================================

    def create_team(
        self,
        name: str,
        cap_ceiling: Optional[int] = None,
        cap_floor: Optional[int] = None
    ) -> Team:
        """
        Create a team with an empty roster.

        Args:
            name: Unique team name
            cap_ceiling: Defaults to DEFAULT_CAP_CEILING
            cap_floor: Defaults to DEFAULT_CAP_FLOOR

        Raises:
            ValueError: Blank or duplicate name, or invalid cap limits
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Team name cannot be empty")
        cap_ceiling = self.settings.DEFAULT_CAP_CEILING if cap_ceiling is None else cap_ceiling
        cap_floor = self.settings.DEFAULT_CAP_FLOOR if cap_floor is None else cap_floor
        self._validate_cap_limits(cap_ceiling, cap_floor)

        with self.db.unit_of_work("league.create_team") as repo:
            if repo.teams.get_team_by_name(name) is not None:
                raise ValueError(f"Team '{name}' already exists")
            team_id = repo.teams.insert_team(name, cap_ceiling, cap_floor, self.clock())
            team = repo.teams.get_team(team_id)

        self.logger.info(f"Created team {team_id} '{name}' (ceiling ${cap_ceiling:,}, floor ${cap_floor:,})")
        return team

    def set_cap_limits(
        self,
        team_id: int,
        cap_ceiling: int,
        cap_floor: Optional[int] = None,
        actor: Optional[Actor] = None
    ) -> Team:
        """
        Change a team's ceiling (and optionally floor) and refresh its cap.

        Lowering the ceiling below current salary is allowed; the team then
        shows as over the cap in compliance reports.

        Raises:
            TeamNotFound: Unknown team
            Unauthorized: Actor is not a league admin
            ValueError: Invalid limits
        """
        if actor is not None and not actor.is_admin:
            raise Unauthorized(
                f"{actor.actor_id} cannot change cap limits",
                context={"actor_id": actor.actor_id, "team_id": team_id},
            )

        with self.db.unit_of_work("league.set_cap_limits") as repo:
            team = self.ledger.require_team(repo, team_id)
            cap_floor = team.cap_floor if cap_floor is None else cap_floor
            self._validate_cap_limits(cap_ceiling, cap_floor)

            repo.teams.update_cap_limits(team_id, cap_ceiling, cap_floor)
            available = self.ledger.refresh(repo, team_id)
            repo.log.log_transaction(
                TransactionType.CAP_ADJUSTMENT,
                self.clock(),
                team_id=team_id,
                cap_impact=available - team.available_cap,
                description=f"Cap limits set to ceiling ${cap_ceiling:,}, floor ${cap_floor:,}",
            )
            team = repo.teams.get_team(team_id)

        self.logger.info(f"Team {team_id} cap limits: ceiling ${cap_ceiling:,}, floor ${cap_floor:,}")
        return team

    def register_player(self, external_id: str, username: str) -> Player:
        """
        Get or create a player by external identity.

        New players start as free agents.
        """
        if not external_id:
            raise ValueError("external_id cannot be empty")

        with self.db.unit_of_work("league.register_player") as repo:
            player = repo.players.get_player_by_external_id(external_id)
            if player is not None:
                return player
            player_id = repo.players.insert_player(external_id, username, self.clock())
            player = repo.players.get_player(player_id)

        self.logger.info(f"Registered player {player_id} ({username}, {external_id})")
        return player

    @staticmethod
    def _validate_cap_limits(cap_ceiling: int, cap_floor: int) -> None:
        if cap_ceiling < 0 or cap_floor < 0:
            raise ValueError("Cap limits cannot be negative")
        if cap_floor > cap_ceiling:
            raise ValueError(f"Cap floor ${cap_floor:,} exceeds ceiling ${cap_ceiling:,}")

    # ========================================================================
    # READ VIEWS
    # ========================================================================

    def get_team(self, team_id: int) -> Team:
        with self.db.read("view.team") as repo:
            return self.ledger.require_team(repo, team_id)

    def list_teams(self) -> List[Team]:
        with self.db.read("view.teams") as repo:
            return repo.teams.list_teams()

    def get_player(self, player_id: int) -> Player:
        with self.db.read("view.player") as repo:
            return self.status_machine.require_player(repo, player_id)

    def find_player(self, external_id: str) -> Player:
        with self.db.read("view.player") as repo:
            player = repo.players.get_player_by_external_id(external_id)
        if player is None:
            raise PlayerNotFound(external_id)
        return player

    def team_cap_summary(self, team_id: int) -> TeamCapSummary:
        """Ceiling, floor, available cap and salary totals."""
        return self.ledger.cap_summary(team_id)

    def team_roster(self, team_id: int) -> List[RosterEntry]:
        """Signed players with salary and exempt flag, highest paid first."""
        with self.db.read("view.roster") as repo:
            self.ledger.require_team(repo, team_id)
            return repo.teams.team_roster(team_id)

    def player_history(self, player_id: int) -> PlayerHistory:
        """Current contract, status history and every contract of a player."""
        with self.db.read("view.player_history") as repo:
            player = self.status_machine.require_player(repo, player_id)
            return PlayerHistory(
                player=player,
                current_contract=repo.contracts.find_open_contract(player_id),
                status_history=repo.players.status_history(player_id),
                contracts=repo.contracts.player_contracts(player_id),
            )

    def transaction_log(
        self,
        team_id: Optional[int] = None,
        transaction_type: Optional[TransactionType] = None
    ) -> List[RosterTransaction]:
        with self.db.read("view.transactions") as repo:
            if team_id is not None:
                self.ledger.require_team(repo, team_id)
            return repo.log.get_transactions(team_id=team_id, transaction_type=transaction_type)

    # ========================================================================
    # SCHEDULED WORK
    # ========================================================================

    def run_scheduled_jobs(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Periodic maintenance: clear expired waivers, expire stale offers and
        reconcile cached cap values.

        Returns:
            Dict with cleared waiver IDs, expired contract IDs and cap drift
        """
        now = self.clock() if now is None else as_utc(now)
        result = {
            "cleared_waivers": self.waivers.sweep_expired(now),
            "expired_offers": self.contracts.expire_stale_offers(now),
            "cap_drift": self.ledger.reconcile(),
        }
        self.logger.debug(f"Scheduled jobs at {now.isoformat()}: {result}")
        return result
