"""
Waiver Process

Released players sit on waivers for WAIVER_CLEARING_HOURS. Any team may
claim them before the window ends (first committed claim wins); once it
ends, the periodic sweep clears them to free agency.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from ..config.engine_settings import EngineSettings
from ..database.connection import LeagueDatabase
from ..database.repository import LeagueRepository
from ..errors import InvalidStateTransition, Timeout, Unauthorized, WaiverNotFound
from ..models.entities import Actor, Contract, Waiver
from ..models.enums import ContractStatus, PlayerStatus, TransactionType, WaiverStatus
from ..salary_cap.cap_ledger import CapLedger
from ..utils.time_utils import Clock, as_utc, utc_clock, utc_now
from .player_status import PlayerStatusMachine

if TYPE_CHECKING:
    from ..contracts.contract_manager import ContractManager


class WaiverProcess:
    """
    Release, claim and clearing of players on waivers.
    """

    def __init__(
        self,
        db: LeagueDatabase,
        ledger: CapLedger,
        contracts: "ContractManager",
        status_machine: PlayerStatusMachine,
        settings: Optional[EngineSettings] = None,
        clock: Clock = utc_now
    ):
        self.db = db
        self.ledger = ledger
        self.contracts = contracts
        self.status_machine = status_machine
        self.settings = settings or db.settings
        self.clock = utc_clock(clock)
        self.logger = logging.getLogger(__name__)

    # ========================================================================
    # RELEASE
    # ========================================================================

    def release(self, player_id: int, actor: Optional[Actor] = None) -> Waiver:
        """
        Release a signed player to waivers.

        Effects, in one transaction: the active contract is terminated, the
        team's cap is credited (unless the player was exempt), the player
        moves to waivers with team and exemption cleared, and a waiver
        ending now + WAIVER_CLEARING_HOURS is opened.

        Args:
            player_id: Player ID
            actor: Acting party; must be a league admin or act for the player's team

        Returns:
            The new active waiver

        Raises:
            PlayerNotFound: Unknown player
            InvalidStateTransition: Player is not signed
            Unauthorized: Actor has no authority over the player's team
        """
        now = self.clock()

        with self.db.unit_of_work("waiver.release") as repo:
            player = self.status_machine.require_player(repo, player_id)

            if actor is not None and not (actor.is_admin or actor.acts_for(player.current_team_id)):
                raise Unauthorized(
                    f"{actor.actor_id} cannot release players from team {player.current_team_id}",
                    context={"actor_id": actor.actor_id, "player_id": player_id},
                )

            if player.status != PlayerStatus.SIGNED:
                raise InvalidStateTransition("player", player_id, player.status.value, PlayerStatus.WAIVERS.value)

            team_id = player.current_team_id
            cap_impact = 0
            contract = repo.contracts.find_active_contract(player_id)
            if contract is not None:
                self.contracts.terminate_in(repo, contract.contract_id, now)
                if not player.is_exempt:
                    self.ledger.credit(repo, team_id, contract.salary)
                    cap_impact = contract.salary

            self.status_machine.transition(repo, player_id, PlayerStatus.WAIVERS, now, reason="release")

            waiver_id = repo.waivers.insert_waiver(
                player_id=player_id,
                from_team_id=team_id,
                start_time=now,
                end_time=now + self.settings.waiver_clearing_window,
            )
            repo.log.log_transaction(
                TransactionType.RELEASE,
                now,
                team_id=team_id,
                player_id=player_id,
                contract_id=contract.contract_id if contract else None,
                cap_impact=cap_impact,
                description=f"Released {player.username} to waivers",
            )
            self.ledger.verify(repo, team_id)
            waiver = repo.waivers.get_waiver(waiver_id)

        self.logger.info(
            f"Player {player_id} released by team {team_id} (cap impact {cap_impact:+,}); "
            f"waiver {waiver_id} clears at {waiver.end_time.isoformat()}"
        )
        return waiver

    # ========================================================================
    # CLAIM
    # ========================================================================

    def claim(
        self,
        waiver_id: int,
        claiming_team_id: int,
        salary: Optional[int] = None,
        term_days: Optional[int] = None,
        actor: Optional[Actor] = None
    ) -> Contract:
        """
        Claim a player off waivers.

        Args:
            waiver_id: Waiver ID
            claiming_team_id: Team taking the player
            salary: Negotiated salary; defaults to the player's prior salary
            term_days: Negotiated term; defaults to the prior term
            actor: Acting party; must be a league admin or act for the claiming team

        Returns:
            The new active contract

        Raises:
            WaiverNotFound / TeamNotFound: Unknown waiver or team
            Unauthorized: Actor does not act for the claiming team
            InvalidStateTransition: Waiver is no longer active
            Timeout: Clearing window has ended
            InsufficientCap: Claiming team cannot afford the salary
        """
        now = self.clock()

        with self.db.unit_of_work("waiver.claim") as repo:
            waiver = self._require_waiver(repo, waiver_id)

            if actor is not None and not (actor.is_admin or actor.acts_for(claiming_team_id)):
                raise Unauthorized(
                    f"{actor.actor_id} cannot claim players for team {claiming_team_id}",
                    context={"actor_id": actor.actor_id, "waiver_id": waiver_id},
                )

            if waiver.status != WaiverStatus.ACTIVE:
                raise InvalidStateTransition("waiver", waiver_id, waiver.status.value, WaiverStatus.CLAIMED.value)
            if now >= waiver.end_time:
                raise Timeout(
                    f"Waiver {waiver_id} closed at {waiver.end_time.isoformat()}",
                    deadline=waiver.end_time,
                    context={"waiver_id": waiver_id},
                )

            self.ledger.require_team(repo, claiming_team_id)
            player = self.status_machine.require_player(repo, waiver.player_id)

            if salary is None or term_days is None:
                prior = self._prior_contract(repo, waiver)
                if prior is None:
                    raise ValueError(f"Player {waiver.player_id} has no prior contract; salary and term_days are required")
                salary = prior.salary if salary is None else salary
                term_days = prior.term_days if term_days is None else term_days

            self.ledger.ensure_affordable(repo, claiming_team_id, salary)

            contract = self.contracts.activate_in(repo, waiver.player_id, claiming_team_id, salary, term_days, now)
            if not repo.waivers.resolve(waiver_id, WaiverStatus.CLAIMED, now, claiming_team_id):
                raise InvalidStateTransition("waiver", waiver_id, WaiverStatus.ACTIVE.value, WaiverStatus.CLAIMED.value)

            self.status_machine.transition(
                repo, waiver.player_id, PlayerStatus.SIGNED, now,
                team_id=claiming_team_id, reason=f"waiver claim {waiver_id}"
            )
            self.ledger.debit(repo, claiming_team_id, salary)
            repo.log.log_transaction(
                TransactionType.WAIVER_CLAIM,
                now,
                team_id=claiming_team_id,
                player_id=waiver.player_id,
                contract_id=contract.contract_id,
                cap_impact=-salary,
                description=f"Claimed {player.username} off waivers for ${salary:,}",
            )
            self.ledger.verify(repo, claiming_team_id)

        self.logger.info(
            f"Waiver {waiver_id}: player {waiver.player_id} claimed by team {claiming_team_id} for ${salary:,}"
        )
        return contract

    # ========================================================================
    # SWEEP
    # ========================================================================

    def sweep_expired(self, now: Optional[datetime] = None) -> List[int]:
        """
        Clear every active waiver whose window has ended.

        Each waiver is cleared in its own short transaction, guarded by a
        compare-and-set on status='active', so a claim that commits first
        wins and a second sweep with the same `now` changes nothing.

        Returns:
            IDs of waivers cleared by this call
        """
        now = self.clock() if now is None else as_utc(now)
        with self.db.read("waiver.sweep_scan") as repo:
            candidates = repo.waivers.expired_active_ids(now)

        cleared = []
        for waiver_id in candidates:
            with self.db.unit_of_work("waiver.sweep") as repo:
                if not repo.waivers.resolve(waiver_id, WaiverStatus.CLEARED, now):
                    continue

                waiver = repo.waivers.get_waiver(waiver_id)
                player = self.status_machine.require_player(repo, waiver.player_id)
                if player.status == PlayerStatus.WAIVERS:
                    self.status_machine.transition(
                        repo, waiver.player_id, PlayerStatus.FREE_AGENT, now,
                        reason=f"waiver {waiver_id} cleared"
                    )
                else:
                    self.logger.warning(
                        f"Waiver {waiver_id} cleared but player {waiver.player_id} is {player.status.value}"
                    )

                repo.log.log_transaction(
                    TransactionType.WAIVER_CLEAR,
                    now,
                    team_id=waiver.from_team_id,
                    player_id=waiver.player_id,
                    description=f"{player.username} cleared waivers",
                )
                cleared.append(waiver_id)

        if cleared:
            self.logger.info(f"Waiver sweep cleared {len(cleared)} waiver(s): {cleared}")
        return cleared

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_waiver(self, waiver_id: int) -> Waiver:
        with self.db.read("waiver.get") as repo:
            return self._require_waiver(repo, waiver_id)

    def active_waivers(self) -> List[Waiver]:
        """Players currently claimable, soonest-clearing first."""
        with self.db.read("waiver.active") as repo:
            return repo.waivers.list_waivers(WaiverStatus.ACTIVE)

    @staticmethod
    def _require_waiver(repo: LeagueRepository, waiver_id: int) -> Waiver:
        waiver = repo.waivers.get_waiver(waiver_id)
        if waiver is None:
            raise WaiverNotFound(waiver_id)
        return waiver

    @staticmethod
    def _prior_contract(repo: LeagueRepository, waiver: Waiver) -> Optional[Contract]:
        """Contract terminated by the release that opened this waiver."""
        for contract in reversed(repo.contracts.player_contracts(waiver.player_id)):
            if contract.status == ContractStatus.TERMINATED and contract.team_id == waiver.from_team_id:
                return contract
        return None
