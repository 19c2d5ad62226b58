"""
Contract Manager

Lifecycle of a player contract:

    pending --accept--> active --terminate--> terminated
    pending --reject--> rejected
    pending --expire--> expired
    pending --withdraw--> declined

Offers do not reserve cap space. Acceptance re-checks the team's cap inside
the write lock, so two outstanding offers can never both activate if
together they would put the team over the ceiling.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from ..config.engine_settings import EngineSettings
from ..database.connection import LeagueDatabase
from ..database.repository import LeagueRepository
from ..errors import (
    ContractNotFound,
    InvalidStateTransition,
    OfferExpired,
    PlayerAlreadyUnderContract,
    Unauthorized,
)
from ..models.entities import Actor, Contract, Player
from ..models.enums import ContractStatus, PlayerStatus, TransactionType, WaiverStatus
from ..salary_cap.cap_ledger import CapLedger
from ..transactions.player_status import PlayerStatusMachine
from ..utils.time_utils import Clock, as_utc, utc_clock, utc_now
from .contract_templates import entry_level


class ContractManager:
    """
    Manages contract offers and their resolution.

    Provides:
    - Offers (custom terms and the ELC template)
    - Accept / reject by the player, withdraw by the team, expiry
    - Termination (used by releases)
    - Direct activation for waiver claims
    """

    def __init__(
        self,
        db: LeagueDatabase,
        ledger: CapLedger,
        status_machine: PlayerStatusMachine,
        settings: Optional[EngineSettings] = None,
        clock: Clock = utc_now
    ):
        self.db = db
        self.ledger = ledger
        self.status_machine = status_machine
        self.settings = settings or db.settings
        self.clock = utc_clock(clock)
        self.logger = logging.getLogger(__name__)

    # ========================================================================
    # OFFERS
    # ========================================================================

    def offer(
        self,
        player_id: int,
        team_id: int,
        salary: int,
        term_days: int,
        originating_message_ref: Optional[str] = None
    ) -> Contract:
        """
        Offer a player a contract.

        Args:
            player_id: Player ID
            team_id: Offering team
            salary: Salary per term (must be positive)
            term_days: Contract length in days (must be positive)
            originating_message_ref: Consumer's reference to the offer message

        Returns:
            Pending contract; term runs [now, now + term_days] and the offer
            must be answered before now + OFFER_EXPIRY_HOURS

        Raises:
            ValueError: Non-positive salary or term
            TeamNotFound: Unknown team
            PlayerNotFound: Unknown player
            PlayerAlreadyUnderContract: Player has a pending or active contract
            InsufficientCap: Team cannot afford the salary today
        """
        self._validate_terms(salary, term_days)
        now = self.clock()

        with self.db.unit_of_work("contract.offer") as repo:
            self.ledger.require_team(repo, team_id)
            self.status_machine.require_player(repo, player_id)

            existing = repo.contracts.find_open_contract(player_id)
            if existing is not None:
                raise PlayerAlreadyUnderContract(player_id, existing.contract_id, existing.status.value)

            self.ledger.ensure_affordable(repo, team_id, salary)

            contract_id = repo.contracts.insert_contract(
                player_id=player_id,
                team_id=team_id,
                salary=salary,
                term_days=term_days,
                start_date=now,
                end_date=now + timedelta(days=term_days),
                status=ContractStatus.PENDING,
                created_at=now,
                offer_expires_at=now + self.settings.offer_expiry,
                originating_message_ref=originating_message_ref,
            )
            contract = repo.contracts.get_contract(contract_id)

        self.logger.info(
            f"Contract {contract_id} offered: player {player_id} to team {team_id}, "
            f"${salary:,} for {term_days} days"
        )
        return contract

    def offer_entry_level(
        self,
        player_id: int,
        team_id: int,
        originating_message_ref: Optional[str] = None
    ) -> Contract:
        """Offer the standard entry-level contract."""
        template = entry_level(self.settings)
        return self.offer(
            player_id, team_id, template.salary, template.term_days,
            originating_message_ref=originating_message_ref
        )

    # ========================================================================
    # RESOLUTION
    # ========================================================================

    def accept(self, contract_id: int, actor: Optional[Actor] = None) -> Contract:
        """
        Player accepts a pending offer.

        Effects, in one transaction: the contract becomes active, the player
        becomes signed to the offering team, the team's cap is debited, and
        an active waiver on the player (if any) is closed as claimed by the
        signing team, or as cleared if its window has already ended.

        Raises:
            ContractNotFound: Unknown contract
            InvalidStateTransition: Contract is not pending
            OfferExpired: Offer deadline has passed
            Unauthorized: Actor is neither the player nor a league admin
            InsufficientCap: Team can no longer afford the salary
        """
        now = self.clock()

        with self.db.unit_of_work("contract.accept") as repo:
            contract = self._require_pending(repo, contract_id, ContractStatus.ACTIVE, now)
            player = self.status_machine.require_player(repo, contract.player_id)
            self._check_player_actor(actor, player)

            if player.status == PlayerStatus.SIGNED:
                raise InvalidStateTransition(
                    "player", player.player_id, player.status.value, PlayerStatus.SIGNED.value,
                    message=f"Player {player.player_id} is already signed to team {player.current_team_id}"
                )

            self.ledger.ensure_affordable(repo, contract.team_id, contract.salary)

            self._transition(repo, contract, ContractStatus.PENDING, ContractStatus.ACTIVE, now)

            waiver = repo.waivers.find_active_waiver(player.player_id)
            if waiver is not None:
                # Window already over: the waiver cleared, nobody claimed it
                if now >= waiver.end_time:
                    repo.waivers.resolve(waiver.waiver_id, WaiverStatus.CLEARED, now)
                else:
                    repo.waivers.resolve(waiver.waiver_id, WaiverStatus.CLAIMED, now, contract.team_id)

            self.status_machine.transition(
                repo, player.player_id, PlayerStatus.SIGNED, now,
                team_id=contract.team_id, reason="signing"
            )
            self.ledger.debit(repo, contract.team_id, contract.salary)
            repo.log.log_transaction(
                TransactionType.SIGNING,
                now,
                team_id=contract.team_id,
                player_id=player.player_id,
                contract_id=contract_id,
                cap_impact=-contract.salary,
                description=f"Signed {player.username} for ${contract.salary:,} ({contract.term_days} days)",
            )
            self.ledger.verify(repo, contract.team_id)

        self.logger.info(
            f"Contract {contract_id} accepted: player {contract.player_id} signed to team "
            f"{contract.team_id} for ${contract.salary:,}"
        )
        return contract

    def reject(self, contract_id: int, actor: Optional[Actor] = None) -> Contract:
        """
        Player turns down a pending offer. No roster or cap change.

        Raises:
            ContractNotFound, InvalidStateTransition, OfferExpired, Unauthorized
        """
        now = self.clock()
        with self.db.unit_of_work("contract.reject") as repo:
            contract = self._require_pending(repo, contract_id, ContractStatus.REJECTED, now)
            player = self.status_machine.require_player(repo, contract.player_id)
            self._check_player_actor(actor, player)
            self._transition(repo, contract, ContractStatus.PENDING, ContractStatus.REJECTED, now)

        self.logger.info(f"Contract {contract_id} rejected by player {contract.player_id}")
        return contract

    def expire(self, contract_id: int) -> Contract:
        """Mark a pending offer expired. No roster or cap change."""
        now = self.clock()
        with self.db.unit_of_work("contract.expire") as repo:
            contract = self._require_pending(repo, contract_id, ContractStatus.EXPIRED, now, check_deadline=False)
            self._transition(repo, contract, ContractStatus.PENDING, ContractStatus.EXPIRED, now)

        self.logger.info(f"Contract offer {contract_id} expired")
        return contract

    def withdraw(self, contract_id: int, actor: Optional[Actor] = None) -> Contract:
        """
        Offering team pulls a pending offer (status declined).

        Raises:
            ContractNotFound, InvalidStateTransition
            Unauthorized: Actor does not act for the offering team
        """
        now = self.clock()
        with self.db.unit_of_work("contract.withdraw") as repo:
            contract = self._require_pending(repo, contract_id, ContractStatus.DECLINED, now, check_deadline=False)
            if actor is not None and not (actor.is_admin or actor.acts_for(contract.team_id)):
                raise Unauthorized(
                    f"{actor.actor_id} cannot withdraw offers for team {contract.team_id}",
                    context={"actor_id": actor.actor_id, "contract_id": contract_id},
                )
            self._transition(repo, contract, ContractStatus.PENDING, ContractStatus.DECLINED, now)

        self.logger.info(f"Contract offer {contract_id} withdrawn by team {contract.team_id}")
        return contract

    def terminate(self, contract_id: int) -> Contract:
        """
        End an active contract.

        Player status is untouched; the team's cached cap is recomputed so
        the salary stops counting. Callers that end a contract as part of a
        roster move (release) update player status and cap themselves.

        Raises:
            ContractNotFound: Unknown contract
            InvalidStateTransition: Contract is not active
        """
        now = self.clock()
        with self.db.unit_of_work("contract.terminate") as repo:
            contract = self.terminate_in(repo, contract_id, now)
            self.ledger.refresh(repo, contract.team_id)

        self.logger.info(f"Contract {contract_id} terminated")
        return contract

    def expire_stale_offers(self, now: Optional[datetime] = None) -> List[int]:
        """
        Expire every pending offer whose deadline has passed.

        Each offer is expired in its own short transaction guarded by its
        pending status, so an acceptance that commits first wins.

        Returns:
            IDs of contracts this call expired
        """
        now = self.clock() if now is None else as_utc(now)
        with self.db.read("contract.stale_offers") as repo:
            candidates = repo.contracts.stale_offer_ids(now)

        expired = []
        for contract_id in candidates:
            with self.db.unit_of_work("contract.expire_stale") as repo:
                if repo.contracts.update_status(contract_id, ContractStatus.EXPIRED, ContractStatus.PENDING, now):
                    expired.append(contract_id)

        if expired:
            self.logger.info(f"Expired {len(expired)} stale offer(s): {expired}")
        return expired

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_contract(self, contract_id: int) -> Contract:
        with self.db.read("contract.get") as repo:
            return self._require_contract(repo, contract_id)

    def find_active_contract(self, player_id: int) -> Optional[Contract]:
        with self.db.read("contract.find_active") as repo:
            self.status_machine.require_player(repo, player_id)
            return repo.contracts.find_active_contract(player_id)

    # ========================================================================
    # UNIT-OF-WORK HELPERS
    # ========================================================================

    def terminate_in(self, repo: LeagueRepository, contract_id: int, at: datetime) -> Contract:
        """Active -> terminated inside the caller's transaction."""
        contract = self._require_contract(repo, contract_id)
        if contract.status != ContractStatus.ACTIVE:
            raise InvalidStateTransition(
                "contract", contract_id, contract.status.value, ContractStatus.TERMINATED.value
            )
        self._transition(repo, contract, ContractStatus.ACTIVE, ContractStatus.TERMINATED, at)
        return contract

    def activate_in(
        self,
        repo: LeagueRepository,
        player_id: int,
        team_id: int,
        salary: int,
        term_days: int,
        at: datetime
    ) -> Contract:
        """
        Create an already-active contract (waiver claims skip the offer step).

        The caller moves the player and debits the cap.
        """
        self._validate_terms(salary, term_days)
        existing = repo.contracts.find_open_contract(player_id)
        if existing is not None:
            raise PlayerAlreadyUnderContract(player_id, existing.contract_id, existing.status.value)

        contract_id = repo.contracts.insert_contract(
            player_id=player_id,
            team_id=team_id,
            salary=salary,
            term_days=term_days,
            start_date=at,
            end_date=at + timedelta(days=term_days),
            status=ContractStatus.ACTIVE,
            created_at=at,
        )
        return repo.contracts.get_contract(contract_id)

    @staticmethod
    def _validate_terms(salary: int, term_days: int) -> None:
        if not isinstance(salary, int) or salary <= 0:
            raise ValueError(f"salary must be a positive integer, got {salary!r}")
        if not isinstance(term_days, int) or term_days <= 0:
            raise ValueError(f"term_days must be a positive integer, got {term_days!r}")

    @staticmethod
    def _require_contract(repo: LeagueRepository, contract_id: int) -> Contract:
        contract = repo.contracts.get_contract(contract_id)
        if contract is None:
            raise ContractNotFound(contract_id)
        return contract

    def _require_pending(
        self,
        repo: LeagueRepository,
        contract_id: int,
        requested: ContractStatus,
        now: datetime,
        check_deadline: bool = True
    ) -> Contract:
        contract = self._require_contract(repo, contract_id)
        if contract.status != ContractStatus.PENDING:
            raise InvalidStateTransition("contract", contract_id, contract.status.value, requested.value)
        if check_deadline and contract.offer_expires_at is not None and now >= contract.offer_expires_at:
            raise OfferExpired(contract_id, deadline=contract.offer_expires_at)
        return contract

    @staticmethod
    def _transition(
        repo: LeagueRepository,
        contract: Contract,
        expected: ContractStatus,
        new_status: ContractStatus,
        at: datetime
    ) -> None:
        if not repo.contracts.update_status(contract.contract_id, new_status, expected, at):
            raise InvalidStateTransition("contract", contract.contract_id, expected.value, new_status.value)
        contract.status = new_status
        contract.resolved_at = at

    @staticmethod
    def _check_player_actor(actor: Optional[Actor], player: Player) -> None:
        """Only the player (by external identity) or an admin answers an offer."""
        if actor is None or actor.is_admin or actor.actor_id == player.external_id:
            return
        raise Unauthorized(
            f"{actor.actor_id} cannot answer offers made to {player.username}",
            context={"actor_id": actor.actor_id, "player_id": player.player_id},
        )
