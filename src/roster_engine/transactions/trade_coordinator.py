"""
Trade Transaction Coordinator

Two-phase trade workflow:

    1. propose          (team A)        -> pending
    2. accept / reject  (team B)        -> accepted / rejected
    3. admin_approve / admin_reject     -> admin_approved / admin_rejected
       (league administrator not acting for either team)

Only admin approval moves players. Approval re-validates every move, both
teams' cap space and exempt counts against the current store, then applies
all contract, player and cap changes in one transaction. Each step must
happen before its deadline; a late step fails with Timeout and leaves the
proposal untouched.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from ..config.engine_settings import EngineSettings
from ..database.connection import LeagueDatabase
from ..database.repository import LeagueRepository
from ..errors import (
    InvalidStateTransition,
    StalePrecondition,
    Timeout,
    TradeProposalNotFound,
    Unauthorized,
)
from ..models.entities import Actor, Contract, Player, TradeMove, TradeProposal
from ..models.enums import PlayerStatus, TradeStatus, TransactionType
from ..salary_cap.cap_ledger import CapLedger
from ..salary_cap.exemption_manager import ExemptionManager
from ..utils.time_utils import Clock, utc_clock, utc_now
from .player_status import PlayerStatusMachine


@dataclass
class _ValidatedMove:
    """A trade move checked against the current store."""

    move: TradeMove
    player: Player
    contract: Contract

    @property
    def counted_salary(self) -> int:
        return 0 if self.player.is_exempt else self.contract.salary


class TradeCoordinator:
    """
    Orchestrates proposals between two teams and their administrative review.
    """

    def __init__(
        self,
        db: LeagueDatabase,
        ledger: CapLedger,
        exemptions: ExemptionManager,
        status_machine: PlayerStatusMachine,
        settings: Optional[EngineSettings] = None,
        clock: Clock = utc_now
    ):
        self.db = db
        self.ledger = ledger
        self.exemptions = exemptions
        self.status_machine = status_machine
        self.settings = settings or db.settings
        self.clock = utc_clock(clock)
        self.logger = logging.getLogger(__name__)

    # ========================================================================
    # PHASE 1: PROPOSAL
    # ========================================================================

    def propose(
        self,
        actor: Actor,
        from_team_id: int,
        to_team_id: int,
        player_ids: Sequence[int],
        return_player_ids: Sequence[int] = (),
        note: Optional[str] = None
    ) -> TradeProposal:
        """
        Propose sending players from one team to another.

        Args:
            actor: Agent acting for from_team_id
            from_team_id: Proposing team
            to_team_id: Receiving team
            player_ids: Players moving from -> to (at least one)
            return_player_ids: Players moving to -> from (optional)
            note: Free-text message for the receiving team

        Returns:
            Pending proposal with a response deadline

        Raises:
            ValueError: Same team on both sides, no players, or a player listed twice
            Unauthorized: Actor does not act for the proposing team
            TeamNotFound / PlayerNotFound: Unknown team or player
            StalePrecondition: A player is not signed to the side giving them up
                or has no active contract
            InsufficientCap: Either team cannot absorb its net incoming salary
            ExemptionLimitReached: Either team would exceed the exempt limit
        """
        if from_team_id == to_team_id:
            raise ValueError("A team cannot trade with itself")
        if not player_ids:
            raise ValueError("A trade must move at least one player")
        all_ids = list(player_ids) + list(return_player_ids)
        if len(set(all_ids)) != len(all_ids):
            raise ValueError(f"Players listed more than once: {all_ids}")

        if not actor.acts_for(from_team_id):
            raise Unauthorized(
                f"{actor.actor_id} cannot propose trades for team {from_team_id}",
                context={"actor_id": actor.actor_id, "team_id": from_team_id},
            )

        moves = [TradeMove(pid, from_team_id, to_team_id) for pid in player_ids]
        moves += [TradeMove(pid, to_team_id, from_team_id) for pid in return_player_ids]
        now = self.clock()

        with self.db.unit_of_work("trade.propose") as repo:
            self.ledger.require_team(repo, from_team_id)
            self.ledger.require_team(repo, to_team_id)

            validated = self._validate_moves(repo, moves)
            self._check_cap(repo, validated)
            self._check_exemptions(repo, validated)

            proposal_id = repo.trades.insert_proposal(
                from_team_id=from_team_id,
                to_team_id=to_team_id,
                moves=moves,
                proposed_by=actor.actor_id,
                response_deadline=now + self.settings.trade_response_window,
                created_at=now,
                note=note,
            )
            proposal = repo.trades.get_proposal(proposal_id)

        self.logger.info(
            f"Trade {proposal_id} proposed by {actor.actor_id}: team {from_team_id} -> team {to_team_id}, "
            f"players {list(player_ids)} (return {list(return_player_ids)})"
        )
        return proposal

    # ========================================================================
    # PHASE 2: RECEIVING TEAM
    # ========================================================================

    def accept(self, actor: Actor, proposal_id: int, note: Optional[str] = None) -> TradeProposal:
        """
        Receiving team accepts; the proposal goes to administrative review.

        Raises:
            TradeProposalNotFound, Unauthorized, InvalidStateTransition, Timeout
        """
        return self._respond(actor, proposal_id, TradeStatus.ACCEPTED, note)

    def reject(self, actor: Actor, proposal_id: int, note: Optional[str] = None) -> TradeProposal:
        """Receiving team declines. Terminal."""
        return self._respond(actor, proposal_id, TradeStatus.REJECTED, note)

    def _respond(
        self,
        actor: Actor,
        proposal_id: int,
        decision: TradeStatus,
        note: Optional[str]
    ) -> TradeProposal:
        now = self.clock()

        with self.db.unit_of_work(f"trade.{decision.value}") as repo:
            proposal = self._require_proposal(repo, proposal_id)

            if not actor.acts_for(proposal.to_team_id):
                raise Unauthorized(
                    f"Only team {proposal.to_team_id} can answer trade {proposal_id}",
                    context={"actor_id": actor.actor_id, "proposal_id": proposal_id},
                )

            self._require_status(proposal, TradeStatus.PENDING, decision)
            self._check_deadline(proposal, proposal.response_deadline, now, "response")

            review_deadline = now + self.settings.admin_review_window if decision == TradeStatus.ACCEPTED else None
            if not repo.trades.record_response(proposal_id, decision, actor.actor_id, now, review_deadline, note):
                raise InvalidStateTransition("trade proposal", proposal_id, proposal.status.value, decision.value)
            proposal = repo.trades.get_proposal(proposal_id)

        self.logger.info(f"Trade {proposal_id} {decision.value} by {actor.actor_id} for team {proposal.to_team_id}")
        return proposal

    # ========================================================================
    # PHASE 3: ADMINISTRATIVE REVIEW
    # ========================================================================

    def admin_approve(self, actor: Actor, proposal_id: int, note: Optional[str] = None) -> TradeProposal:
        """
        Approve an accepted trade and apply it.

        Raises:
            TradeProposalNotFound: Unknown proposal
            Unauthorized: Actor is not an admin, or acts for one of the teams
            InvalidStateTransition: Proposal is not awaiting review
            Timeout: Review deadline has passed
            StalePrecondition: A player changed team or contract since proposal
            InsufficientCap: A team can no longer absorb its net incoming salary
            ExemptionLimitReached: A team would exceed the exempt limit
        """
        now = self.clock()

        with self.db.unit_of_work("trade.admin_approve") as repo:
            proposal = self._require_reviewable(repo, actor, proposal_id, TradeStatus.ADMIN_APPROVED, now)
            self._apply(repo, proposal, now)
            if not repo.trades.record_review(proposal_id, TradeStatus.ADMIN_APPROVED, actor.actor_id, now, note):
                raise InvalidStateTransition(
                    "trade proposal", proposal_id, proposal.status.value, TradeStatus.ADMIN_APPROVED.value
                )
            proposal = repo.trades.get_proposal(proposal_id)

        self.logger.info(
            f"Trade {proposal_id} approved by {actor.actor_id}: {len(proposal.moves)} player(s) moved "
            f"between teams {proposal.from_team_id} and {proposal.to_team_id}"
        )
        return proposal

    def admin_reject(self, actor: Actor, proposal_id: int, note: Optional[str] = None) -> TradeProposal:
        """Veto an accepted trade. Terminal; no roster change."""
        now = self.clock()

        with self.db.unit_of_work("trade.admin_reject") as repo:
            proposal = self._require_reviewable(repo, actor, proposal_id, TradeStatus.ADMIN_REJECTED, now)
            if not repo.trades.record_review(proposal_id, TradeStatus.ADMIN_REJECTED, actor.actor_id, now, note):
                raise InvalidStateTransition(
                    "trade proposal", proposal_id, proposal.status.value, TradeStatus.ADMIN_REJECTED.value
                )
            proposal = repo.trades.get_proposal(proposal_id)

        self.logger.info(f"Trade {proposal_id} rejected by admin {actor.actor_id}")
        return proposal

    def _require_reviewable(
        self,
        repo: LeagueRepository,
        actor: Actor,
        proposal_id: int,
        decision: TradeStatus,
        now: datetime
    ) -> TradeProposal:
        proposal = self._require_proposal(repo, proposal_id)

        if not actor.is_admin:
            raise Unauthorized(
                f"{actor.actor_id} is not a league administrator",
                context={"actor_id": actor.actor_id, "proposal_id": proposal_id},
            )
        if actor.team_id in (proposal.from_team_id, proposal.to_team_id):
            raise Unauthorized(
                f"{actor.actor_id} cannot review a trade involving team {actor.team_id}",
                context={"actor_id": actor.actor_id, "proposal_id": proposal_id},
            )

        self._require_status(proposal, TradeStatus.ACCEPTED, decision)
        self._check_deadline(proposal, proposal.review_deadline, now, "review")
        return proposal

    # ========================================================================
    # APPLICATION
    # ========================================================================

    def _apply(self, repo: LeagueRepository, proposal: TradeProposal, now: datetime) -> None:
        """
        Move every player in the proposal. Raises before the first write if
        any check fails; a failure after that rolls back with the transaction.
        """
        validated = self._validate_moves(repo, proposal.moves)
        self._check_cap(repo, validated)
        self._check_exemptions(repo, validated)

        for item in sorted(validated, key=lambda v: v.move.player_id):
            move = item.move
            repo.contracts.repoint(item.contract.contract_id, move.to_team_id)
            self.status_machine.transition(
                repo, move.player_id, PlayerStatus.SIGNED, now,
                team_id=move.to_team_id, reason=f"trade {proposal.proposal_id}"
            )

            description = f"Trade {proposal.proposal_id}: {item.player.username} to team {move.to_team_id}"
            repo.log.log_transaction(
                TransactionType.TRADE, now, team_id=move.from_team_id, player_id=move.player_id,
                contract_id=item.contract.contract_id, cap_impact=item.counted_salary, description=description,
            )
            repo.log.log_transaction(
                TransactionType.TRADE, now, team_id=move.to_team_id, player_id=move.player_id,
                contract_id=item.contract.contract_id, cap_impact=-item.counted_salary, description=description,
            )

        net = self._net_incoming(validated)
        for team_id in sorted(net):
            if net[team_id] > 0:
                self.ledger.debit(repo, team_id, net[team_id])
            elif net[team_id] < 0:
                self.ledger.credit(repo, team_id, -net[team_id])

        for team_id in sorted(net):
            self.ledger.verify(repo, team_id)

    def _validate_moves(self, repo: LeagueRepository, moves: Iterable[TradeMove]) -> List[_ValidatedMove]:
        validated = []
        for move in moves:
            player = self.status_machine.require_player(repo, move.player_id)

            if player.status != PlayerStatus.SIGNED or player.current_team_id != move.from_team_id:
                raise StalePrecondition(
                    f"Player {move.player_id} is no longer signed to team {move.from_team_id}",
                    context={
                        "player_id": move.player_id,
                        "expected_team_id": move.from_team_id,
                        "current_team_id": player.current_team_id,
                    },
                )

            contract = repo.contracts.find_active_contract(move.player_id)
            if contract is None or contract.team_id != move.from_team_id:
                raise StalePrecondition(
                    f"Player {move.player_id} has no active contract with team {move.from_team_id}",
                    context={"player_id": move.player_id, "expected_team_id": move.from_team_id},
                )

            validated.append(_ValidatedMove(move, player, contract))
        return validated

    @staticmethod
    def _net_incoming(validated: Iterable[_ValidatedMove]) -> Dict[int, int]:
        """Counted salary each team gains (positive) or sheds (negative)."""
        net: Dict[int, int] = defaultdict(int)
        for item in validated:
            net[item.move.to_team_id] += item.counted_salary
            net[item.move.from_team_id] -= item.counted_salary
        return dict(net)

    def _check_cap(self, repo: LeagueRepository, validated: List[_ValidatedMove]) -> None:
        net = self._net_incoming(validated)
        for team_id in sorted(net):
            self.ledger.ensure_affordable(repo, team_id, net[team_id])

    def _check_exemptions(self, repo: LeagueRepository, validated: List[_ValidatedMove]) -> None:
        incoming: Dict[int, int] = defaultdict(int)
        outgoing: Dict[int, int] = defaultdict(int)
        for item in validated:
            if item.player.is_exempt:
                incoming[item.move.to_team_id] += 1
                outgoing[item.move.from_team_id] += 1

        for team_id in sorted(incoming):
            self.exemptions.check_limit(repo, team_id, incoming=incoming[team_id], outgoing=outgoing[team_id])

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_proposal(self, proposal_id: int) -> TradeProposal:
        with self.db.read("trade.get") as repo:
            return self._require_proposal(repo, proposal_id)

    def list_proposals(
        self,
        team_id: Optional[int] = None,
        status=None,
        include_lapsed: bool = False
    ) -> List[TradeProposal]:
        """
        Proposals involving a team and/or in a given status, newest first.

        A proposal whose response or review deadline has passed keeps its
        stored status (a late step fails with Timeout and writes nothing),
        so it is left out unless include_lapsed is set.
        """
        if status is not None:
            status = TradeStatus.normalize(status)
        now = self.clock()
        with self.db.read("trade.list") as repo:
            proposals = repo.trades.list_proposals(team_id=team_id, status=status)
        if include_lapsed:
            return proposals
        return [p for p in proposals if not p.is_lapsed(now)]

    # ========================================================================
    # HELPERS
    # ========================================================================

    @staticmethod
    def _require_proposal(repo: LeagueRepository, proposal_id: int) -> TradeProposal:
        proposal = repo.trades.get_proposal(proposal_id)
        if proposal is None:
            raise TradeProposalNotFound(proposal_id)
        return proposal

    @staticmethod
    def _require_status(proposal: TradeProposal, expected: TradeStatus, requested: TradeStatus) -> None:
        if proposal.status != expected:
            raise InvalidStateTransition(
                "trade proposal", proposal.proposal_id, proposal.status.value, requested.value
            )

    @staticmethod
    def _check_deadline(
        proposal: TradeProposal,
        deadline: Optional[datetime],
        now: datetime,
        phase: str
    ) -> None:
        if deadline is not None and now >= deadline:
            raise Timeout(
                f"Trade {proposal.proposal_id} {phase} window closed",
                deadline=deadline,
                context={"proposal_id": proposal.proposal_id, "phase": phase},
            )
