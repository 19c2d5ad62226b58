"""
Exemption Manager

A team may carry at most MAX_EXEMPT_PER_TEAM players whose salary does not
count against the ceiling. Flipping the flag moves the player's active
salary in or out of the team's available cap.
"""

import logging
from typing import List, Optional

from ..config.engine_settings import EngineSettings
from ..database.connection import LeagueDatabase
from ..database.repository import LeagueRepository
from ..errors import ExemptionLimitReached, InvalidStateTransition, PlayerNotFound, Unauthorized
from ..models.entities import Actor, Player
from ..models.enums import PlayerStatus, TransactionType
from ..utils.time_utils import Clock, utc_clock, utc_now
from .cap_ledger import CapLedger


class ExemptionManager:
    """
    Designates cap-exempt players.

    Provides:
    - set_exempt: flag or unflag a signed player, moving the cap accordingly
    - exempt_players: current designations for a team
    - check_limit: exempt-count check used by trades inside their transaction
    """

    def __init__(
        self,
        db: LeagueDatabase,
        ledger: CapLedger,
        settings: Optional[EngineSettings] = None,
        clock: Clock = utc_now
    ):
        self.db = db
        self.ledger = ledger
        self.settings = settings or db.settings
        self.clock = utc_clock(clock)
        self.logger = logging.getLogger(__name__)

    def set_exempt(self, player_id: int, exempt: bool, actor: Optional[Actor] = None) -> Player:
        """
        Set or clear a player's cap exemption.

        Becoming exempt credits the team's available cap by the active
        salary; losing the exemption debits it. Setting the flag to its
        current value changes nothing.

        Args:
            player_id: Player ID
            exempt: Desired flag
            actor: Acting party; must be a league admin or act for the player's team

        Returns:
            Player after the change

        Raises:
            PlayerNotFound: Unknown player
            InvalidStateTransition: Exempting a player who is not signed
            ExemptionLimitReached: Team already has the maximum exempt players
            Unauthorized: Actor has no authority over the player's team
        """
        with self.db.unit_of_work("exemption.set") as repo:
            player = repo.players.get_player(player_id)
            if player is None:
                raise PlayerNotFound(player_id)

            if actor is not None and not (actor.is_admin or actor.acts_for(player.current_team_id)):
                raise Unauthorized(
                    f"{actor.actor_id} cannot change exemptions for team {player.current_team_id}",
                    context={"actor_id": actor.actor_id, "player_id": player_id},
                )

            if player.is_exempt == exempt:
                return player

            if player.status != PlayerStatus.SIGNED:
                raise InvalidStateTransition(
                    "player", player_id, player.status.value, "exempt",
                    message=f"Player {player_id} must be signed to be cap-exempt"
                )

            team_id = player.current_team_id
            if exempt:
                self.check_limit(repo, team_id, incoming=1, player_id=player_id)

            contract = repo.contracts.find_active_contract(player_id)
            salary = contract.salary if contract else 0

            repo.players.set_exempt(player_id, exempt)
            if exempt:
                self.ledger.credit(repo, team_id, salary)
                cap_impact = salary
            else:
                self.ledger.debit(repo, team_id, salary)
                cap_impact = -salary

            repo.log.log_transaction(
                TransactionType.EXEMPTION,
                self.clock(),
                team_id=team_id,
                player_id=player_id,
                contract_id=contract.contract_id if contract else None,
                cap_impact=cap_impact,
                description=f"{'Exempted' if exempt else 'Removed exemption for'} {player.username}",
            )
            self.ledger.verify(repo, team_id)

            if not exempt and self.ledger.compute(repo, team_id) < 0:
                self.logger.warning(f"Team {team_id} is over the cap after removing exemption for player {player_id}")

            player.is_exempt = exempt

        self.logger.info(
            f"Player {player_id} exemption {'set' if exempt else 'cleared'} on team {team_id} "
            f"(cap impact {cap_impact:+,})"
        )
        return player

    def exempt_players(self, team_id: int) -> List[Player]:
        with self.db.read("exemption.list") as repo:
            self.ledger.require_team(repo, team_id)
            return repo.players.exempt_players(team_id)

    def check_limit(
        self,
        repo: LeagueRepository,
        team_id: int,
        incoming: int = 1,
        player_id: Optional[int] = None,
        outgoing: int = 0
    ) -> None:
        """
        Ensure a team can take on `incoming` more exempt players.

        Args:
            outgoing: Exempt players leaving the team in the same operation

        Raises:
            ExemptionLimitReached: If the count would exceed the limit
        """
        if incoming <= 0:
            return
        limit = self.settings.MAX_EXEMPT_PER_TEAM
        current = repo.teams.count_exempt_players(team_id)
        if current - outgoing + incoming > limit:
            raise ExemptionLimitReached(team_id, limit, player_id=player_id)
