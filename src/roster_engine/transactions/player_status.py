"""
Player Status State Machine

    free_agent --(contract activated)--> signed
    signed     --(released)-----------> waivers
    waivers    --(claimed/re-signed)---> signed
    waivers    --(waiver cleared)------> free_agent
    signed     --(trade approved)------> signed   (team change only)

Status, team reference and exemption are written together, and each
transition appends a player_status_history row.
"""

import logging
from datetime import datetime
from typing import Optional

from ..database.repository import LeagueRepository
from ..errors import InvalidStateTransition, PlayerNotFound
from ..models.entities import Player
from ..models.enums import PlayerStatus


ALLOWED_TRANSITIONS = frozenset({
    (PlayerStatus.FREE_AGENT, PlayerStatus.SIGNED),
    (PlayerStatus.SIGNED, PlayerStatus.WAIVERS),
    (PlayerStatus.WAIVERS, PlayerStatus.SIGNED),
    (PlayerStatus.WAIVERS, PlayerStatus.FREE_AGENT),
    (PlayerStatus.SIGNED, PlayerStatus.SIGNED),
})


class PlayerStatusMachine:
    """Validates and applies player affiliation changes inside a unit of work."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def can_transition(current, requested) -> bool:
        return (PlayerStatus.normalize(current), PlayerStatus.normalize(requested)) in ALLOWED_TRANSITIONS

    @staticmethod
    def require_player(repo: LeagueRepository, player_id: int) -> Player:
        player = repo.players.get_player(player_id)
        if player is None:
            raise PlayerNotFound(player_id)
        return player

    def transition(
        self,
        repo: LeagueRepository,
        player_id: int,
        requested,
        at: datetime,
        team_id: Optional[int] = None,
        reason: str = ""
    ) -> Player:
        """
        Move a player to a new status.

        Args:
            repo: Repository of the caller's unit of work
            player_id: Player to move
            requested: Target PlayerStatus (or its string value)
            at: Transition time recorded in history
            team_id: New team; required for signed, ignored otherwise
            reason: Short label for the history row ("signing", "release", ...)

        Returns:
            Player snapshot after the transition

        Raises:
            PlayerNotFound: Unknown player
            InvalidStateTransition: Transition not in the allowed set, or a
                trade that does not change the team
            ValueError: Moving to signed without a team
        """
        requested = PlayerStatus.normalize(requested)
        player = self.require_player(repo, player_id)
        current = player.status

        if not self.can_transition(current, requested):
            raise InvalidStateTransition("player", player_id, current.value, requested.value)

        if requested == PlayerStatus.SIGNED:
            if team_id is None:
                raise ValueError("team_id is required when signing a player")
            if current == PlayerStatus.SIGNED and player.current_team_id == team_id:
                raise InvalidStateTransition(
                    "player", player_id, current.value, requested.value,
                    message=f"Player {player_id} is already signed to team {team_id}"
                )
            # Traded players keep their exemption; new signings start non-exempt
            is_exempt = player.is_exempt if current == PlayerStatus.SIGNED else False
            new_team = team_id
        else:
            is_exempt = False
            new_team = None

        repo.players.update_affiliation(player_id, requested, new_team, is_exempt)
        repo.players.insert_status_change(
            player_id, current, requested, new_team if new_team is not None else player.current_team_id,
            reason, at
        )

        self.logger.debug(
            f"Player {player_id}: {current.value} -> {requested.value} "
            f"(team {player.current_team_id} -> {new_team}, {reason})"
        )

        player.status = requested
        player.current_team_id = new_team
        player.is_exempt = is_exempt
        return player
