"""
Status enums for roster entities.

Values are the strings persisted in the database.
"""

from enum import Enum


class PlayerStatus(Enum):
    """Single source of truth for a player's affiliation."""

    FREE_AGENT = "free_agent"
    """Not under contract and not on waivers."""

    SIGNED = "signed"
    """Under an active contract with current_team_id set."""

    WAIVERS = "waivers"
    """Released and available to be claimed until the waiver clears."""

    @staticmethod
    def normalize(status) -> 'PlayerStatus':
        """Convert string or enum to PlayerStatus enum."""
        if isinstance(status, PlayerStatus):
            return status
        return PlayerStatus(status)


class ContractStatus(Enum):
    """Contract lifecycle. Only the contract manager writes this."""

    PENDING = "pending"
    """Offered, awaiting the player's answer."""

    ACTIVE = "active"
    """Accepted; counts against the team's cap unless the player is exempt."""

    REJECTED = "rejected"
    """Player turned the offer down."""

    EXPIRED = "expired"
    """Offer was not answered before its deadline."""

    DECLINED = "declined"
    """Offering team withdrew the offer."""

    TERMINATED = "terminated"
    """Active contract ended early by a release."""


class TradeStatus(Enum):
    """Two-phase trade workflow."""

    PENDING = "pending"
    """Proposed, awaiting the receiving team."""

    ACCEPTED = "accepted"
    """Receiving team agreed; forwarded to league administration."""

    REJECTED = "rejected"
    """Receiving team declined."""

    ADMIN_APPROVED = "admin_approved"
    """Administrator approved; roster and cap changes applied."""

    ADMIN_REJECTED = "admin_rejected"
    """Administrator vetoed the trade."""

    @property
    def is_terminal(self) -> bool:
        return self not in (TradeStatus.PENDING, TradeStatus.ACCEPTED)

    @staticmethod
    def normalize(status) -> 'TradeStatus':
        if isinstance(status, TradeStatus):
            return status
        return TradeStatus(status)


class WaiverStatus(Enum):
    """Waiver wire entry lifecycle."""

    ACTIVE = "active"
    CLEARED = "cleared"
    CLAIMED = "claimed"


class TransactionType(Enum):
    """Audit log categories for roster_transactions."""

    SIGNING = "SIGNING"
    RELEASE = "RELEASE"
    TRADE = "TRADE"
    WAIVER_CLAIM = "WAIVER_CLAIM"
    WAIVER_CLEAR = "WAIVER_CLEAR"
    EXEMPTION = "EXEMPTION"
    CAP_ADJUSTMENT = "CAP_ADJUSTMENT"
