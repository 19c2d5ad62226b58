"""
Roster Engine Exception Hierarchy

Every business-rule rejection raised by the engine is a RosterEngineError.
Consumers (chat command handlers, web handlers) map `kind` to a message for
the user; the engine itself never formats user-facing text and never
retries.

Exception Hierarchy:
    RosterEngineError (base)
    ├── NotFound
    │   ├── TeamNotFound
    │   ├── PlayerNotFound
    │   ├── ContractNotFound
    │   ├── TradeProposalNotFound
    │   └── WaiverNotFound
    ├── InvalidStateTransition
    ├── InsufficientCap
    ├── ExemptionLimitReached
    ├── PlayerAlreadyUnderContract
    ├── StalePrecondition
    ├── Timeout
    │   └── OfferExpired
    └── Unauthorized

A raised error always means the surrounding unit of work was rolled back:
no entity touched by the failed operation changed.
"""

from datetime import datetime
from typing import Any, Dict, Optional


class RosterEngineError(Exception):
    """
    Base exception for engine failures.

    Attributes:
        message: Human-readable error message
        error_code: Stable code for this failure
        kind: Error kind consumers switch on (e.g. "InsufficientCap")
        context: Entity ids and values involved
        timestamp: When the exception was raised
    """

    kind = "RosterEngineError"
    default_code = "ROSTER_000"

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.context = context or {}
        self.timestamp = datetime.now().isoformat()
        super().__init__(f"[{self.error_code}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "kind": self.kind,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp,
        }


# ============================================================================
# NOT FOUND
# ============================================================================

class NotFound(RosterEngineError):
    """Raised when a referenced entity does not exist."""

    kind = "NotFound"
    default_code = "ROSTER_404"
    entity = "entity"

    def __init__(self, entity_id: Any, message: Optional[str] = None):
        self.entity_id = entity_id
        super().__init__(
            message or f"{self.entity.capitalize()} {entity_id} not found",
            context={"entity": self.entity, "entity_id": entity_id},
        )


class TeamNotFound(NotFound):
    entity = "team"
    default_code = "ROSTER_404_TEAM"


class PlayerNotFound(NotFound):
    entity = "player"
    default_code = "ROSTER_404_PLAYER"


class ContractNotFound(NotFound):
    entity = "contract"
    default_code = "ROSTER_404_CONTRACT"


class TradeProposalNotFound(NotFound):
    entity = "trade proposal"
    default_code = "ROSTER_404_TRADE"


class WaiverNotFound(NotFound):
    entity = "waiver"
    default_code = "ROSTER_404_WAIVER"


# ============================================================================
# RULE VIOLATIONS
# ============================================================================

class InvalidStateTransition(RosterEngineError):
    """
    Raised when an entity is not in a state that allows the requested
    transition (e.g. accepting a contract that is no longer pending).
    """

    kind = "InvalidStateTransition"
    default_code = "ROSTER_STATE_001"

    def __init__(
        self,
        entity: str,
        entity_id: Any,
        current: Any,
        requested: Any,
        message: Optional[str] = None
    ):
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Cannot move {entity} {entity_id} from '{current}' to '{requested}'",
            context={
                "entity": entity,
                "entity_id": entity_id,
                "current": str(current),
                "requested": str(requested),
            },
        )


class InsufficientCap(RosterEngineError):
    """Raised when a team cannot absorb a salary under its cap ceiling."""

    kind = "InsufficientCap"
    default_code = "ROSTER_CAP_001"

    def __init__(self, team_id: int, required: int, available: int):
        self.team_id = team_id
        self.required = required
        self.available = available
        super().__init__(
            f"Team {team_id} needs ${required:,} in cap space but has ${available:,}",
            context={"team_id": team_id, "required": required, "available": available},
        )


class ExemptionLimitReached(RosterEngineError):
    """Raised when a team already carries the maximum number of exempt players."""

    kind = "ExemptionLimitReached"
    default_code = "ROSTER_CAP_002"

    def __init__(self, team_id: int, limit: int, player_id: Optional[int] = None):
        self.team_id = team_id
        self.limit = limit
        super().__init__(
            f"Team {team_id} already has {limit} cap-exempt players",
            context={"team_id": team_id, "limit": limit, "player_id": player_id},
        )


class PlayerAlreadyUnderContract(RosterEngineError):
    """Raised when a player already holds a pending or active contract."""

    kind = "PlayerAlreadyUnderContract"
    default_code = "ROSTER_CONTRACT_001"

    def __init__(self, player_id: int, contract_id: int, status: str):
        self.player_id = player_id
        self.contract_id = contract_id
        super().__init__(
            f"Player {player_id} already has {status} contract {contract_id}",
            context={"player_id": player_id, "contract_id": contract_id, "status": status},
        )


class StalePrecondition(RosterEngineError):
    """
    Raised when a fact checked earlier in a multi-step flow (e.g. a player's
    team at proposal time) no longer holds when the flow is applied.
    """

    kind = "StalePrecondition"
    default_code = "ROSTER_STALE_001"


class Timeout(RosterEngineError):
    """Raised when a workflow step is attempted after its deadline."""

    kind = "Timeout"
    default_code = "ROSTER_TIMEOUT_001"

    def __init__(self, message: str, deadline: Optional[datetime] = None,
                 context: Optional[Dict[str, Any]] = None):
        self.deadline = deadline
        ctx = dict(context or {})
        if deadline is not None:
            ctx["deadline"] = deadline.isoformat()
        super().__init__(message, context=ctx)


class OfferExpired(Timeout):
    """Raised when a contract offer is answered after it expired."""

    default_code = "ROSTER_TIMEOUT_002"

    def __init__(self, contract_id: int, deadline: Optional[datetime] = None):
        self.contract_id = contract_id
        super().__init__(
            f"Contract offer {contract_id} has expired",
            deadline=deadline,
            context={"contract_id": contract_id},
        )


class Unauthorized(RosterEngineError):
    """Raised when the acting party has no authority for the operation."""

    kind = "Unauthorized"
    default_code = "ROSTER_AUTH_001"
