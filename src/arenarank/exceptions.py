# src/arenarank/exceptions.py

"""Custom exception hierarchy for ArenaRank.

This module provides a structured exception hierarchy that enables:
1. A single failure channel for every async engine operation
2. Detailed error context for logging and debugging
3. Clear distinction between different error categories
"""

from __future__ import annotations


class ArenaRankError(Exception):
    """Base exception for all ArenaRank errors.

    Attributes:
        message: Human-readable error description
        details: Optional dict with additional context for logging/debugging
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# =============================================================================
# Not Found Errors
# =============================================================================


class NotFoundError(ArenaRankError):
    """Base class for errors raised when a referenced entity id is absent."""

    pass


class PlayerNotFoundError(NotFoundError):
    """Raised when a player ID does not exist."""

    def __init__(self, player_id: str) -> None:
        super().__init__(
            message=f"Player with ID {player_id} not found",
            details={"player_id": player_id},
        )


class SessionNotFoundError(NotFoundError):
    """Raised when a game session ID does not exist."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            message=f"Session with ID {session_id} not found",
            details={"session_id": session_id},
        )


class GameNotFoundError(NotFoundError):
    """Raised when a multiplayer game ID does not exist (or was deleted)."""

    def __init__(self, game_id: str) -> None:
        super().__init__(
            message=f"Game with ID {game_id} not found",
            details={"game_id": game_id},
        )


class AchievementNotFoundError(NotFoundError):
    """Raised when an achievement ID is not part of the catalog."""

    def __init__(self, achievement_id: str) -> None:
        super().__init__(
            message=f"Achievement with ID {achievement_id} not found",
            details={"achievement_id": achievement_id},
        )


# =============================================================================
# Lifecycle Errors
# =============================================================================


class InvalidStateError(ArenaRankError):
    """Raised when an operation is illegal in the entity's current status."""

    def __init__(
        self,
        entity: str,
        entity_id: str,
        status: str,
        operation: str,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message=message
            or f"Cannot {operation} {entity} {entity_id} while it is {status}",
            details={
                "entity": entity,
                "entity_id": entity_id,
                "status": status,
                "operation": operation,
            },
        )


class InsufficientPlayersError(InvalidStateError):
    """Raised when a session or game has fewer players than needed to start."""

    def __init__(self, entity: str, entity_id: str, count: int, minimum: int) -> None:
        super().__init__(
            entity=entity,
            entity_id=entity_id,
            status="waiting",
            operation="start",
            message=f"{entity.capitalize()} {entity_id} requires at least "
            f"{minimum} players to start, got {count}",
        )
        self.details.update({"player_count": count, "min_players": minimum})


class CapacityError(ArenaRankError):
    """Raised when a session or game is already full."""

    def __init__(self, entity: str, entity_id: str, max_players: int) -> None:
        super().__init__(
            message=f"{entity.capitalize()} {entity_id} is full "
            f"({max_players} players)",
            details={
                "entity": entity,
                "entity_id": entity_id,
                "max_players": max_players,
            },
        )


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(ArenaRankError):
    """Base class for validation errors."""

    pass


class InvalidCapacityError(ValidationError):
    """Raised when a session or game is configured with a bad player limit."""

    def __init__(
        self, max_players: int, min_players: int = 2, message: str | None = None
    ) -> None:
        super().__init__(
            message=message
            or f"Player limits must satisfy 2 <= min_players <= max_players, "
            f"got min_players={min_players}, max_players={max_players}",
            details={"max_players": max_players, "min_players": min_players},
        )


class DuplicatePlayerError(ValidationError):
    """Raised when the same player id is registered or joined twice."""

    def __init__(self, player_id: str, container_id: str | None = None) -> None:
        where = f" in {container_id}" if container_id else ""
        super().__init__(
            message=f"Player {player_id} is already present{where}",
            details={"player_id": player_id, "container_id": container_id},
        )


class NotAParticipantError(ValidationError):
    """Raised when a player id is not among a session's or game's players."""

    def __init__(self, player_id: str, container_id: str) -> None:
        super().__init__(
            message=f"Player {player_id} is not a participant of {container_id}",
            details={"player_id": player_id, "container_id": container_id},
        )


class SelfMatchError(ValidationError):
    """Raised when a rating update names the same player as winner and loser."""

    def __init__(self, player_id: str) -> None:
        super().__init__(
            message=f"Player {player_id} cannot be both winner and loser",
            details={"player_id": player_id},
        )


class InvalidExperienceError(ValidationError):
    """Raised when an experience grant is negative."""

    def __init__(self, xp: int) -> None:
        super().__init__(
            message=f"Experience grant must be non-negative, got {xp}",
            details={"xp": xp},
        )


class InvalidPlayerDataError(ValidationError):
    """Raised when player starting stats break the roster invariants."""

    def __init__(self, reason: str, player_id: str | None = None) -> None:
        details = {"player_id": player_id} if player_id else {}
        details["reason"] = reason
        super().__init__(message=f"Invalid player data: {reason}", details=details)


# =============================================================================
# Cancellation / Timeout Errors
# =============================================================================


class OperationTimeoutError(ArenaRankError):
    """Raised when waiting for an asynchronous event exceeds its timeout."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(
            message=f"Timed out after {timeout:.2f}s waiting for {operation}",
            details={"operation": operation, "timeout": timeout},
        )
