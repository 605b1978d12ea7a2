# src/arenarank/schemas/multiplayer.py

"""Pydantic schemas for multiplayer games and their lobby chat."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .common import ChatMessageType, GameStatus
from .player import ParticipantRead


class MultiplayerGameRead(BaseModel):
    """Full state of a multiplayer game.

    ``host_id`` names a current participant, or is None once every player
    has left.
    """

    id: str
    name: str
    description: str = ""
    max_players: int = Field(..., ge=2)
    min_players: int = Field(..., ge=2)
    active_players: int = Field(..., ge=0)
    status: GameStatus
    host_id: str | None = None
    winner_id: str | None = None
    players: list[ParticipantRead] = Field(default_factory=list)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ===============================================
# Update Schema: Defines all fields as optional
# ===============================================
class GameUpdate(BaseModel):
    """Lobby settings that may change after creation, all optional."""

    name: str | None = None
    description: str | None = None
    max_players: int | None = Field(default=None, ge=2)


class ChatMessageRead(BaseModel):
    """A lobby chat line. System lines use player_id 'system'."""

    id: str
    game_id: str
    player_id: str
    player_name: str
    message: str
    timestamp: datetime
    type: ChatMessageType

    model_config = ConfigDict(from_attributes=True)
