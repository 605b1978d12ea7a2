# src/arenarank/schemas/session.py

"""Pydantic schemas for the GameSession resource."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .common import SessionStatus
from .player import ParticipantRead


class GameSessionRead(BaseModel):
    """Full state of a game session after its latest transition.

    ``players`` is in join order and ``current_players`` always equals its
    length.
    """

    id: str
    game_id: str
    game_name: str
    start_time: datetime
    end_time: datetime | None = None
    players: list[ParticipantRead] = Field(default_factory=list)
    winner_id: str | None = None
    status: SessionStatus
    max_players: int = Field(..., ge=2)
    current_players: int = Field(..., ge=0)

    model_config = ConfigDict(from_attributes=True)
