# src/arenarank/schemas/player.py

"""Pydantic schemas for the Player resource."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ===============================================
# Base Schema: Defines shared display attributes
# ===============================================
class PlayerBase(BaseModel):
    """Shared properties for a player."""

    id: str
    username: str
    avatar: str = ""


# ===============================================
# Read Schema: Defines attributes for returning data
# ===============================================
class PlayerRead(PlayerBase):
    """A roster entry as returned to consumers."""

    level: int = Field(..., ge=1)
    experience: int = Field(..., ge=0)
    rating: int = Field(..., ge=0)
    games_played: int = Field(..., ge=0)
    games_won: int = Field(..., ge=0)
    last_active_at: datetime

    # Enable ORM mode for this schema
    model_config = ConfigDict(from_attributes=True)


# ===============================================
# Participant Schema: a player snapshot inside a session or game
# ===============================================
class ParticipantRead(BaseModel):
    """A participant of a session or multiplayer game, in join order."""

    player_id: str
    username: str
    avatar: str = ""
    joined_at: datetime

    model_config = ConfigDict(from_attributes=True)
