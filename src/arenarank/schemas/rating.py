# src/arenarank/schemas/rating.py

"""Schemas for rating updates and rating history."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from .player import PlayerRead


class RatingHistoryRead(BaseModel):
    """One rating history entry. ``change`` is signed."""

    player_id: str
    game_id: str
    rating: int
    change: int
    date: datetime

    model_config = ConfigDict(from_attributes=True)


class RatingUpdate(BaseModel):
    """Result of rating a finished game between a winner and a loser."""

    winner: PlayerRead
    loser: PlayerRead
    rating_change: int
