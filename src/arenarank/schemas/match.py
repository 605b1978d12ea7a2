# src/arenarank/schemas/match.py

"""Pydantic schemas for recorded match results."""

from pydantic import BaseModel, Field

from .achievement import AchievementRead
from .player import PlayerRead
from .rating import RatingUpdate


class MatchResult(BaseModel):
    """Everything that changed when one finished session or game was recorded.

    Attributes:
        container_id: The session or multiplayer game that finished
        winner_id: Winning player
        rating_updates: One Elo update per loser, in join order
        unlocked: Achievements newly unlocked, keyed by player id
        players: Final roster entries of every participant, in join order
    """

    container_id: str
    winner_id: str
    rating_updates: list[RatingUpdate] = Field(default_factory=list)
    unlocked: dict[str, list[AchievementRead]] = Field(default_factory=dict)
    players: list[PlayerRead] = Field(default_factory=list)
