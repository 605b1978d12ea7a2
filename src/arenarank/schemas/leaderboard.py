# src/arenarank/schemas/leaderboard.py

"""Leaderboard schemas for player rankings."""

from datetime import datetime

from pydantic import BaseModel, Field


class LeaderboardEntry(BaseModel):
    """Single entry in the leaderboard.

    Attributes:
        rank: Position in leaderboard (1-indexed)
        player_id: The ranked player's ID
        rating: Current rating
        win_rate: Win percentage (0.0 - 100.0)
        last_active: Last time the player's rating or experience changed
    """

    rank: int = Field(..., ge=1, description="Position in leaderboard (1-indexed)")
    player_id: str
    username: str
    avatar: str = ""
    rating: int = Field(..., ge=0)
    games_played: int = Field(..., ge=0)
    win_rate: float = Field(..., ge=0.0, le=100.0)
    last_active: datetime
