# src/arenarank/schemas/player_stats.py

"""Player statistics and progression schemas."""

from pydantic import BaseModel, Field


class PlayerStats(BaseModel):
    """Win/loss statistics derived from a roster entry.

    Attributes:
        player_id: The player's ID
        total_games: Total games played
        wins: Total wins
        losses: games played minus games won
        win_rate: Win percentage (0.0 - 100.0), 0 when no games were played
    """

    player_id: str
    total_games: int = Field(0, ge=0)
    wins: int = Field(0, ge=0)
    losses: int = Field(0, ge=0)
    win_rate: float = Field(0.0, ge=0.0, le=100.0)


class PlayerProgress(BaseModel):
    """Level progression for a player.

    Attributes:
        level: Current level
        experience: Current experience
        experience_to_next_level: level^2 * 100
        level_progress: experience as a percentage of experience_to_next_level
    """

    player_id: str
    level: int = Field(..., ge=1)
    experience: int = Field(..., ge=0)
    experience_to_next_level: int = Field(..., ge=100)
    level_progress: float = Field(..., ge=0.0)
