# src/arenarank/schemas/achievement.py

"""Pydantic schemas for achievements and rewards."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .common import AchievementCategory, RewardType


class AchievementStats(BaseModel):
    """The player statistics achievement predicates are evaluated against."""

    games_played: int = Field(0, ge=0)
    games_won: int = Field(0, ge=0)
    rating: int = Field(0, ge=0)

    model_config = ConfigDict(from_attributes=True)


class AchievementRead(BaseModel):
    """A catalog achievement, with unlock state for one player when known."""

    id: str
    name: str
    description: str
    icon: str = ""
    points: int = Field(..., ge=0)
    unlocked: bool = False
    unlock_date: datetime | None = None
    category: AchievementCategory


class RewardCreate(BaseModel):
    """A reward to add to a player's ledger."""

    id: str
    name: str
    description: str = ""
    type: RewardType
    value: int = Field(..., ge=0)
    icon: str = ""


class RewardRead(RewardCreate):
    """A reward already in a player's ledger."""

    player_id: str
    awarded: bool = True
    award_date: datetime

    model_config = ConfigDict(from_attributes=True)


class AchievementProgress(BaseModel):
    """Summary of one player's achievement progress.

    Attributes:
        total: Catalog size
        unlocked: Achievements unlocked by the player
        progress: unlocked / total as a percentage
        total_points: Sum of points of unlocked achievements
    """

    player_id: str
    total: int = Field(..., ge=0)
    unlocked: int = Field(..., ge=0)
    progress: float = Field(..., ge=0.0, le=100.0)
    total_points: int = Field(..., ge=0)


class PlayerAchievementsRead(BaseModel):
    """The whole catalog with one player's unlock state, in catalog order."""

    player_id: str
    achievements: list[AchievementRead]


class PlayerRewardsRead(BaseModel):
    """One player's reward ledger, in award order."""

    player_id: str
    rewards: list[RewardRead]
