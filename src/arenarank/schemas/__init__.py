# src/arenarank/schemas/__init__.py

"""Pydantic read models and inputs for the ArenaRank engines."""

from .achievement import (
    AchievementProgress,
    AchievementRead,
    AchievementStats,
    PlayerAchievementsRead,
    PlayerRewardsRead,
    RewardCreate,
    RewardRead,
)
from .common import (
    AchievementCategory,
    ChatMessageType,
    GameStatus,
    RewardType,
    SessionStatus,
)
from .leaderboard import LeaderboardEntry
from .match import MatchResult
from .multiplayer import ChatMessageRead, GameUpdate, MultiplayerGameRead
from .player import ParticipantRead, PlayerBase, PlayerRead
from .player_stats import PlayerProgress, PlayerStats
from .rating import RatingHistoryRead, RatingUpdate
from .session import GameSessionRead

__all__ = [
    # Common
    "AchievementCategory",
    "ChatMessageType",
    "GameStatus",
    "RewardType",
    "SessionStatus",
    # Player
    "ParticipantRead",
    "PlayerBase",
    "PlayerRead",
    "PlayerProgress",
    "PlayerStats",
    # Rating
    "LeaderboardEntry",
    "RatingHistoryRead",
    "RatingUpdate",
    "MatchResult",
    # Session / Game
    "GameSessionRead",
    "MultiplayerGameRead",
    "GameUpdate",
    "ChatMessageRead",
    # Achievement
    "AchievementProgress",
    "AchievementRead",
    "AchievementStats",
    "PlayerAchievementsRead",
    "PlayerRewardsRead",
    "RewardCreate",
    "RewardRead",
]
