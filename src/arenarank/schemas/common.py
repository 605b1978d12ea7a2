# src/arenarank/schemas/common.py

"""Common enums and schemas used across multiple resources."""

from enum import Enum


class SessionStatus(str, Enum):
    """Lifecycle of a game session.

    waiting -> active -> finished, and waiting -> cancelled.
    """

    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.FINISHED, SessionStatus.CANCELLED)


class GameStatus(str, Enum):
    """Lifecycle of a multiplayer game: waiting -> in_progress -> finished."""

    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class AchievementCategory(str, Enum):
    GAME = "game"
    SOCIAL = "social"
    SKILL = "skill"
    SPECIAL = "special"


class RewardType(str, Enum):
    XP = "xp"
    COINS = "coins"
    ITEM = "item"
    BADGE = "badge"


class ChatMessageType(str, Enum):
    TEXT = "text"
    SYSTEM = "system"
    GAME_EVENT = "game_event"
