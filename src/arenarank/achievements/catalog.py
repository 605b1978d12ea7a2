# src/arenarank/achievements/catalog.py

"""The fixed achievement catalog and its unlock predicates."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from arenarank.schemas.achievement import AchievementRead, AchievementStats
from arenarank.schemas.common import AchievementCategory

# XP granted per achievement point when an achievement unlocks
REWARD_XP_MULTIPLIER = 10

REWARD_ICON = "🏆"

Predicate = Callable[[AchievementStats], bool]


@dataclass(frozen=True)
class AchievementDefinition:
    """A catalog entry. Entries without a predicate only unlock manually."""

    id: str
    name: str
    description: str
    icon: str
    points: int
    category: AchievementCategory
    predicate: Predicate | None = None

    @property
    def reward_xp(self) -> int:
        return self.points * REWARD_XP_MULTIPLIER

    def is_satisfied(self, stats: AchievementStats) -> bool:
        return self.predicate is not None and self.predicate(stats)

    def to_read(
        self, unlocked: bool = False, unlock_date: datetime | None = None
    ) -> AchievementRead:
        return AchievementRead(
            id=self.id,
            name=self.name,
            description=self.description,
            icon=self.icon,
            points=self.points,
            unlocked=unlocked,
            unlock_date=unlock_date,
            category=self.category,
        )


ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        id="first_game",
        name="First Steps",
        description="Play your first game",
        icon="🎮",
        points=10,
        category=AchievementCategory.GAME,
        predicate=lambda s: s.games_played >= 1,
    ),
    AchievementDefinition(
        id="first_win",
        name="Victory!",
        description="Win your first game",
        icon="🏅",
        points=25,
        category=AchievementCategory.GAME,
        predicate=lambda s: s.games_won >= 1,
    ),
    AchievementDefinition(
        id="veteran",
        name="Veteran",
        description="Play 50 games",
        icon="🎖️",
        points=50,
        category=AchievementCategory.GAME,
        predicate=lambda s: s.games_played >= 50,
    ),
    AchievementDefinition(
        id="champion",
        name="Champion",
        description="Win 25 games",
        icon="👑",
        points=100,
        category=AchievementCategory.GAME,
        predicate=lambda s: s.games_won >= 25,
    ),
    AchievementDefinition(
        id="master",
        name="Master Player",
        description="Reach a rating of 1600",
        icon="⭐",
        points=150,
        category=AchievementCategory.SKILL,
        predicate=lambda s: s.rating >= 1600,
    ),
    AchievementDefinition(
        id="socializer",
        name="Social Butterfly",
        description="Play with 10 different players",
        icon="🦋",
        points=30,
        category=AchievementCategory.SOCIAL,
    ),
)

ACHIEVEMENTS_BY_ID: dict[str, AchievementDefinition] = {a.id: a for a in ACHIEVEMENTS}


def get_definition(achievement_id: str) -> AchievementDefinition | None:
    return ACHIEVEMENTS_BY_ID.get(achievement_id)
