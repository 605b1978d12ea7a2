# src/arenarank/services/achievement_service.py

"""Achievement rule engine: per-player unlocks and the reward ledger."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arenarank.achievements.catalog import (
    ACHIEVEMENTS,
    REWARD_ICON,
    AchievementDefinition,
    get_definition,
)
from arenarank.db import models
from arenarank.events import Topic
from arenarank.exceptions import AchievementNotFoundError
from arenarank.middleware.logging import log_operation
from arenarank.schemas.achievement import (
    AchievementProgress,
    AchievementRead,
    AchievementStats,
    PlayerAchievementsRead,
    PlayerRewardsRead,
    RewardCreate,
    RewardRead,
)
from arenarank.schemas.common import RewardType

from .base import BaseService

logger = logging.getLogger(__name__)


def achievement_reward(definition: AchievementDefinition) -> RewardCreate:
    """The one xp reward an unlocked achievement grants."""
    return RewardCreate(
        id=f"reward_{definition.id}",
        name=f"Reward for: {definition.name}",
        description=f'Earned for the achievement "{definition.name}"',
        type=RewardType.XP,
        value=definition.reward_xp,
        icon=REWARD_ICON,
    )


class AchievementService(BaseService):
    """Evaluates player statistics against the catalog.

    Achievement state is kept per player id. Players are not looked up in
    the roster; callers pass the statistics to evaluate.
    """

    # ===============================================
    # Store helpers
    # ===============================================

    async def _unlocks(
        self, db: AsyncSession, player_id: str
    ) -> dict[str, models.PlayerAchievement]:
        result = await db.execute(
            select(models.PlayerAchievement)
            .where(models.PlayerAchievement.player_id == player_id)
            .order_by(models.PlayerAchievement.seq)
        )
        return {row.achievement_id: row for row in result.scalars().all()}

    async def _rewards(self, db: AsyncSession, player_id: str) -> list[RewardRead]:
        result = await db.execute(
            select(models.RewardGrant)
            .where(models.RewardGrant.player_id == player_id)
            .order_by(models.RewardGrant.seq)
        )
        return [RewardRead.model_validate(r) for r in result.scalars().all()]

    async def _find_reward(
        self, db: AsyncSession, player_id: str, reward_id: str
    ) -> models.RewardGrant | None:
        result = await db.execute(
            select(models.RewardGrant).where(
                models.RewardGrant.player_id == player_id,
                models.RewardGrant.id == reward_id,
            )
        )
        return result.scalar_one_or_none()

    async def _player_achievements(
        self, db: AsyncSession, player_id: str
    ) -> list[AchievementRead]:
        """Full catalog in catalog order, marked with this player's unlocks."""
        unlocks = await self._unlocks(db, player_id)
        achievements = []
        for definition in ACHIEVEMENTS:
            unlock = unlocks.get(definition.id)
            achievements.append(
                definition.to_read(
                    unlocked=unlock is not None,
                    unlock_date=unlock.unlock_date if unlock else None,
                )
            )
        return achievements

    async def _grant_reward(
        self, db: AsyncSession, player_id: str, reward: RewardCreate
    ) -> tuple[models.RewardGrant, bool]:
        """Adds ``reward`` unless the player already holds that reward id.

        Returns the ledger row and whether it was newly created.
        """
        existing = await self._find_reward(db, player_id, reward.id)
        if existing is not None:
            return existing, False

        grant = models.RewardGrant(
            player_id=player_id,
            award_date=models.utc_now(),
            **reward.model_dump(mode="json"),
        )
        db.add(grant)
        return grant, True

    async def _unlock(
        self, db: AsyncSession, player_id: str, definition: AchievementDefinition
    ) -> models.PlayerAchievement:
        unlock = models.PlayerAchievement(
            player_id=player_id,
            achievement_id=definition.id,
            unlock_date=models.utc_now(),
        )
        db.add(unlock)
        await self._grant_reward(db, player_id, achievement_reward(definition))
        logger.info(
            "Achievement unlocked",
            extra={
                "player_id": player_id,
                "achievement_id": definition.id,
                "points": definition.points,
            },
        )
        return unlock

    async def _snapshot(
        self, db: AsyncSession, player_id: str
    ) -> tuple[PlayerAchievementsRead, PlayerRewardsRead]:
        return (
            PlayerAchievementsRead(
                player_id=player_id,
                achievements=await self._player_achievements(db, player_id),
            ),
            PlayerRewardsRead(
                player_id=player_id, rewards=await self._rewards(db, player_id)
            ),
        )

    def _publish_player(
        self, achievements: PlayerAchievementsRead, rewards: PlayerRewardsRead
    ) -> None:
        self.publish(Topic.ACHIEVEMENTS, achievements)
        self.publish(Topic.REWARDS, rewards)

    # ===============================================
    # Unlocking
    # ===============================================

    @log_operation
    async def check_and_unlock_achievements(
        self,
        player_id: str,
        stats: AchievementStats | Mapping[str, Any] | Any,
    ) -> list[AchievementRead]:
        """
        Unlocks every not-yet-unlocked achievement whose predicate holds.

        ``stats`` may be an AchievementStats, a mapping, or any object with
        ``games_played``, ``games_won`` and ``rating`` attributes (such as a
        PlayerRead). Each new unlock grants exactly one xp reward. Calling
        this again with the same stats unlocks nothing.

        Returns:
            The newly unlocked achievements, in catalog order
        """
        stats = AchievementStats.model_validate(stats)

        async with self.mutation(f"achievements:{player_id}") as db:
            unlocks = await self._unlocks(db, player_id)
            newly_unlocked: list[AchievementRead] = []
            for definition in ACHIEVEMENTS:
                if definition.id in unlocks or not definition.is_satisfied(stats):
                    continue
                unlock = await self._unlock(db, player_id, definition)
                newly_unlocked.append(
                    definition.to_read(unlocked=True, unlock_date=unlock.unlock_date)
                )

            if not newly_unlocked:
                return []

            await db.flush()
            achievements, rewards = await self._snapshot(db, player_id)

        self._publish_player(achievements, rewards)
        return newly_unlocked

    @log_operation
    async def unlock_achievement(
        self, player_id: str, achievement_id: str
    ) -> AchievementRead:
        """
        Unlocks one catalog achievement regardless of its predicate.

        A second unlock returns the existing unlock and grants nothing.

        Raises:
            AchievementNotFoundError: If ``achievement_id`` is not in the catalog
        """
        definition = get_definition(achievement_id)
        if definition is None:
            raise AchievementNotFoundError(achievement_id)

        async with self.mutation(f"achievements:{player_id}") as db:
            existing = (await self._unlocks(db, player_id)).get(achievement_id)
            if existing is not None:
                return definition.to_read(
                    unlocked=True, unlock_date=existing.unlock_date
                )

            unlock = await self._unlock(db, player_id, definition)
            await db.flush()

            unlocked = definition.to_read(unlocked=True, unlock_date=unlock.unlock_date)
            achievements, rewards = await self._snapshot(db, player_id)

        self._publish_player(achievements, rewards)
        return unlocked

    # ===============================================
    # Rewards
    # ===============================================

    @log_operation
    async def award_reward(self, player_id: str, reward: RewardCreate) -> RewardRead:
        """Adds a reward to the player's ledger.

        Reward ids are unique per player; awarding an id the player already
        holds returns the existing grant unchanged.
        """
        async with self.mutation(f"achievements:{player_id}") as db:
            grant, created = await self._grant_reward(db, player_id, reward)
            if not created:
                return RewardRead.model_validate(grant)

            await db.flush()
            awarded = RewardRead.model_validate(grant)
            rewards = PlayerRewardsRead(
                player_id=player_id, rewards=await self._rewards(db, player_id)
            )

        logger.info(
            "Reward awarded",
            extra={"player_id": player_id, "reward_id": reward.id},
        )
        self.publish(Topic.REWARDS, rewards)
        return awarded

    async def get_player_rewards(self, player_id: str) -> list[RewardRead]:
        async with self.reading() as db:
            return await self._rewards(db, player_id)

    # ===============================================
    # Queries
    # ===============================================

    async def get_all_achievements(self) -> list[AchievementRead]:
        """The catalog, with nothing marked unlocked."""
        return [definition.to_read() for definition in ACHIEVEMENTS]

    async def get_player_achievements(self, player_id: str) -> list[AchievementRead]:
        async with self.reading() as db:
            return await self._player_achievements(db, player_id)

    async def get_achievement_progress(self, player_id: str) -> AchievementProgress:
        async with self.reading() as db:
            achievements = await self._player_achievements(db, player_id)

        unlocked = [a for a in achievements if a.unlocked]
        total = len(achievements)
        return AchievementProgress(
            player_id=player_id,
            total=total,
            unlocked=len(unlocked),
            progress=(len(unlocked) / total) * 100 if total > 0 else 0.0,
            total_points=sum(a.points for a in unlocked),
        )
