# tests/test_achievement_service.py

"""Tests for the achievement rule engine and the reward ledger."""

import pytest
from arenarank.achievements.catalog import ACHIEVEMENTS, get_definition
from arenarank.events import Topic
from arenarank.exceptions import AchievementNotFoundError
from arenarank.main import Arena
from arenarank.schemas.achievement import AchievementStats, RewardCreate
from arenarank.schemas.common import AchievementCategory, RewardType


def test_catalog_entries():
    ids = [a.id for a in ACHIEVEMENTS]
    assert ids == [
        "first_game",
        "first_win",
        "veteran",
        "champion",
        "master",
        "socializer",
    ]
    assert get_definition("master").category == AchievementCategory.SKILL
    assert get_definition("master").reward_xp == 1500
    assert get_definition("missing") is None


def test_manual_only_achievement_is_never_satisfied():
    stats = AchievementStats(games_played=1000, games_won=1000, rating=3000)
    assert not get_definition("socializer").is_satisfied(stats)


@pytest.mark.asyncio
async def test_first_game_and_first_win_unlock(arena: Arena, recorder):
    """One game, one win, rating 1000: exactly first_game and first_win."""
    # 1. ACT
    unlocked = await arena.achievements.check_and_unlock_achievements(
        "alice", {"games_played": 1, "games_won": 1, "rating": 1000}
    )

    # 2. ASSERT: unlocked achievements
    assert [a.id for a in unlocked] == ["first_game", "first_win"]
    assert all(a.unlocked and a.unlock_date is not None for a in unlocked)

    # 3. ASSERT: one xp reward per unlock, worth points x 10
    rewards = await arena.achievements.get_player_rewards("alice")
    assert [(r.id, r.type, r.value) for r in rewards] == [
        ("reward_first_game", RewardType.XP, 100),
        ("reward_first_win", RewardType.XP, 250),
    ]

    # 4. ASSERT: observers see the player's whole catalog and ledger
    published = recorder.last(Topic.ACHIEVEMENTS)
    assert published.player_id == "alice"
    assert [a.id for a in published.achievements if a.unlocked] == [
        "first_game",
        "first_win",
    ]
    assert len(recorder.last(Topic.REWARDS).rewards) == 2


@pytest.mark.asyncio
async def test_check_and_unlock_is_idempotent(arena: Arena, recorder):
    stats = AchievementStats(games_played=60, games_won=30, rating=1700)

    first = await arena.achievements.check_and_unlock_achievements("alice", stats)
    published = recorder.count()
    second = await arena.achievements.check_and_unlock_achievements("alice", stats)

    assert [a.id for a in first] == [
        "first_game",
        "first_win",
        "veteran",
        "champion",
        "master",
    ]
    assert second == []
    assert recorder.count() == published
    assert len(await arena.achievements.get_player_rewards("alice")) == 5


@pytest.mark.asyncio
async def test_master_unlocks_at_rating_threshold(arena: Arena):
    below = await arena.achievements.check_and_unlock_achievements(
        "alice", {"rating": 1599}
    )
    at = await arena.achievements.check_and_unlock_achievements(
        "alice", {"rating": 1600}
    )

    assert below == []
    assert [a.id for a in at] == ["master"]


@pytest.mark.asyncio
async def test_check_accepts_player_read_models(arena: Arena, roster):
    await arena.ratings.update_rating("alice", "bob", "game_1")
    bob = await arena.ratings.get_player("bob")

    unlocked = await arena.achievements.check_and_unlock_achievements(bob.id, bob)

    assert [a.id for a in unlocked] == ["first_game"]


@pytest.mark.asyncio
async def test_achievements_are_per_player(arena: Arena):
    await arena.achievements.check_and_unlock_achievements("alice", {"games_played": 1})

    bob_achievements = await arena.achievements.get_player_achievements("bob")
    assert not any(a.unlocked for a in bob_achievements)
    assert await arena.achievements.get_player_rewards("bob") == []


@pytest.mark.asyncio
async def test_manual_unlock_grants_reward_once(arena: Arena):
    first = await arena.achievements.unlock_achievement("alice", "socializer")
    second = await arena.achievements.unlock_achievement("alice", "socializer")

    assert first.unlocked
    assert second.unlocked
    assert second.unlock_date is not None
    rewards = await arena.achievements.get_player_rewards("alice")
    assert [(r.id, r.value) for r in rewards] == [("reward_socializer", 300)]


@pytest.mark.asyncio
async def test_unlock_unknown_achievement_fails(arena: Arena):
    with pytest.raises(AchievementNotFoundError):
        await arena.achievements.unlock_achievement("alice", "legendary")

    assert await arena.achievements.get_player_rewards("alice") == []


@pytest.mark.asyncio
async def test_award_reward_keeps_ids_unique(arena: Arena, recorder):
    bonus = RewardCreate(
        id="welcome_bonus",
        name="Welcome Bonus",
        description="Reward for signing up",
        type=RewardType.COINS,
        value=100,
        icon="💰",
    )

    awarded = await arena.achievements.award_reward("alice", bonus)
    again = await arena.achievements.award_reward(
        "alice", bonus.model_copy(update={"value": 999})
    )

    assert awarded.player_id == "alice"
    assert awarded.awarded is True
    assert again.value == 100
    assert len(await arena.achievements.get_player_rewards("alice")) == 1
    assert recorder.count(Topic.REWARDS) == 1


@pytest.mark.asyncio
async def test_achievement_progress(arena: Arena):
    await arena.achievements.check_and_unlock_achievements(
        "alice", {"games_played": 1, "games_won": 1}
    )

    progress = await arena.achievements.get_achievement_progress("alice")

    assert progress.total == len(ACHIEVEMENTS)
    assert progress.unlocked == 2
    assert progress.progress == pytest.approx(200 / 6)
    assert progress.total_points == 35


@pytest.mark.asyncio
async def test_get_all_achievements_is_the_locked_catalog(arena: Arena):
    catalog = await arena.achievements.get_all_achievements()

    assert [a.id for a in catalog] == [a.id for a in ACHIEVEMENTS]
    assert not any(a.unlocked for a in catalog)
