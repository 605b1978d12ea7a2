# tests/test_concurrent_operations.py

"""Tests for overlapping operations on the same entities.

Every engine operation holds the lock of the entities it mutates for its
whole duration, so overlapping calls behave as if they ran one by one.
"""

import asyncio

import pytest
from arenarank.exceptions import CapacityError
from arenarank.main import Arena

# Enough latency for the operations below to overlap
LATENCY = 0.01


@pytest.fixture
def slow_arena(arena: Arena) -> Arena:
    for service in (
        arena.ratings,
        arena.sessions,
        arena.multiplayer,
        arena.achievements,
    ):
        service.latency = LATENCY
    return arena


@pytest.mark.asyncio
async def test_concurrent_joins_never_exceed_capacity(slow_arena: Arena, roster):
    """Five overlapping joins into a two-player session: two win, three fail."""
    # 1. ARRANGE
    players = list(roster.values())
    for i in range(2):
        player = await slow_arena.ratings.register_player(f"Extra {i}")
        players.append(player)
    session = await slow_arena.sessions.create_session("Chess", 2)

    # 2. ACT
    results = await asyncio.gather(
        *(slow_arena.sessions.join_session(session.id, p) for p in players),
        return_exceptions=True,
    )

    # 3. ASSERT
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 3
    assert all(isinstance(e, CapacityError) for e in errors)

    stored = await slow_arena.sessions.get_session_by_id(session.id)
    assert stored.current_players == 2
    assert len(stored.players) == 2


@pytest.mark.asyncio
async def test_concurrent_rating_updates_are_serialized(slow_arena: Arena, roster):
    """Overlapping updates on the same pair lose no games and no points."""
    await asyncio.gather(
        *(
            slow_arena.ratings.update_rating("alice", "bob", f"game_{i}")
            for i in range(10)
        )
    )

    alice = await slow_arena.ratings.get_player("alice")
    bob = await slow_arena.ratings.get_player("bob")
    assert alice.games_played == bob.games_played == 10
    assert alice.games_won == 10
    assert alice.rating + bob.rating == 3000

    history = await slow_arena.ratings.get_player_rating_history("alice")
    assert len(history) == 10
    # Each entry builds on the previous rating
    ratings = [h.rating for h in reversed(history)]
    assert ratings == sorted(ratings)


@pytest.mark.asyncio
async def test_operations_on_different_engines_interleave_safely(
    slow_arena: Arena, roster
):
    game = await slow_arena.multiplayer.create_game("Lobby", "", 4, roster["alice"])
    session = await slow_arena.sessions.create_session("Chess", 4)

    await asyncio.gather(
        slow_arena.multiplayer.join_game(game.id, roster["bob"]),
        slow_arena.sessions.join_session(session.id, roster["carol"]),
        slow_arena.ratings.update_rating("alice", "carol", "game_1"),
        slow_arena.achievements.unlock_achievement("alice", "socializer"),
        slow_arena.multiplayer.send_chat_message(game.id, "alice", "Alice", "hi"),
    )

    assert (await slow_arena.multiplayer.get_game_by_id(game.id)).active_players == 2
    assert (await slow_arena.sessions.get_session_by_id(session.id)).current_players == 1
    assert (await slow_arena.ratings.get_player("alice")).rating == 1516
    assert len(await slow_arena.multiplayer.get_chat_messages(game.id)) == 2
    assert len(await slow_arena.achievements.get_player_rewards("alice")) == 1


@pytest.mark.asyncio
async def test_entity_locks_are_released_after_use(slow_arena: Arena, roster):
    """Locks exist only while operations on the entity are in flight."""
    pending = [
        asyncio.create_task(slow_arena.ratings.update_rating("alice", "bob", f"g{i}"))
        for i in range(3)
    ]
    await asyncio.sleep(0)
    assert set(slow_arena.ratings._entity_locks) == {"alice", "bob"}

    await asyncio.gather(*pending)
    del pending

    assert len(slow_arena.ratings._entity_locks) == 0
