# tests/test_multiplayer_service.py

"""Tests for hosted multiplayer games and their lobby chat."""

import pytest
from arenarank.events import Topic
from arenarank.exceptions import (
    CapacityError,
    DuplicatePlayerError,
    GameNotFoundError,
    InsufficientPlayersError,
    InvalidCapacityError,
    InvalidStateError,
    NotAParticipantError,
)
from arenarank.main import Arena
from arenarank.schemas.common import ChatMessageType, GameStatus
from arenarank.schemas.multiplayer import GameUpdate

# =============================================================================
# Helper Functions
# =============================================================================


async def create_lobby(arena: Arena, roster, host: str = "alice", max_players: int = 4):
    """Helper to create a waiting game hosted by ``host``."""
    return await arena.multiplayer.create_game(
        "Friday Night", "Casual games", max_players, roster[host]
    )


# =============================================================================
# Lobby lifecycle
# =============================================================================


@pytest.mark.asyncio
async def test_create_game_with_host_as_first_player(arena: Arena, roster, recorder):
    game = await create_lobby(arena, roster)

    assert game.id.startswith("game_")
    assert game.status == GameStatus.WAITING
    assert game.host_id == "alice"
    assert game.active_players == 1
    assert [p.player_id for p in game.players] == ["alice"]
    assert game.min_players == 2
    assert recorder.last(Topic.GAMES)[0].id == game.id


@pytest.mark.asyncio
@pytest.mark.parametrize("max_players, min_players", [(1, 2), (4, 1), (3, 4)])
async def test_create_game_rejects_bad_limits(
    arena: Arena, roster, max_players, min_players
):
    with pytest.raises(InvalidCapacityError):
        await arena.multiplayer.create_game(
            "Bad", "", max_players, roster["alice"], min_players=min_players
        )

    assert await arena.multiplayer.get_games() == []


@pytest.mark.asyncio
async def test_join_game_announces_player(arena: Arena, roster):
    game = await create_lobby(arena, roster)

    joined = await arena.multiplayer.join_game(game.id, roster["bob"])

    assert joined.active_players == 2
    assert [p.player_id for p in joined.players] == ["alice", "bob"]
    chat = await arena.multiplayer.get_chat_messages(game.id)
    assert chat[-1].message == "Bob joined the game"
    assert chat[-1].type == ChatMessageType.SYSTEM
    assert chat[-1].player_id == "system"


@pytest.mark.asyncio
async def test_join_game_errors(arena: Arena, roster):
    game = await create_lobby(arena, roster, max_players=2)
    await arena.multiplayer.join_game(game.id, roster["bob"])

    with pytest.raises(CapacityError):
        await arena.multiplayer.join_game(game.id, roster["carol"])

    roomy = await create_lobby(arena, roster, host="carol")
    with pytest.raises(DuplicatePlayerError):
        await arena.multiplayer.join_game(roomy.id, roster["carol"])

    with pytest.raises(GameNotFoundError):
        await arena.multiplayer.join_game("game_missing", roster["alice"])


@pytest.mark.asyncio
async def test_start_game_requires_min_players(arena: Arena, roster):
    game = await create_lobby(arena, roster)

    with pytest.raises(InsufficientPlayersError):
        await arena.multiplayer.start_game(game.id)

    await arena.multiplayer.join_game(game.id, roster["bob"])
    started = await arena.multiplayer.start_game(game.id)

    assert started.status == GameStatus.IN_PROGRESS
    chat = await arena.multiplayer.get_chat_messages(game.id)
    assert chat[-1].message == "The game has started!"

    with pytest.raises(InvalidStateError):
        await arena.multiplayer.join_game(game.id, roster["carol"])
    with pytest.raises(InvalidStateError):
        await arena.multiplayer.start_game(game.id)


@pytest.mark.asyncio
async def test_host_leaving_hands_over_to_first_remaining_player(arena: Arena, roster):
    """The earliest joined remaining participant becomes host."""
    # 1. ARRANGE
    game = await create_lobby(arena, roster)
    await arena.multiplayer.join_game(game.id, roster["bob"])
    await arena.multiplayer.join_game(game.id, roster["carol"])

    # 2. ACT
    updated = await arena.multiplayer.leave_game(game.id, "alice")

    # 3. ASSERT
    assert updated.host_id == "bob"
    assert updated.active_players == 2
    assert [p.player_id for p in updated.players] == ["bob", "carol"]
    chat = await arena.multiplayer.get_chat_messages(game.id)
    assert chat[-1].message == "Alice left the game"


@pytest.mark.asyncio
async def test_non_host_leaving_keeps_host(arena: Arena, roster):
    game = await create_lobby(arena, roster)
    await arena.multiplayer.join_game(game.id, roster["bob"])

    updated = await arena.multiplayer.leave_game(game.id, "bob")

    assert updated.host_id == "alice"
    assert updated.active_players == 1


@pytest.mark.asyncio
async def test_last_player_leaving_deletes_game(arena: Arena, roster, recorder):
    game = await create_lobby(arena, roster)
    await arena.multiplayer.send_chat_message(game.id, "alice", "Alice", "anyone?")

    final = await arena.multiplayer.leave_game(game.id, "alice")

    assert final.id == game.id
    assert final.players == []
    assert final.active_players == 0
    assert final.host_id is None
    assert await arena.multiplayer.get_game_by_id(game.id) is None
    assert await arena.multiplayer.get_games() == []
    assert recorder.last(Topic.GAMES) == []
    with pytest.raises(GameNotFoundError):
        await arena.multiplayer.get_chat_messages(game.id)


@pytest.mark.asyncio
async def test_leave_game_errors(arena: Arena, roster):
    game = await create_lobby(arena, roster)

    with pytest.raises(NotAParticipantError):
        await arena.multiplayer.leave_game(game.id, "bob")


@pytest.mark.asyncio
async def test_finish_game(arena: Arena, roster):
    game = await create_lobby(arena, roster)
    await arena.multiplayer.join_game(game.id, roster["bob"])

    with pytest.raises(InvalidStateError):
        await arena.multiplayer.finish_game(game.id, "alice")

    await arena.multiplayer.start_game(game.id)
    with pytest.raises(NotAParticipantError):
        await arena.multiplayer.finish_game(game.id, "carol")

    finished = await arena.multiplayer.finish_game(game.id, "bob")
    assert finished.status == GameStatus.FINISHED
    assert finished.winner_id == "bob"

    with pytest.raises(InvalidStateError):
        await arena.multiplayer.leave_game(game.id, "alice")


# =============================================================================
# Settings and chat
# =============================================================================


@pytest.mark.asyncio
async def test_update_game_state(arena: Arena, roster, recorder):
    game = await create_lobby(arena, roster)
    await arena.multiplayer.join_game(game.id, roster["bob"])

    updated = await arena.multiplayer.update_game_state(
        game.id, GameUpdate(name="Saturday Night", max_players=6)
    )

    assert updated.name == "Saturday Night"
    assert updated.description == "Casual games"
    assert updated.max_players == 6
    assert recorder.last(Topic.GAME_UPDATES).name == "Saturday Night"


@pytest.mark.asyncio
async def test_update_game_state_cannot_shrink_below_players(arena: Arena, roster):
    game = await create_lobby(arena, roster)
    await arena.multiplayer.join_game(game.id, roster["bob"])
    await arena.multiplayer.join_game(game.id, roster["carol"])

    with pytest.raises(InvalidCapacityError):
        await arena.multiplayer.update_game_state(game.id, GameUpdate(max_players=2))

    assert (await arena.multiplayer.get_game_by_id(game.id)).max_players == 4


@pytest.mark.asyncio
async def test_chat_messages_and_game_events(arena: Arena, roster, recorder):
    game = await create_lobby(arena, roster)

    sent = await arena.multiplayer.send_chat_message(
        game.id, "alice", "Alice", "Good luck!"
    )
    event = await arena.multiplayer.simulate_game_event(game.id, "Round 1 begins")

    assert sent.type == ChatMessageType.TEXT
    assert event.type == ChatMessageType.GAME_EVENT
    assert event.message == "Game event: Round 1 begins"
    chat = await arena.multiplayer.get_chat_messages(game.id)
    assert [m.id for m in chat] == [sent.id, event.id]
    assert [m.id for m in recorder.last(Topic.CHAT)] == [sent.id, event.id]


@pytest.mark.asyncio
async def test_chat_requires_existing_game(arena: Arena):
    with pytest.raises(GameNotFoundError):
        await arena.multiplayer.send_chat_message("game_missing", "a", "A", "hi")


@pytest.mark.asyncio
async def test_game_queries(arena: Arena, roster):
    first = await create_lobby(arena, roster)
    second = await create_lobby(arena, roster, host="bob")
    await arena.multiplayer.join_game(first.id, roster["carol"])
    await arena.multiplayer.start_game(first.id)

    assert [g.id for g in await arena.multiplayer.get_games()] == [second.id, first.id]
    assert [g.id for g in await arena.multiplayer.get_active_games()] == [second.id]
    assert await arena.multiplayer.get_game_by_id("game_missing") is None
