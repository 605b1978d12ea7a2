# tests/test_simulation.py

"""Tests for the lobby activity simulator and its schedulers."""

import asyncio
import random

import pytest
from arenarank.main import Arena
from arenarank.simulation import (
    AsyncioScheduler,
    ManualScheduler,
    RealtimeSimulator,
)


class FixedRandom(random.Random):
    """A random source whose ``random()`` always returns ``value``."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.mark.asyncio
async def test_manual_scheduler_runs_due_jobs():
    scheduler = ManualScheduler()
    calls = []

    async def job():
        calls.append(scheduler.now)

    handle = scheduler.every(10, job)
    assert await scheduler.advance(5) == 0
    assert await scheduler.advance(25) == 3
    assert calls == [10, 20, 30]

    handle.cancel()
    assert await scheduler.advance(100) == 0
    assert scheduler.pending == 0


@pytest.mark.asyncio
async def test_bots_join_waiting_games(arena: Arena, roster):
    # 1. ARRANGE: Every tick is active and chooses to join
    game = await arena.multiplayer.create_game("Lobby", "", 3, roster["alice"])
    scheduler = ManualScheduler()
    simulator = RealtimeSimulator(
        arena.multiplayer, scheduler=scheduler, rng=FixedRandom(0.9), activity=1.0
    )
    simulator.start()

    # 2. ACT
    await scheduler.advance(20)

    # 3. ASSERT
    lobby = await arena.multiplayer.get_game_by_id(game.id)
    assert lobby.active_players == 3
    assert lobby.host_id == "alice"
    assert all(p.player_id.startswith("bot_") for p in lobby.players[1:])


@pytest.mark.asyncio
async def test_bots_leave_but_never_empty_a_game(arena: Arena, roster):
    game = await arena.multiplayer.create_game("Lobby", "", 4, roster["alice"])
    scheduler = ManualScheduler()
    joiner = RealtimeSimulator(
        arena.multiplayer, scheduler=scheduler, rng=FixedRandom(0.9), activity=1.0
    )
    await joiner.tick()
    await joiner.tick()

    leaver = RealtimeSimulator(
        arena.multiplayer, scheduler=scheduler, rng=FixedRandom(0.1), activity=1.0
    )
    for _ in range(5):
        await leaver.tick()

    lobby = await arena.multiplayer.get_game_by_id(game.id)
    assert [p.player_id for p in lobby.players] == ["alice"]
    assert lobby.host_id == "alice"


@pytest.mark.asyncio
async def test_started_games_are_left_alone(arena: Arena, roster):
    game = await arena.multiplayer.create_game("Lobby", "", 4, roster["alice"])
    await arena.multiplayer.join_game(game.id, roster["bob"])
    await arena.multiplayer.start_game(game.id)
    simulator = RealtimeSimulator(
        arena.multiplayer, rng=FixedRandom(0.9), activity=1.0
    )

    await simulator.tick()

    assert (await arena.multiplayer.get_game_by_id(game.id)).active_players == 2


@pytest.mark.asyncio
async def test_seeded_simulation_keeps_lobby_invariants(arena: Arena, roster):
    for host in roster:
        await arena.multiplayer.create_game(f"{host}'s lobby", "", 3, roster[host])
    scheduler = ManualScheduler()
    simulator = RealtimeSimulator(
        arena.multiplayer, scheduler=scheduler, rng=random.Random(42), activity=0.5
    )
    simulator.start()

    await scheduler.advance(500)
    simulator.stop()

    assert scheduler.pending == 0
    for game in await arena.multiplayer.get_games():
        assert 1 <= game.active_players <= game.max_players
        assert game.active_players == len(game.players)
        assert game.host_id in {p.player_id for p in game.players}


@pytest.mark.asyncio
async def test_asyncio_scheduler_runs_until_shutdown():
    scheduler = AsyncioScheduler()
    calls = []

    async def job():
        calls.append(1)

    scheduler.every(0.01, job)
    await asyncio.sleep(0.1)
    await scheduler.shutdown()
    runs = len(calls)
    await asyncio.sleep(0.03)

    assert runs > 0
    assert len(calls) == runs


@pytest.mark.asyncio
async def test_simulator_start_is_idempotent(arena: Arena):
    scheduler = ManualScheduler()
    simulator = RealtimeSimulator(arena.multiplayer, scheduler=scheduler)

    simulator.start()
    simulator.start()

    assert simulator.running
    assert scheduler.pending == 1
    simulator.stop()
    assert not simulator.running
