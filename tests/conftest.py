# tests/conftest.py

"""Pytest configuration and fixtures."""

from collections import defaultdict
from typing import Any, AsyncGenerator

import pytest
from arenarank.events import Topic
from arenarank.main import Arena, open_arena
from arenarank.schemas.player import PlayerBase

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class EventRecorder:
    """Collects every payload published on an arena's event bus."""

    def __init__(self, arena: Arena) -> None:
        self.events: dict[Topic, list[Any]] = defaultdict(list)
        self._unsubscribers = [
            arena.events.subscribe(topic, self._recorder(topic)) for topic in Topic
        ]

    def _recorder(self, topic: Topic):
        def record(payload: Any) -> None:
            self.events[topic].append(payload)

        return record

    def last(self, topic: Topic) -> Any:
        return self.events[topic][-1]

    def count(self, topic: Topic | None = None) -> int:
        if topic is None:
            return sum(len(payloads) for payloads in self.events.values())
        return len(self.events[topic])

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
async def arena() -> AsyncGenerator[Arena, None]:
    """A fresh in-memory arena without simulated latency."""
    async with open_arena(TEST_DATABASE_URL, latency=0) as arena:
        yield arena


@pytest.fixture
async def roster(arena: Arena) -> dict[str, PlayerBase]:
    """Three registered players at the default rating, keyed by id."""
    players = {}
    for player_id, username in (
        ("alice", "Alice"),
        ("bob", "Bob"),
        ("carol", "Carol"),
    ):
        player = await arena.ratings.register_player(username, player_id=player_id)
        players[player.id] = PlayerBase(
            id=player.id, username=player.username, avatar=player.avatar
        )
    return players


@pytest.fixture
def recorder(arena: Arena) -> EventRecorder:
    """Records events published after the fixture is created."""
    return EventRecorder(arena)
