# src/arenarank/main.py

"""Arena container: one store, one event bus and the engines built on them."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from .db.session import create_session_factory, create_store_engine, init_store
from .events import EventBus
from .schemas.match import MatchResult
from .services import match_flow
from .services.achievement_service import AchievementService
from .services.multiplayer_service import MultiplayerService
from .services.rating_service import RatingService
from .services.session_service import SessionService

logger = logging.getLogger(__name__)


@dataclass
class Arena:
    """The engines of one arena. Build it with ``open_arena``."""

    engine: AsyncEngine
    events: EventBus
    ratings: RatingService
    sessions: SessionService
    multiplayer: MultiplayerService
    achievements: AchievementService

    async def record_session_result(
        self, session_id: str, winner_id: str, *, apply_xp_rewards: bool = True
    ) -> MatchResult:
        return await match_flow.record_session_result(
            self.sessions,
            self.ratings,
            self.achievements,
            session_id,
            winner_id,
            apply_xp_rewards=apply_xp_rewards,
        )

    async def record_game_result(
        self, game_id: str, winner_id: str, *, apply_xp_rewards: bool = True
    ) -> MatchResult:
        return await match_flow.record_game_result(
            self.multiplayer,
            self.ratings,
            self.achievements,
            game_id,
            winner_id,
            apply_xp_rewards=apply_xp_rewards,
        )


@asynccontextmanager
async def open_arena(
    database_url: str | None = None,
    *,
    latency: float | None = None,
    seed: bool = False,
) -> AsyncIterator[Arena]:
    """
    Creates a fresh arena and disposes of its store on exit.

    Args:
        database_url: Store URL; defaults to DATABASE_URL (in-memory SQLite)
        latency: Simulated latency in seconds; defaults to ARENA_LATENCY_MS
        seed: Load the demo roster, sessions and lobbies
    """
    engine = create_store_engine(database_url)
    try:
        await init_store(engine)

        session_factory = create_session_factory(engine)
        events = EventBus()
        # Every engine shares one lock so transactions never interleave
        # on the store's single connection
        store_lock = asyncio.Lock()
        options = {"store_lock": store_lock, "latency": latency}

        arena = Arena(
            engine=engine,
            events=events,
            ratings=RatingService(session_factory, events, **options),
            sessions=SessionService(session_factory, events, **options),
            multiplayer=MultiplayerService(session_factory, events, **options),
            achievements=AchievementService(session_factory, events, **options),
        )

        if seed:
            from .seed import load_demo_data

            await load_demo_data(arena)

        logger.info("Arena opened", extra={"url": str(engine.url), "seeded": seed})
        yield arena
    finally:
        # Shutdown: Dispose of store connections gracefully
        await engine.dispose()
        logger.debug("Arena closed")
