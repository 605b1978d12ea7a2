# src/arenarank/services/base.py

"""
Base service class for the ArenaRank engines.

Provides transactional store access, one-mutation-in-flight-per-entity
locking, and the simulated latency every operation waits through.
"""

from __future__ import annotations

import asyncio
import logging
import os
import weakref
from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from arenarank.events import EventBus, Topic

logger = logging.getLogger(__name__)


def default_latency() -> float:
    """Simulated latency in seconds, from ARENA_LATENCY_MS (default 0)."""
    return int(os.getenv("ARENA_LATENCY_MS", "0")) / 1000


class BaseService:
    """Base class for all engines with async store session management."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        events: EventBus,
        *,
        store_lock: asyncio.Lock | None = None,
        latency: float | None = None,
    ) -> None:
        """
        Initialize base service with session factory.

        Args:
            session_factory: Async session factory for the arena's store
            events: Bus that successful mutations are published on
            store_lock: Lock shared by every engine of one arena; serializes
                transactions on the store's single connection
            latency: Simulated latency in seconds before each operation
        """
        self.session_factory = session_factory
        self.events = events
        self._store_lock = store_lock or asyncio.Lock()
        # A lock lives only while some operation holds or awaits it
        self._entity_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self.latency = default_latency() if latency is None else latency

    def _lock_for(self, entity_id: str) -> asyncio.Lock:
        lock = self._entity_locks.get(entity_id)
        if lock is None:
            lock = self._entity_locks[entity_id] = asyncio.Lock()
        return lock

    async def simulate_latency(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

    @asynccontextmanager
    async def mutation(self, *entity_ids: str) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for one mutation.

        Holds the lock of every entity in ``entity_ids`` (acquired in sorted
        order) for the whole operation. Latency is awaited before the store
        is touched, so a cancelled operation applies nothing. The transaction
        commits when the block exits cleanly and rolls back otherwise,
        including on cancellation.
        """
        async with AsyncExitStack() as stack:
            for entity_id in sorted(set(entity_ids)):
                await stack.enter_async_context(self._lock_for(entity_id))

            await self.simulate_latency()

            async with self._store_lock:
                session = self.session_factory()
                try:
                    yield session
                    await session.commit()
                except BaseException:
                    await session.rollback()
                    raise
                finally:
                    await session.close()

    @asynccontextmanager
    async def reading(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a read-only scope. Nothing read here is ever committed."""
        await self.simulate_latency()
        async with self._store_lock:
            async with self.session_factory() as session:
                yield session

    def publish(self, topic: Topic, payload: Any) -> None:
        """Notify observers after a committed mutation."""
        self.events.publish(topic, payload)
