# src/arenarank/simulation.py

"""Optional lobby activity simulator.

Bots join and leave waiting multiplayer games at random, going through the
regular service operations so every lobby invariant still holds. Nothing
here runs unless a simulator is explicitly started.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from arenarank.exceptions import ArenaRankError
from arenarank.schemas.multiplayer import MultiplayerGameRead
from arenarank.schemas.player import PlayerBase
from arenarank.services.multiplayer_service import MultiplayerService

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[None]]

DEFAULT_BOTS: tuple[PlayerBase, ...] = tuple(
    PlayerBase(id=f"bot_{i}", username=f"Bot {i}", avatar="🤖") for i in range(1, 9)
)


class ScheduledJob(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs an async job repeatedly."""

    def every(self, interval: float, job: Job) -> ScheduledJob: ...


# ===============================================
# Schedulers
# ===============================================


class AsyncioScheduler:
    """Runs each job in a background task on the running event loop."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def every(self, interval: float, job: Job) -> asyncio.Task:
        task = asyncio.create_task(self._loop(interval, job))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _loop(self, interval: float, job: Job) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await job()
            except Exception:
                logger.exception("Scheduled job failed")

    async def shutdown(self) -> None:
        """Cancels every job and waits for them to stop."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


@dataclass
class _ManualJob:
    interval: float
    job: Job
    next_run: float
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """A scheduler driven by ``advance``; for tests."""

    now: float = 0.0
    _jobs: list[_ManualJob] = field(default_factory=list)

    def every(self, interval: float, job: Job) -> _ManualJob:
        scheduled = _ManualJob(interval=interval, job=job, next_run=self.now + interval)
        self._jobs.append(scheduled)
        return scheduled

    @property
    def pending(self) -> int:
        return sum(1 for j in self._jobs if not j.cancelled)

    async def advance(self, seconds: float) -> int:
        """Moves the clock forward, running every job that falls due.

        Returns the number of job runs.
        """
        target = self.now + seconds
        runs = 0
        while True:
            due = [j for j in self._jobs if not j.cancelled and j.next_run <= target]
            if not due:
                break
            scheduled = min(due, key=lambda j: j.next_run)
            self.now = scheduled.next_run
            scheduled.next_run += scheduled.interval
            await scheduled.job()
            runs += 1
        self.now = target
        return runs


# ===============================================
# Simulator
# ===============================================


class RealtimeSimulator:
    """Randomly moves bots in and out of waiting games.

    Args:
        multiplayer: Service whose games are simulated
        scheduler: Drives ``tick``; defaults to an AsyncioScheduler
        rng: Random source; pass a seeded ``random.Random`` for repeatable runs
        interval: Seconds between ticks
        activity: Chance per tick that a waiting game sees a join or leave
        bots: Players the simulator may add to games
    """

    def __init__(
        self,
        multiplayer: MultiplayerService,
        *,
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
        interval: float = 10.0,
        activity: float = 0.3,
        bots: Sequence[PlayerBase] = DEFAULT_BOTS,
    ) -> None:
        self.multiplayer = multiplayer
        self.scheduler = scheduler or AsyncioScheduler()
        self.rng = rng or random.Random()
        self.interval = interval
        self.activity = activity
        self.bots = list(bots)
        self._job: ScheduledJob | None = None

    @property
    def running(self) -> bool:
        return self._job is not None

    def start(self) -> None:
        if self._job is None:
            self._job = self.scheduler.every(self.interval, self.tick)
            logger.info("Realtime simulator started", extra={"interval": self.interval})

    def stop(self) -> None:
        if self._job is not None:
            self._job.cancel()
            self._job = None
            logger.info("Realtime simulator stopped")

    async def tick(self) -> None:
        """Runs one round of simulated activity over every waiting game."""
        for game in await self.multiplayer.get_active_games():
            if self.rng.random() >= self.activity:
                continue
            try:
                await self._step(game)
            except ArenaRankError as e:
                # The game changed under us (started, filled up or deleted)
                logger.debug(
                    "Simulated step skipped",
                    extra={"game_id": game.id, "reason": e.message},
                )

    async def _step(self, game: MultiplayerGameRead) -> None:
        present = {p.player_id for p in game.players}
        bots_in_game = [b for b in self.bots if b.id in present]
        bots_available = [b for b in self.bots if b.id not in present]

        if (
            self.rng.random() > 0.5
            and game.active_players < game.max_players
            and bots_available
        ):
            await self.multiplayer.join_game(game.id, self.rng.choice(bots_available))
        elif game.active_players > 1 and bots_in_game:
            await self.multiplayer.leave_game(game.id, self.rng.choice(bots_in_game).id)
