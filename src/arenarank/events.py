# src/arenarank/events.py

"""Observer registry for change notifications.

Engines publish the full post-transition aggregate (a list of read models,
or a single read model) on a topic after every successful mutation.
Listeners run synchronously, in subscription order.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class Topic(str, Enum):
    """Logical topics an engine publishes on."""

    PLAYERS = "players"
    LEADERBOARD = "leaderboard"
    RATING_HISTORY = "rating_history"
    SESSIONS = "sessions"
    CURRENT_SESSION = "current_session"
    GAMES = "games"
    GAME_UPDATES = "game_updates"
    CHAT = "chat"
    ACHIEVEMENTS = "achievements"
    REWARDS = "rewards"


class EventBus:
    """A list of callbacks per topic."""

    def __init__(self) -> None:
        self._listeners: dict[Topic, list[Listener]] = defaultdict(list)

    def subscribe(self, topic: Topic, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` on ``topic``. Returns an unsubscribe callable."""
        self._listeners[topic].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[topic]:
                self._listeners[topic].remove(listener)

        return unsubscribe

    def listener_count(self, topic: Topic) -> int:
        return len(self._listeners[topic])

    def publish(self, topic: Topic, payload: Any) -> None:
        """Deliver ``payload`` to every listener on ``topic``.

        The mutation being reported is already committed, so a failing
        listener is logged and the remaining listeners still run.
        """
        for listener in list(self._listeners[topic]):
            try:
                listener(payload)
            except Exception:
                logger.exception(
                    "Listener failed",
                    extra={"topic": topic.value, "listener": repr(listener)},
                )
