# src/arenarank/services/match_flow.py

"""Records a finished session or game across all three engines.

The flow is: end the session or game, rate the winner against every loser in
one rating transaction, check achievements for every participant, then grant
the xp rewards earned by new unlocks. Participants are validated against the
roster before anything is changed.

Once validation has passed the remaining steps run to completion in their
own task. Cancelling the caller waits for them and then propagates, so a
recorded result is never left half applied.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

from arenarank.achievements.catalog import REWARD_XP_MULTIPLIER
from arenarank.exceptions import (
    GameNotFoundError,
    NotAParticipantError,
    SessionNotFoundError,
)
from arenarank.schemas.achievement import AchievementRead
from arenarank.schemas.match import MatchResult
from arenarank.schemas.player import ParticipantRead

from .achievement_service import AchievementService
from .multiplayer_service import MultiplayerService
from .rating_service import RatingService
from .session_service import SessionService

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _run_to_completion(coro: Coroutine[Any, Any, T]) -> T:
    """Runs ``coro`` in its own task, shielded from the caller's cancellation.

    A cancelled caller waits for the task to finish before the
    CancelledError is re-raised.
    """
    task = asyncio.ensure_future(coro)
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        await asyncio.wait({task})
        logger.warning(
            "Match recording cancelled by caller after completing",
            extra={"failed": task.cancelled() or task.exception() is not None},
        )
        raise


async def _validate_participants(
    ratings: RatingService,
    container_id: str,
    participants: list[ParticipantRead],
    winner_id: str,
) -> None:
    """
    Validates participants before any engine state changes.

    Raises:
        NotAParticipantError: If the winner did not take part
        PlayerNotFoundError: If a participant is missing from the roster
    """
    if not any(p.player_id == winner_id for p in participants):
        raise NotAParticipantError(winner_id, container_id)

    for participant in participants:
        await ratings.get_player(participant.player_id)

    logger.debug("Participant validation passed", extra={"container_id": container_id})


async def _rate_and_reward(
    ratings: RatingService,
    achievements: AchievementService,
    container_id: str,
    game_id: str,
    participants: list[ParticipantRead],
    winner_id: str,
    apply_xp_rewards: bool,
) -> MatchResult:
    # The winner is rated pairwise against every loser, in join order
    loser_ids = [p.player_id for p in participants if p.player_id != winner_id]
    rating_updates = (
        await ratings.record_match(winner_id, loser_ids, game_id) if loser_ids else []
    )

    unlocked: dict[str, list[AchievementRead]] = {}
    players = []
    for participant in participants:
        player = await ratings.get_player(participant.player_id)
        new = await achievements.check_and_unlock_achievements(player.id, player)
        if new:
            unlocked[player.id] = new
            if apply_xp_rewards:
                xp = sum(a.points for a in new) * REWARD_XP_MULTIPLIER
                player = await ratings.add_experience(player.id, xp)
        players.append(player)

    logger.info(
        "Match result recorded",
        extra={
            "container_id": container_id,
            "winner_id": winner_id,
            "rating_updates": len(rating_updates),
            "unlocked": sum(len(a) for a in unlocked.values()),
        },
    )
    return MatchResult(
        container_id=container_id,
        winner_id=winner_id,
        rating_updates=rating_updates,
        unlocked=unlocked,
        players=players,
    )


async def record_session_result(
    sessions: SessionService,
    ratings: RatingService,
    achievements: AchievementService,
    session_id: str,
    winner_id: str,
    *,
    apply_xp_rewards: bool = True,
) -> MatchResult:
    """
    Ends an active session and applies its result to ratings and achievements.

    Raises:
        SessionNotFoundError: If the session does not exist
        NotAParticipantError: If the winner did not play in the session
        PlayerNotFoundError: If a participant is not in the roster
        InvalidStateError: If the session is not active
    """
    session = await sessions.get_session_by_id(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)

    await _validate_participants(ratings, session_id, session.players, winner_id)

    async def apply() -> MatchResult:
        finished = await sessions.end_session(session_id, winner_id)
        return await _rate_and_reward(
            ratings,
            achievements,
            session_id,
            finished.game_id,
            finished.players,
            winner_id,
            apply_xp_rewards,
        )

    return await _run_to_completion(apply())


async def record_game_result(
    multiplayer: MultiplayerService,
    ratings: RatingService,
    achievements: AchievementService,
    game_id: str,
    winner_id: str,
    *,
    apply_xp_rewards: bool = True,
) -> MatchResult:
    """
    Finishes a running multiplayer game and applies its result.

    Raises:
        GameNotFoundError: If the game does not exist
        NotAParticipantError: If the winner is not in the game
        PlayerNotFoundError: If a participant is not in the roster
        InvalidStateError: If the game is not in progress
    """
    game = await multiplayer.get_game_by_id(game_id)
    if game is None:
        raise GameNotFoundError(game_id)

    await _validate_participants(ratings, game_id, game.players, winner_id)

    async def apply() -> MatchResult:
        finished = await multiplayer.finish_game(game_id, winner_id)
        return await _rate_and_reward(
            ratings,
            achievements,
            game_id,
            game_id,
            finished.players,
            winner_id,
            apply_xp_rewards,
        )

    return await _run_to_completion(apply())
