# src/arenarank/services/rating_service.py

"""Rating engine: the player roster, Elo updates, levels and the leaderboard."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arenarank.db import models
from arenarank.events import Topic
from arenarank.exceptions import (
    DuplicatePlayerError,
    InvalidExperienceError,
    InvalidPlayerDataError,
    PlayerNotFoundError,
    SelfMatchError,
)
from arenarank.middleware.logging import log_operation
from arenarank.rating import progression
from arenarank.rating.elo_engine import EloEngine
from arenarank.schemas.leaderboard import LeaderboardEntry
from arenarank.schemas.player import PlayerRead
from arenarank.schemas.player_stats import PlayerProgress, PlayerStats
from arenarank.schemas.rating import RatingHistoryRead, RatingUpdate

from .base import BaseService

logger = logging.getLogger(__name__)

# Starting rating for players registered without one
DEFAULT_RATING = 1500


def _leaderboard_entry(rank: int, player: models.Player) -> LeaderboardEntry:
    return LeaderboardEntry(
        rank=rank,
        player_id=player.id,
        username=player.username,
        avatar=player.avatar,
        rating=player.rating,
        games_played=player.games_played,
        win_rate=progression.calculate_win_rate(player.games_won, player.games_played),
        last_active=player.last_active_at,
    )


class RatingService(BaseService):
    """Owns the canonical player roster and derives the leaderboard from it."""

    def __init__(self, *args, elo_engine: EloEngine | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.elo = elo_engine or EloEngine()

    # Pure formulas, exposed on the engine for callers that only hold it
    calculate_level = staticmethod(progression.calculate_level)
    calculate_experience_to_next_level = staticmethod(
        progression.calculate_experience_to_next_level
    )

    # ===============================================
    # Store helpers
    # ===============================================

    async def _get_player_or_raise(
        self, db: AsyncSession, player_id: str
    ) -> models.Player:
        player = await models.Player.find_by_id(db, player_id)
        if player is None:
            raise PlayerNotFoundError(player_id)
        return player

    async def _ranked_players(
        self, db: AsyncSession, limit: int | None = None
    ) -> list[models.Player]:
        # Descending rating; equal ratings keep roster insertion order
        query = select(models.Player).order_by(
            models.Player.rating.desc(), models.Player.seq
        )
        if limit is not None:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def _snapshot(
        self, db: AsyncSession
    ) -> tuple[list[PlayerRead], list[LeaderboardEntry]]:
        """Full roster (insertion order) and full leaderboard."""
        roster = await db.execute(select(models.Player).order_by(models.Player.seq))
        players = [PlayerRead.model_validate(p) for p in roster.scalars().all()]
        ranked = await self._ranked_players(db)
        leaderboard = [_leaderboard_entry(i, p) for i, p in enumerate(ranked, start=1)]
        return players, leaderboard

    async def _history(
        self, db: AsyncSession, player_id: str | None = None
    ) -> list[RatingHistoryRead]:
        """Rating history, newest first."""
        query = select(models.RatingHistoryEntry).order_by(
            models.RatingHistoryEntry.seq.desc()
        )
        if player_id is not None:
            query = query.where(models.RatingHistoryEntry.player_id == player_id)
        result = await db.execute(query)
        return [RatingHistoryRead.model_validate(h) for h in result.scalars().all()]

    def _publish_roster(
        self, players: list[PlayerRead], leaderboard: list[LeaderboardEntry]
    ) -> None:
        self.publish(Topic.PLAYERS, players)
        self.publish(Topic.LEADERBOARD, leaderboard)

    # ===============================================
    # Roster
    # ===============================================

    @log_operation
    async def register_player(
        self,
        username: str,
        avatar: str = "",
        *,
        player_id: str | None = None,
        level: int | None = None,
        experience: int = 0,
        rating: int = DEFAULT_RATING,
        games_played: int = 0,
        games_won: int = 0,
    ) -> PlayerRead:
        """
        Adds a player to the roster.

        The level defaults to the level the experience implies.

        Raises:
            InvalidPlayerDataError: If the starting stats break an invariant
            DuplicatePlayerError: If ``player_id`` is already registered
        """
        if experience < 0:
            raise InvalidPlayerDataError("experience must be >= 0", player_id)
        if rating < 0:
            raise InvalidPlayerDataError("rating must be >= 0", player_id)
        if games_played < 0 or not 0 <= games_won <= games_played:
            raise InvalidPlayerDataError(
                "games_won must be between 0 and games_played", player_id
            )
        if level is None:
            level = progression.calculate_level(experience)
        if level < 1:
            raise InvalidPlayerDataError("level must be >= 1", player_id)

        player_id = player_id or models.generate_id("player")

        async with self.mutation(player_id) as db:
            if await models.Player.find_by_id(db, player_id) is not None:
                raise DuplicatePlayerError(player_id)

            player = models.Player(
                id=player_id,
                username=username,
                avatar=avatar,
                level=level,
                experience=experience,
                rating=rating,
                games_played=games_played,
                games_won=games_won,
                last_active_at=models.utc_now(),
            )
            db.add(player)
            await db.flush()

            created = PlayerRead.model_validate(player)
            players, leaderboard = await self._snapshot(db)

        logger.info(
            "Registered player",
            extra={"player_id": created.id, "rating": created.rating},
        )
        self._publish_roster(players, leaderboard)
        return created

    async def get_player(self, player_id: str) -> PlayerRead:
        async with self.reading() as db:
            return PlayerRead.model_validate(
                await self._get_player_or_raise(db, player_id)
            )

    async def get_players(self) -> list[PlayerRead]:
        async with self.reading() as db:
            players, _ = await self._snapshot(db)
            return players

    # ===============================================
    # Rating updates
    # ===============================================

    async def _rate_pair(
        self,
        db: AsyncSession,
        winner: models.Player,
        loser: models.Player,
        game_id: str,
    ) -> RatingUpdate:
        """Moves the Elo delta and writes both history entries.

        Counts the game for the loser only; the caller counts the winner's.
        """
        outcome = self.elo.rate(winner.rating, loser.rating)
        winner.rating = outcome.winner_rating
        loser.rating = outcome.loser_rating
        loser.games_played += 1

        now = models.utc_now()
        winner.last_active_at = now
        loser.last_active_at = now

        db.add_all(
            [
                models.RatingHistoryEntry(
                    player_id=winner.id,
                    game_id=game_id,
                    rating=winner.rating,
                    change=outcome.rating_change,
                    date=now,
                ),
                models.RatingHistoryEntry(
                    player_id=loser.id,
                    game_id=game_id,
                    rating=loser.rating,
                    change=-outcome.rating_change,
                    date=now,
                ),
            ]
        )
        await db.flush()

        return RatingUpdate(
            winner=PlayerRead.model_validate(winner),
            loser=PlayerRead.model_validate(loser),
            rating_change=outcome.rating_change,
        )

    @log_operation
    async def record_match(
        self, winner_id: str, loser_ids: list[str], game_id: str
    ) -> list[RatingUpdate]:
        """
        Applies the result of one game with several losers.

        The winner is rated against each loser in order, every pair moving
        its own Elo delta and writing its own history entries, all in one
        transaction. The game counts once for every participant.

        Raises:
            SelfMatchError: If the winner is also listed as a loser
            InvalidPlayerDataError: If no loser is given or one is repeated
            PlayerNotFoundError: If any player does not exist
        """
        if winner_id in loser_ids:
            raise SelfMatchError(winner_id)
        if not loser_ids or len(set(loser_ids)) != len(loser_ids):
            raise InvalidPlayerDataError(
                "loser_ids must be non-empty and distinct", winner_id
            )

        async with self.mutation(winner_id, *loser_ids) as db:
            winner = await self._get_player_or_raise(db, winner_id)
            losers = [await self._get_player_or_raise(db, i) for i in loser_ids]

            winner.games_played += 1
            winner.games_won += 1
            updates = [
                await self._rate_pair(db, winner, loser, game_id) for loser in losers
            ]
            players, leaderboard = await self._snapshot(db)
            history = await self._history(db)

        logger.info(
            "Match rated",
            extra={
                "game_id": game_id,
                "winner_id": winner_id,
                "losers": len(loser_ids),
                "rating_change": sum(u.rating_change for u in updates),
            },
        )
        self._publish_roster(players, leaderboard)
        self.publish(Topic.RATING_HISTORY, history)
        return updates

    @log_operation
    async def update_rating(
        self, winner_id: str, loser_id: str, game_id: str
    ) -> RatingUpdate:
        """
        Applies the Elo result of one decided game.

        This operation is responsible for:
        1. Moving the rating change from the loser to the winner (the loser
           is floored at zero)
        2. Counting the game for both players and the win for the winner
        3. Appending one history entry per player with opposite-signed changes
        4. Republishing the roster, leaderboard and history

        Raises:
            SelfMatchError: If winner and loser are the same player
            PlayerNotFoundError: If either player does not exist
        """
        if winner_id == loser_id:
            raise SelfMatchError(winner_id)

        async with self.mutation(winner_id, loser_id) as db:
            winner = await self._get_player_or_raise(db, winner_id)
            loser = await self._get_player_or_raise(db, loser_id)

            winner.games_played += 1
            winner.games_won += 1
            update = await self._rate_pair(db, winner, loser, game_id)
            players, leaderboard = await self._snapshot(db)
            history = await self._history(db)

        logger.info(
            "Rating updated",
            extra={
                "game_id": game_id,
                "winner_id": winner_id,
                "loser_id": loser_id,
                "rating_change": update.rating_change,
            },
        )
        self._publish_roster(players, leaderboard)
        self.publish(Topic.RATING_HISTORY, history)
        return update

    async def get_leaderboard(self, limit: int = 10) -> list[LeaderboardEntry]:
        """Top ``limit`` players by descending rating, ranked from 1."""
        if limit <= 0:
            return []
        async with self.reading() as db:
            ranked = await self._ranked_players(db, limit=limit)
            return [_leaderboard_entry(i, p) for i, p in enumerate(ranked, start=1)]

    async def get_player_rank(self, player_id: str) -> int:
        """1-based leaderboard position of ``player_id``."""
        async with self.reading() as db:
            await self._get_player_or_raise(db, player_id)
            ranked = await self._ranked_players(db)
            return next(i for i, p in enumerate(ranked, start=1) if p.id == player_id)

    async def get_player_rating_history(
        self, player_id: str
    ) -> list[RatingHistoryRead]:
        """Rating history of one player, newest first."""
        async with self.reading() as db:
            await self._get_player_or_raise(db, player_id)
            return await self._history(db, player_id)

    async def get_player_stats(self, player_id: str) -> PlayerStats:
        async with self.reading() as db:
            player = await self._get_player_or_raise(db, player_id)
            return PlayerStats(
                player_id=player.id,
                total_games=player.games_played,
                wins=player.games_won,
                losses=player.games_played - player.games_won,
                win_rate=progression.calculate_win_rate(
                    player.games_won, player.games_played
                ),
            )

    # ===============================================
    # Experience and levels
    # ===============================================

    async def get_player_progress(self, player_id: str) -> PlayerProgress:
        async with self.reading() as db:
            player = await self._get_player_or_raise(db, player_id)
            return PlayerProgress(
                player_id=player.id,
                level=player.level,
                experience=player.experience,
                experience_to_next_level=progression.calculate_experience_to_next_level(
                    player.level
                ),
                level_progress=progression.calculate_level_progress(
                    player.experience, player.level
                ),
            )

    @log_operation
    async def add_experience(self, player_id: str, xp: int) -> PlayerRead:
        """
        Grants experience and raises the level when the new total earns it.

        Levels never decrease, even if a player's stored level is above what
        their experience implies.

        Raises:
            InvalidExperienceError: If ``xp`` is negative
            PlayerNotFoundError: If the player does not exist
        """
        if xp < 0:
            raise InvalidExperienceError(xp)

        async with self.mutation(player_id) as db:
            player = await self._get_player_or_raise(db, player_id)
            player.experience += xp

            new_level = progression.calculate_level(player.experience)
            if new_level > player.level:
                logger.info(
                    "Player leveled up",
                    extra={
                        "player_id": player_id,
                        "old_level": player.level,
                        "new_level": new_level,
                    },
                )
                player.level = new_level
            player.last_active_at = models.utc_now()
            await db.flush()

            updated = PlayerRead.model_validate(player)
            players, leaderboard = await self._snapshot(db)

        self._publish_roster(players, leaderboard)
        return updated
