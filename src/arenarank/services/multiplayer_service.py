# src/arenarank/services/multiplayer_service.py

"""Hosted multiplayer games, their lobby chat, and host reassignment."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arenarank.db import models
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
from arenarank.middleware.logging import log_operation
from arenarank.schemas.common import ChatMessageType, GameStatus
from arenarank.schemas.multiplayer import ChatMessageRead, GameUpdate, MultiplayerGameRead
from arenarank.schemas.player import PlayerBase

from .base import BaseService

logger = logging.getLogger(__name__)

ENTITY = "game"

# Sender id and display name of engine-generated chat lines
SYSTEM_PLAYER_ID = "system"
SYSTEM_PLAYER_NAME = "System"


class MultiplayerService(BaseService):
    """Owns multiplayer games. A game nobody is left in is deleted."""

    # ===============================================
    # Store helpers
    # ===============================================

    async def _find_game(
        self, db: AsyncSession, game_id: str
    ) -> models.MultiplayerGame | None:
        result = await db.execute(
            select(models.MultiplayerGame).where(models.MultiplayerGame.id == game_id)
        )
        return result.scalar_one_or_none()

    async def _get_game_or_raise(
        self, db: AsyncSession, game_id: str
    ) -> models.MultiplayerGame:
        game = await self._find_game(db, game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        return game

    async def _all_games(self, db: AsyncSession) -> list[MultiplayerGameRead]:
        """Every game still in the active set, newest first."""
        result = await db.execute(
            select(models.MultiplayerGame).order_by(models.MultiplayerGame.seq.desc())
        )
        return [MultiplayerGameRead.model_validate(g) for g in result.scalars().all()]

    async def _chat(self, db: AsyncSession, game_id: str) -> list[ChatMessageRead]:
        result = await db.execute(
            select(models.ChatMessage)
            .where(models.ChatMessage.game_id == game_id)
            .order_by(models.ChatMessage.seq)
        )
        return [ChatMessageRead.model_validate(m) for m in result.scalars().all()]

    @staticmethod
    def _find_participant(
        game: models.MultiplayerGame, player_id: str
    ) -> models.GameParticipant | None:
        return next((p for p in game.players if p.player_id == player_id), None)

    @staticmethod
    def _add_message(
        db: AsyncSession,
        game_id: str,
        message: str,
        *,
        player_id: str = SYSTEM_PLAYER_ID,
        player_name: str = SYSTEM_PLAYER_NAME,
        message_type: ChatMessageType = ChatMessageType.SYSTEM,
    ) -> models.ChatMessage:
        chat_message = models.ChatMessage(
            id=models.generate_id("msg"),
            game_id=game_id,
            player_id=player_id,
            player_name=player_name,
            message=message,
            type=message_type.value,
            timestamp=models.utc_now(),
        )
        db.add(chat_message)
        return chat_message

    def _publish_game(
        self,
        games: list[MultiplayerGameRead],
        game: MultiplayerGameRead,
        chat: list[ChatMessageRead] | None = None,
    ) -> None:
        self.publish(Topic.GAMES, games)
        self.publish(Topic.GAME_UPDATES, game)
        if chat is not None:
            self.publish(Topic.CHAT, chat)

    # ===============================================
    # Transitions
    # ===============================================

    @log_operation
    async def create_game(
        self,
        name: str,
        description: str,
        max_players: int,
        host: PlayerBase,
        *,
        min_players: int = 2,
    ) -> MultiplayerGameRead:
        """
        Opens a waiting game with ``host`` as its first player.

        Raises:
            InvalidCapacityError: Unless 2 <= min_players <= max_players
        """
        if min_players < 2 or max_players < min_players:
            raise InvalidCapacityError(max_players, min_players)

        game_id = models.generate_id("game")
        async with self.mutation(game_id) as db:
            game = models.MultiplayerGame(
                id=game_id,
                name=name,
                description=description,
                max_players=max_players,
                min_players=min_players,
                active_players=1,
                status=GameStatus.WAITING.value,
                host_id=host.id,
                players=[
                    models.GameParticipant(
                        player_id=host.id,
                        username=host.username,
                        avatar=host.avatar,
                        joined_at=models.utc_now(),
                    )
                ],
            )
            db.add(game)
            await db.flush()

            created = MultiplayerGameRead.model_validate(game)
            games = await self._all_games(db)

        logger.info(
            "Game created",
            extra={"game_id": game_id, "host_id": host.id, "max_players": max_players},
        )
        self._publish_game(games, created)
        return created

    @log_operation
    async def join_game(self, game_id: str, player: PlayerBase) -> MultiplayerGameRead:
        """
        Adds ``player`` to a waiting game and announces it in the chat.

        Raises:
            GameNotFoundError: If the game does not exist
            InvalidStateError: If the game already started or finished
            CapacityError: If the game is full
            DuplicatePlayerError: If the player already joined
        """
        async with self.mutation(game_id) as db:
            game = await self._get_game_or_raise(db, game_id)
            if game.status != GameStatus.WAITING.value:
                raise InvalidStateError(ENTITY, game_id, game.status, "join")
            if game.active_players >= game.max_players:
                raise CapacityError(ENTITY, game_id, game.max_players)
            if self._find_participant(game, player.id) is not None:
                raise DuplicatePlayerError(player.id, game_id)

            game.players.append(
                models.GameParticipant(
                    player_id=player.id,
                    username=player.username,
                    avatar=player.avatar,
                    joined_at=models.utc_now(),
                )
            )
            game.active_players = len(game.players)
            self._add_message(db, game_id, f"{player.username} joined the game")
            await db.flush()

            updated = MultiplayerGameRead.model_validate(game)
            games = await self._all_games(db)
            chat = await self._chat(db, game_id)

        self._publish_game(games, updated, chat)
        return updated

    @log_operation
    async def start_game(self, game_id: str) -> MultiplayerGameRead:
        """
        Moves a waiting game to ``in_progress``.

        Raises:
            GameNotFoundError: If the game does not exist
            InvalidStateError: If the game is not waiting
            InsufficientPlayersError: If fewer than ``min_players`` joined
        """
        async with self.mutation(game_id) as db:
            game = await self._get_game_or_raise(db, game_id)
            if game.status != GameStatus.WAITING.value:
                raise InvalidStateError(ENTITY, game_id, game.status, "start")
            if game.active_players < game.min_players:
                raise InsufficientPlayersError(
                    ENTITY, game_id, game.active_players, game.min_players
                )

            game.status = GameStatus.IN_PROGRESS.value
            self._add_message(db, game_id, "The game has started!")
            await db.flush()

            updated = MultiplayerGameRead.model_validate(game)
            games = await self._all_games(db)
            chat = await self._chat(db, game_id)

        self._publish_game(games, updated, chat)
        return updated

    @log_operation
    async def leave_game(self, game_id: str, player_id: str) -> MultiplayerGameRead:
        """
        Removes a player from a waiting or running game.

        If the host leaves and players remain, the first remaining
        participant (join order) becomes host. If nobody remains, the game
        is deleted and its final snapshot is returned.

        Raises:
            GameNotFoundError: If the game does not exist
            InvalidStateError: If the game is finished
            NotAParticipantError: If the player is not in the game
        """
        async with self.mutation(game_id) as db:
            game = await self._get_game_or_raise(db, game_id)
            if game.status == GameStatus.FINISHED.value:
                raise InvalidStateError(ENTITY, game_id, game.status, "leave")

            participant = self._find_participant(game, player_id)
            if participant is None:
                raise NotAParticipantError(player_id, game_id)

            game.players.remove(participant)
            game.active_players = len(game.players)

            if game.host_id == player_id:
                game.host_id = game.players[0].player_id if game.players else None
                logger.info(
                    "Host reassigned",
                    extra={"game_id": game_id, "host_id": game.host_id},
                )

            if not game.players:
                final = MultiplayerGameRead.model_validate(game)
                await db.delete(game)
                await db.flush()
                games = await self._all_games(db)
                chat = None
                logger.info("Game deleted, no players left", extra={"game_id": game_id})
            else:
                self._add_message(db, game_id, f"{participant.username} left the game")
                await db.flush()
                final = MultiplayerGameRead.model_validate(game)
                games = await self._all_games(db)
                chat = await self._chat(db, game_id)

        if chat is None:
            self.publish(Topic.GAMES, games)
        else:
            self._publish_game(games, final, chat)
        return final

    @log_operation
    async def finish_game(
        self, game_id: str, winner_id: str | None = None
    ) -> MultiplayerGameRead:
        """
        Moves a running game to ``finished``, optionally with a winner.

        Raises:
            GameNotFoundError: If the game does not exist
            InvalidStateError: If the game is not in progress
            NotAParticipantError: If the winner is not in the game
        """
        async with self.mutation(game_id) as db:
            game = await self._get_game_or_raise(db, game_id)
            if game.status != GameStatus.IN_PROGRESS.value:
                raise InvalidStateError(ENTITY, game_id, game.status, "finish")

            announcement = "The game has finished!"
            if winner_id is not None:
                winner = self._find_participant(game, winner_id)
                if winner is None:
                    raise NotAParticipantError(winner_id, game_id)
                announcement = f"The game has finished! Winner: {winner.username}"

            game.status = GameStatus.FINISHED.value
            game.winner_id = winner_id
            self._add_message(db, game_id, announcement)
            await db.flush()

            updated = MultiplayerGameRead.model_validate(game)
            games = await self._all_games(db)
            chat = await self._chat(db, game_id)

        self._publish_game(games, updated, chat)
        return updated

    @log_operation
    async def update_game_state(
        self, game_id: str, updates: GameUpdate
    ) -> MultiplayerGameRead:
        """
        Changes lobby settings. Only fields that were set are applied.

        Raises:
            GameNotFoundError: If the game does not exist
            InvalidStateError: If the game is finished
            InvalidCapacityError: If max_players would drop below min_players
                or below the current number of players
        """
        update_data = {
            key: value
            for key, value in updates.model_dump(exclude_unset=True).items()
            if value is not None
        }

        async with self.mutation(game_id) as db:
            game = await self._get_game_or_raise(db, game_id)
            if game.status == GameStatus.FINISHED.value:
                raise InvalidStateError(ENTITY, game_id, game.status, "update")

            max_players = update_data.get("max_players")
            if max_players is not None:
                if max_players < game.min_players:
                    raise InvalidCapacityError(max_players, game.min_players)
                if max_players < game.active_players:
                    raise InvalidCapacityError(
                        max_players,
                        game.min_players,
                        message=f"max_players cannot drop below the "
                        f"{game.active_players} players already in game {game_id}",
                    )

            for key, value in update_data.items():
                setattr(game, key, value)
            await db.flush()

            updated = MultiplayerGameRead.model_validate(game)
            games = await self._all_games(db)

        self._publish_game(games, updated)
        return updated

    # ===============================================
    # Chat
    # ===============================================

    @log_operation
    async def send_chat_message(
        self,
        game_id: str,
        player_id: str,
        player_name: str,
        message: str,
        message_type: ChatMessageType = ChatMessageType.TEXT,
    ) -> ChatMessageRead:
        """Appends a line to a game's chat.

        Raises:
            GameNotFoundError: If the game does not exist
        """
        async with self.mutation(game_id) as db:
            await self._get_game_or_raise(db, game_id)
            chat_message = self._add_message(
                db,
                game_id,
                message,
                player_id=player_id,
                player_name=player_name,
                message_type=message_type,
            )
            await db.flush()

            sent = ChatMessageRead.model_validate(chat_message)
            chat = await self._chat(db, game_id)

        self.publish(Topic.CHAT, chat)
        return sent

    async def simulate_game_event(self, game_id: str, event: str) -> ChatMessageRead:
        """Announces an in-game event in the chat."""
        return await self.send_chat_message(
            game_id,
            SYSTEM_PLAYER_ID,
            SYSTEM_PLAYER_NAME,
            f"Game event: {event}",
            ChatMessageType.GAME_EVENT,
        )

    async def get_chat_messages(self, game_id: str) -> list[ChatMessageRead]:
        async with self.reading() as db:
            await self._get_game_or_raise(db, game_id)
            return await self._chat(db, game_id)

    # ===============================================
    # Queries
    # ===============================================

    async def get_game_by_id(self, game_id: str) -> MultiplayerGameRead | None:
        async with self.reading() as db:
            game = await self._find_game(db, game_id)
            return MultiplayerGameRead.model_validate(game) if game else None

    async def get_games(self) -> list[MultiplayerGameRead]:
        async with self.reading() as db:
            return await self._all_games(db)

    async def get_active_games(self) -> list[MultiplayerGameRead]:
        """Games still waiting for players, newest first."""
        async with self.reading() as db:
            result = await db.execute(
                select(models.MultiplayerGame)
                .where(models.MultiplayerGame.status == GameStatus.WAITING.value)
                .order_by(models.MultiplayerGame.seq.desc())
            )
            return [
                MultiplayerGameRead.model_validate(g) for g in result.scalars().all()
            ]
