# src/arenarank/services/session_service.py

"""Game session lifecycle: waiting -> active -> finished, waiting -> cancelled."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arenarank.db import models
from arenarank.events import Topic
from arenarank.exceptions import (
    CapacityError,
    DuplicatePlayerError,
    InsufficientPlayersError,
    InvalidCapacityError,
    InvalidStateError,
    NotAParticipantError,
    OperationTimeoutError,
    SessionNotFoundError,
)
from arenarank.middleware.logging import log_operation
from arenarank.schemas.common import SessionStatus
from arenarank.schemas.player import PlayerBase
from arenarank.schemas.session import GameSessionRead

from .base import BaseService

logger = logging.getLogger(__name__)

ENTITY = "session"

# A session cannot start with fewer players than this
MIN_PLAYERS_TO_START = 2


class SessionService(BaseService):
    """Owns game sessions. Players are referenced by id, never owned."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._current_session_id: str | None = None

    # ===============================================
    # Store helpers
    # ===============================================

    async def _find_session(
        self, db: AsyncSession, session_id: str
    ) -> models.GameSession | None:
        result = await db.execute(
            select(models.GameSession).where(models.GameSession.id == session_id)
        )
        return result.scalar_one_or_none()

    async def _get_session_or_raise(
        self, db: AsyncSession, session_id: str
    ) -> models.GameSession:
        session = await self._find_session(db, session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def _all_sessions(self, db: AsyncSession) -> list[GameSessionRead]:
        """Every session, newest first."""
        result = await db.execute(
            select(models.GameSession).order_by(models.GameSession.seq.desc())
        )
        return [GameSessionRead.model_validate(s) for s in result.scalars().all()]

    @staticmethod
    def _require_status(
        session: models.GameSession, status: SessionStatus, operation: str
    ) -> None:
        if session.status != status.value:
            raise InvalidStateError(ENTITY, session.id, session.status, operation)

    @staticmethod
    def _find_participant(
        session: models.GameSession, player_id: str
    ) -> models.SessionParticipant | None:
        return next((p for p in session.players if p.player_id == player_id), None)

    # ===============================================
    # Transitions
    # ===============================================

    @log_operation
    async def create_session(
        self, game_name: str, max_players: int, *, game_id: str | None = None
    ) -> GameSessionRead:
        """
        Creates a session in ``waiting`` with no players.

        Raises:
            InvalidCapacityError: If ``max_players`` is below 2
        """
        if max_players < MIN_PLAYERS_TO_START:
            raise InvalidCapacityError(max_players, MIN_PLAYERS_TO_START)

        session_id = models.generate_id("session")
        async with self.mutation(session_id) as db:
            session = models.GameSession(
                id=session_id,
                game_id=game_id or models.generate_id("game"),
                game_name=game_name,
                start_time=models.utc_now(),
                status=SessionStatus.WAITING.value,
                max_players=max_players,
                current_players=0,
                players=[],
            )
            db.add(session)
            await db.flush()

            created = GameSessionRead.model_validate(session)
            sessions = await self._all_sessions(db)

        logger.info(
            "Session created",
            extra={"session_id": session_id, "max_players": max_players},
        )
        self.publish(Topic.SESSIONS, sessions)
        return created

    @log_operation
    async def join_session(self, session_id: str, player: PlayerBase) -> GameSessionRead:
        """
        Appends ``player`` to a waiting session.

        Raises:
            SessionNotFoundError: If the session does not exist
            InvalidStateError: If the session is not waiting
            CapacityError: If the session is full
            DuplicatePlayerError: If the player already joined
        """
        async with self.mutation(session_id) as db:
            session = await self._get_session_or_raise(db, session_id)
            self._require_status(session, SessionStatus.WAITING, "join")

            if session.current_players >= session.max_players:
                raise CapacityError(ENTITY, session_id, session.max_players)
            if self._find_participant(session, player.id) is not None:
                raise DuplicatePlayerError(player.id, session_id)

            session.players.append(
                models.SessionParticipant(
                    player_id=player.id,
                    username=player.username,
                    avatar=player.avatar,
                    joined_at=models.utc_now(),
                )
            )
            session.current_players = len(session.players)
            await db.flush()

            updated = GameSessionRead.model_validate(session)
            sessions = await self._all_sessions(db)

        self.publish(Topic.SESSIONS, sessions)
        return updated

    @log_operation
    async def start_session(self, session_id: str) -> GameSessionRead:
        """
        Moves a waiting session to ``active`` and resets its start time.

        Raises:
            SessionNotFoundError: If the session does not exist
            InvalidStateError: If the session is not waiting
            InsufficientPlayersError: If fewer than 2 players joined
        """
        async with self.mutation(session_id) as db:
            session = await self._get_session_or_raise(db, session_id)
            self._require_status(session, SessionStatus.WAITING, "start")

            if session.current_players < MIN_PLAYERS_TO_START:
                raise InsufficientPlayersError(
                    ENTITY, session_id, session.current_players, MIN_PLAYERS_TO_START
                )

            session.status = SessionStatus.ACTIVE.value
            session.start_time = models.utc_now()
            await db.flush()

            updated = GameSessionRead.model_validate(session)
            sessions = await self._all_sessions(db)

        self._current_session_id = session_id
        self.publish(Topic.SESSIONS, sessions)
        self.publish(Topic.CURRENT_SESSION, updated)
        return updated

    @log_operation
    async def end_session(self, session_id: str, winner_id: str) -> GameSessionRead:
        """
        Finishes an active session with a winner.

        Raises:
            SessionNotFoundError: If the session does not exist
            InvalidStateError: If the session is not active
            NotAParticipantError: If the winner did not play in the session
        """
        async with self.mutation(session_id) as db:
            session = await self._get_session_or_raise(db, session_id)
            self._require_status(session, SessionStatus.ACTIVE, "end")

            if self._find_participant(session, winner_id) is None:
                raise NotAParticipantError(winner_id, session_id)

            session.status = SessionStatus.FINISHED.value
            session.end_time = models.utc_now()
            session.winner_id = winner_id
            await db.flush()

            updated = GameSessionRead.model_validate(session)
            sessions = await self._all_sessions(db)

        logger.info(
            "Session finished",
            extra={"session_id": session_id, "winner_id": winner_id},
        )
        self.publish(Topic.SESSIONS, sessions)
        self._clear_current(session_id)
        return updated

    @log_operation
    async def leave_session(self, session_id: str, player_id: str) -> GameSessionRead:
        """
        Removes a player. A session left without players is cancelled.

        Raises:
            SessionNotFoundError: If the session does not exist
            InvalidStateError: If the session is finished or cancelled
            NotAParticipantError: If the player is not in the session
        """
        async with self.mutation(session_id) as db:
            session = await self._get_session_or_raise(db, session_id)
            if SessionStatus(session.status).is_terminal:
                raise InvalidStateError(ENTITY, session_id, session.status, "leave")

            participant = self._find_participant(session, player_id)
            if participant is None:
                raise NotAParticipantError(player_id, session_id)

            session.players.remove(participant)
            session.current_players = len(session.players)
            if session.current_players == 0:
                session.status = SessionStatus.CANCELLED.value
                logger.info(
                    "Session cancelled, no players left",
                    extra={"session_id": session_id},
                )
            await db.flush()

            updated = GameSessionRead.model_validate(session)
            sessions = await self._all_sessions(db)

        self.publish(Topic.SESSIONS, sessions)
        if updated.status == SessionStatus.CANCELLED:
            self._clear_current(session_id)
        return updated

    def _clear_current(self, session_id: str) -> None:
        if self._current_session_id == session_id:
            self._current_session_id = None
            self.publish(Topic.CURRENT_SESSION, None)

    # ===============================================
    # Queries
    # ===============================================

    async def get_session_by_id(self, session_id: str) -> GameSessionRead | None:
        async with self.reading() as db:
            session = await self._find_session(db, session_id)
            return GameSessionRead.model_validate(session) if session else None

    async def get_sessions(self) -> list[GameSessionRead]:
        async with self.reading() as db:
            return await self._all_sessions(db)

    async def get_active_sessions(self) -> list[GameSessionRead]:
        """Sessions that are waiting or active, newest first."""
        async with self.reading() as db:
            result = await db.execute(
                select(models.GameSession)
                .where(
                    models.GameSession.status.in_(
                        [SessionStatus.WAITING.value, SessionStatus.ACTIVE.value]
                    )
                )
                .order_by(models.GameSession.seq.desc())
            )
            return [GameSessionRead.model_validate(s) for s in result.scalars().all()]

    async def get_player_sessions(self, player_id: str) -> list[GameSessionRead]:
        """Finished sessions the player took part in, newest first."""
        async with self.reading() as db:
            result = await db.execute(
                select(models.GameSession)
                .join(models.SessionParticipant)
                .where(
                    models.SessionParticipant.player_id == player_id,
                    models.GameSession.status == SessionStatus.FINISHED.value,
                )
                .order_by(models.GameSession.seq.desc())
            )
            return [GameSessionRead.model_validate(s) for s in result.scalars().all()]

    async def get_current_session(self) -> GameSessionRead | None:
        """The most recently started session, until it ends or is cancelled."""
        if self._current_session_id is None:
            return None
        return await self.get_session_by_id(self._current_session_id)

    async def wait_for_status(
        self,
        session_id: str,
        status: SessionStatus | str,
        timeout: float,
    ) -> GameSessionRead:
        """
        Waits until a session reaches ``status``.

        Waiting never touches session state, so a timeout leaves nothing
        half-applied.

        Raises:
            SessionNotFoundError: If the session does not exist
            InvalidStateError: If the session ends in a different terminal status
            OperationTimeoutError: If ``timeout`` seconds pass first
        """
        target = SessionStatus(status)
        future: asyncio.Future[GameSessionRead] = (
            asyncio.get_running_loop().create_future()
        )

        def on_sessions(sessions: list[GameSessionRead]) -> None:
            if future.done():
                return
            for session in sessions:
                if session.id != session_id:
                    continue
                if session.status == target:
                    future.set_result(session)
                elif session.status.is_terminal:
                    future.set_exception(
                        InvalidStateError(
                            ENTITY, session_id, session.status.value, f"reach {target.value}"
                        )
                    )
                return

        unsubscribe = self.events.subscribe(Topic.SESSIONS, on_sessions)
        try:
            current = await self.get_session_by_id(session_id)
            if current is None:
                raise SessionNotFoundError(session_id)
            on_sessions([current])
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            raise OperationTimeoutError(
                f"session {session_id} to become {target.value}", timeout
            ) from None
        finally:
            unsubscribe()
