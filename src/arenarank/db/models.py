# src/arenarank/db/models.py

"""Store models for the ArenaRank engines."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, List

from sqlalchemy import (
    ForeignKey,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import (
    Mapped,
    declarative_base,
    mapped_column,
    relationship,
)

Base = declarative_base()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_id(prefix: str) -> str:
    """Public id such as ``player_3f9a1c2b7``."""
    return f"{prefix}_{uuid.uuid4().hex[:9]}"


# ===============================================
# Mixins for Common Columns
# ===============================================


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(
        default=None,
        onupdate=utc_now,
        nullable=True,
    )


class ParticipantMixin:
    """Join-ordered snapshot of a player taking part in a session or game.

    Players are referenced by id; username and avatar are copied at join
    time so participant lists can be read without touching the roster.
    """

    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    username: Mapped[str] = mapped_column(String, nullable=False)
    avatar: Mapped[str] = mapped_column(String, default="", nullable=False)
    joined_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)


# ===============================================
# Rating Engine: roster and history
# ===============================================


class Player(Base, TimestampMixin):
    """A roster entry owned by the rating engine.

    ``seq`` is the insertion order of the roster and breaks leaderboard ties.
    """

    __tablename__ = "players"
    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    username: Mapped[str] = mapped_column(String, nullable=False)
    avatar: Mapped[str] = mapped_column(String, default="", nullable=False)
    level: Mapped[int] = mapped_column(default=1, nullable=False)
    experience: Mapped[int] = mapped_column(default=0, nullable=False)
    rating: Mapped[int] = mapped_column(default=1500, nullable=False, index=True)
    games_played: Mapped[int] = mapped_column(default=0, nullable=False)
    games_won: Mapped[int] = mapped_column(default=0, nullable=False)
    last_active_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)

    rating_history: Mapped[List["RatingHistoryEntry"]] = relationship(
        back_populates="player", cascade="all, delete-orphan"
    )

    def __init__(self, id: str, username: str, **kw: Any):
        super().__init__(**kw)
        self.id = id
        self.username = username

    @classmethod
    async def find_by_id(cls, db: AsyncSession, player_id: str) -> "Player | None":
        """Find a roster entry by its public string id."""
        result = await db.execute(select(cls).where(cls.id == player_id))
        return result.scalar_one_or_none()


class RatingHistoryEntry(Base):
    """Append-only log of rating changes, one row per player per game."""

    __tablename__ = "rating_history"
    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(
        ForeignKey("players.id"), nullable=False, index=True
    )
    game_id: Mapped[str] = mapped_column(String, nullable=False)
    rating: Mapped[int] = mapped_column(nullable=False)
    change: Mapped[int] = mapped_column(nullable=False)
    date: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)

    player: Mapped["Player"] = relationship(back_populates="rating_history")


# ===============================================
# Session / Game State Machine
# ===============================================


class GameSession(Base, TimestampMixin):
    """A single play session moving through waiting/active/finished/cancelled."""

    __tablename__ = "game_sessions"
    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    game_id: Mapped[str] = mapped_column(String, nullable=False)
    game_name: Mapped[str] = mapped_column(String, nullable=False)
    start_time: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(default=None, nullable=True)
    winner_id: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(
        String, default="waiting", nullable=False, index=True
    )
    max_players: Mapped[int] = mapped_column(nullable=False)
    current_players: Mapped[int] = mapped_column(default=0, nullable=False)

    players: Mapped[List["SessionParticipant"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SessionParticipant.seq",
        lazy="selectin",
    )


class SessionParticipant(Base, ParticipantMixin):
    """Links a player snapshot to a session, in join order."""

    __tablename__ = "session_participants"
    session_id: Mapped[str] = mapped_column(
        ForeignKey("game_sessions.id"), nullable=False, index=True
    )

    session: Mapped["GameSession"] = relationship(back_populates="players")

    __table_args__ = (
        UniqueConstraint("session_id", "player_id", name="_session_player_uc"),
    )


class MultiplayerGame(Base, TimestampMixin):
    """A hosted multiplayer lobby moving through waiting/in_progress/finished."""

    __tablename__ = "multiplayer_games"
    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, default="", nullable=False)
    max_players: Mapped[int] = mapped_column(nullable=False)
    min_players: Mapped[int] = mapped_column(default=2, nullable=False)
    active_players: Mapped[int] = mapped_column(default=0, nullable=False)
    status: Mapped[str] = mapped_column(
        String, default="waiting", nullable=False, index=True
    )
    host_id: Mapped[str | None] = mapped_column(String, nullable=True)
    winner_id: Mapped[str | None] = mapped_column(String, nullable=True)

    players: Mapped[List["GameParticipant"]] = relationship(
        back_populates="game",
        cascade="all, delete-orphan",
        order_by="GameParticipant.seq",
        lazy="selectin",
    )
    # Loaded eagerly so deleting the game can cascade without lazy IO
    chat_messages: Mapped[List["ChatMessage"]] = relationship(
        back_populates="game",
        cascade="all, delete-orphan",
        order_by="ChatMessage.seq",
        lazy="selectin",
    )


class GameParticipant(Base, ParticipantMixin):
    """Links a player snapshot to a multiplayer game, in join order."""

    __tablename__ = "game_participants"
    game_id: Mapped[str] = mapped_column(
        ForeignKey("multiplayer_games.id"), nullable=False, index=True
    )

    game: Mapped["MultiplayerGame"] = relationship(back_populates="players")

    __table_args__ = (UniqueConstraint("game_id", "player_id", name="_game_player_uc"),)


class ChatMessage(Base):
    """A lobby chat line; player_id is 'system' for engine-generated lines."""

    __tablename__ = "chat_messages"
    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    game_id: Mapped[str] = mapped_column(
        ForeignKey("multiplayer_games.id"), nullable=False, index=True
    )
    player_id: Mapped[str] = mapped_column(String, nullable=False)
    player_name: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(String, default="text", nullable=False)
    timestamp: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)

    game: Mapped["MultiplayerGame"] = relationship(back_populates="chat_messages")


# ===============================================
# Achievement Engine: per-player unlocks and rewards
# ===============================================


class PlayerAchievement(Base):
    """One unlocked catalog achievement for one player."""

    __tablename__ = "player_achievements"
    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    achievement_id: Mapped[str] = mapped_column(String, nullable=False)
    unlock_date: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)

    # Each achievement can be unlocked by a player at most once
    __table_args__ = (
        UniqueConstraint("player_id", "achievement_id", name="_player_achievement_uc"),
    )


class RewardGrant(Base):
    """The reward ledger. Reward ids are unique per player."""

    __tablename__ = "reward_grants"
    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String, nullable=False)
    player_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, default="", nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    value: Mapped[int] = mapped_column(nullable=False)
    icon: Mapped[str] = mapped_column(String, default="", nullable=False)
    award_date: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)

    __table_args__ = (UniqueConstraint("player_id", "id", name="_player_reward_uc"),)
