# src/arenarank/seed.py

"""Demo data for a fresh arena: a small roster, two sessions, two lobbies."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from arenarank.schemas.achievement import RewardCreate
from arenarank.schemas.common import RewardType
from arenarank.schemas.player import PlayerBase

if TYPE_CHECKING:
    from arenarank.main import Arena

logger = logging.getLogger(__name__)

DEMO_PLAYERS = [
    {
        "player_id": "player1",
        "username": "Alexei",
        "avatar": "👑",
        "level": 15,
        "experience": 5600,
        "rating": 1850,
        "games_played": 120,
        "games_won": 85,
    },
    {
        "player_id": "player2",
        "username": "Maria",
        "avatar": "🎯",
        "level": 12,
        "experience": 3800,
        "rating": 1720,
        "games_played": 95,
        "games_won": 65,
    },
    {
        "player_id": "player3",
        "username": "Dmitry",
        "avatar": "⚔️",
        "level": 10,
        "experience": 2500,
        "rating": 1650,
        "games_played": 80,
        "games_won": 50,
    },
    {
        "player_id": "player4",
        "username": "Anna",
        "avatar": "🌟",
        "level": 8,
        "experience": 1800,
        "rating": 1520,
        "games_played": 60,
        "games_won": 35,
    },
    {
        "player_id": "player5",
        "username": "Sergei",
        "avatar": "🎮",
        "level": 6,
        "experience": 1200,
        "rating": 1420,
        "games_played": 45,
        "games_won": 25,
    },
]

DEMO_REWARDS = [
    RewardCreate(
        id="welcome_bonus",
        name="Welcome Bonus",
        description="Reward for signing up",
        type=RewardType.COINS,
        value=100,
        icon="💰",
    ),
    RewardCreate(
        id="daily_login",
        name="Daily Bonus",
        description="Reward for logging in today",
        type=RewardType.XP,
        value=50,
        icon="📅",
    ),
]


async def load_demo_data(arena: Arena) -> None:
    """Fills an empty arena through its public operations."""
    roster = {}
    for data in DEMO_PLAYERS:
        player = await arena.ratings.register_player(**data)
        roster[player.id] = PlayerBase(
            id=player.id, username=player.username, avatar=player.avatar
        )

    # One finished two-player session and one still waiting for players
    chess = await arena.sessions.create_session("Chess", 2, game_id="game1")
    await arena.sessions.join_session(chess.id, roster["player1"])
    await arena.sessions.join_session(chess.id, roster["player2"])
    await arena.sessions.start_session(chess.id)
    await arena.sessions.end_session(chess.id, "player1")

    poker = await arena.sessions.create_session("Poker", 4, game_id="game2")
    await arena.sessions.join_session(poker.id, roster["player3"])

    tournament = await arena.multiplayer.create_game(
        "Chess Tournament",
        "Weekly tournament open to everyone",
        16,
        roster["player1"],
    )
    for player_id in ("player2", "player3"):
        await arena.multiplayer.join_game(tournament.id, roster[player_id])
    await arena.multiplayer.send_chat_message(
        tournament.id, "player1", roster["player1"].username, "Hi all! Ready to play?"
    )

    await arena.multiplayer.create_game(
        "Quick Games", "Fast 1v1 matches", 2, roster["player2"]
    )

    for achievement_id in ("first_game", "first_win"):
        await arena.achievements.unlock_achievement("player1", achievement_id)
    for reward in DEMO_REWARDS:
        await arena.achievements.award_reward("player1", reward)

    logger.info("Demo data loaded", extra={"players": len(roster)})
