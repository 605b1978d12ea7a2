# src/arenarank/rating/progression.py

"""Experience, level and win-rate formulas."""

import math

# Experience needed per squared level step
EXPERIENCE_PER_LEVEL_UNIT = 100


def calculate_level(experience: int) -> int:
    """Level for a total experience: floor(sqrt(experience / 100)) + 1.

    Level 1 at zero experience; non-decreasing in experience.
    """
    return math.isqrt(max(0, experience) // EXPERIENCE_PER_LEVEL_UNIT) + 1


def calculate_experience_to_next_level(level: int) -> int:
    """Experience threshold shown for the next level: level^2 * 100."""
    return level**2 * EXPERIENCE_PER_LEVEL_UNIT


def calculate_win_rate(wins: int, total_games: int) -> float:
    """Win percentage (0-100). Zero when no games were played."""
    return (wins / total_games) * 100 if total_games > 0 else 0.0


def calculate_level_progress(experience: int, level: int) -> float:
    """Experience as a percentage of the next-level threshold.

    Not capped: a player whose level lags its experience reports over 100.
    """
    to_next = calculate_experience_to_next_level(level)
    return (experience / to_next) * 100
