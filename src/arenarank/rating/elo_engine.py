# src/arenarank/rating/elo_engine.py

"""
Elo rating calculation for one-on-one games.

The expected score of the winner is the logistic curve
E = 1 / (1 + 10^((loser - winner) / 400)) and the rating change is
round(K * (1 - E)), so the change never exceeds K.
"""

import math
from dataclasses import dataclass

# K-factor: the maximum rating swing for a single game.
K_FACTOR = 32

# Rating difference that multiplies the odds of winning by ten.
SCALE_FACTOR = 400.0


@dataclass(frozen=True)
class EloOutcome:
    """New ratings for both sides of a decided game."""

    winner_rating: int
    loser_rating: int
    rating_change: int


class EloEngine:
    """Encapsulates the Elo calculation logic."""

    def __init__(self, k_factor: int = K_FACTOR, scale_factor: float = SCALE_FACTOR):
        self._k_factor = k_factor
        self._scale_factor = scale_factor

    @property
    def k_factor(self) -> int:
        return self._k_factor

    def expected_score(self, rating: int, opponent_rating: int) -> float:
        """Probability (0..1) that ``rating`` beats ``opponent_rating``."""
        exponent = (opponent_rating - rating) / self._scale_factor
        return 1.0 / (1.0 + 10.0**exponent)

    def rating_change(self, winner_rating: int, loser_rating: int) -> int:
        """Points moved from the loser to the winner. Always in [0, K].

        Halves round up rather than to even.
        """
        expected = self.expected_score(winner_rating, loser_rating)
        return math.floor(self._k_factor * (1.0 - expected) + 0.5)

    def rate(self, winner_rating: int, loser_rating: int) -> EloOutcome:
        """
        Calculates both new ratings for a decided game.

        The loser's rating is floored at zero; the winner always gains the
        full change even when the loser had fewer points to give.
        """
        change = self.rating_change(winner_rating, loser_rating)
        return EloOutcome(
            winner_rating=winner_rating + change,
            loser_rating=max(0, loser_rating - change),
            rating_change=change,
        )


_default_engine = EloEngine()


def calculate_rating_change(
    winner_rating: int, loser_rating: int, k_factor: int = K_FACTOR
) -> int:
    """Rating change for a winner/loser pair with the given K-factor."""
    if k_factor == K_FACTOR:
        return _default_engine.rating_change(winner_rating, loser_rating)
    return EloEngine(k_factor=k_factor).rating_change(winner_rating, loser_rating)
