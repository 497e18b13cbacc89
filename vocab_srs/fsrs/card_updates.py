"""
Card Updates

Difficulty and stability update rules for the long-horizon card scheduler.

Key principles:
- First review seeds difficulty and stability from rating-indexed weights
- Successful recall grows stability exponentially, faster for easier cards
  and for cards recalled when retrievability had already dropped
- Forgetting resets stability along a power-law curve
"""

from __future__ import annotations

import math
from typing import Sequence

from vocab_srs.fsrs.constants import CARD_INITIAL_STABILITY_FLOOR, D_MAX, D_MIN, Rating
from vocab_srs.fsrs.memory_state import clamp, ensure_finite


def init_difficulty(w: Sequence[float], rating: Rating) -> float:
    """
    Initial difficulty after the first review.

    Formula: D0 = clip(w[4] - exp(w[5] * (rating - 1)), 1, 10)
    """
    raw = w[4] - math.exp(w[5] * (rating - 1))
    return clamp(ensure_finite("difficulty", raw), D_MIN, D_MAX)


def init_stability(w: Sequence[float], rating: Rating) -> float:
    """Initial stability: the rating's entry in w[0..3]."""
    return max(CARD_INITIAL_STABILITY_FLOOR, ensure_finite("stability", w[rating - 1]))


def next_difficulty(w: Sequence[float], difficulty: float, rating: Rating) -> float:
    """
    Linear difficulty adjustment around GOOD.

    Formula: D' = clip(D - w[6] * (rating - 3), 1, 10)
    """
    raw = difficulty - w[6] * (rating - 3)
    return clamp(ensure_finite("difficulty", raw), D_MIN, D_MAX)


def next_recall_stability(
    w: Sequence[float],
    difficulty: float,
    stability: float,
    retrievability: float,
    rating: Rating
) -> float:
    """
    Stability after a successful recall (HARD, GOOD or EASY).

    Formula:
        S' = S * e^w[8] * (11 - D) * S^-w[9] * (e^((1 - R) * w[10]) - 1)
               * hard_penalty * easy_bonus

    Args:
        w: Weight table
        difficulty: Difficulty before this review
        stability: Stability before this review
        retrievability: Retrievability at review time
        rating: HARD, GOOD or EASY

    Returns:
        New stability (unclamped)
    """
    hard_penalty = w[15] if rating == Rating.HARD else 1.0
    easy_bonus = w[16] if rating == Rating.EASY else 1.0

    return stability * (
        math.exp(w[8])
        * (11 - difficulty)
        * math.pow(stability, -w[9])
        * (math.exp((1 - retrievability) * w[10]) - 1)
        * hard_penalty
        * easy_bonus
    )


def next_forget_stability(
    w: Sequence[float],
    difficulty: float,
    stability: float,
    retrievability: float
) -> float:
    """
    Stability after a lapse (AGAIN).

    Formula: S' = w[11] * D^-w[12] * ((S + 1)^w[13] - 1) * e^((1 - R) * w[14])
    """
    return (
        w[11]
        * math.pow(difficulty, -w[12])
        * (math.pow(stability + 1, w[13]) - 1)
        * math.exp((1 - retrievability) * w[14])
    )
