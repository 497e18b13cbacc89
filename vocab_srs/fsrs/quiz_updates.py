"""
Quiz Updates

Response-quality classification and stability/difficulty rules for the
quiz scheduler. Input is binary correctness plus response time; there is
no 4-point rating.
"""

from __future__ import annotations

import random

from vocab_srs.fsrs.constants import D_MAX, D_MIN, QuizResponse
from vocab_srs.fsrs.memory_state import clamp, ensure_finite
from vocab_srs.fsrs.parameters import QuizParameters


def determine_response_quality(
    params: QuizParameters,
    response_time_ms: float,
    is_correct: bool,
    avg_response_time_ms: float
) -> QuizResponse:
    """
    Classify an answer by correctness and speed relative to the running average.

    - Wrong: AGAIN
    - Faster than 70% of average: EASY
    - Faster than 130% of average: GOOD
    - Otherwise: HARD
    """
    if not is_correct:
        return QuizResponse.AGAIN

    if response_time_ms < avg_response_time_ms * params.easy_speed_ratio:
        return QuizResponse.EASY
    if response_time_ms < avg_response_time_ms * params.hard_speed_ratio:
        return QuizResponse.GOOD
    return QuizResponse.HARD


def next_stability(
    params: QuizParameters,
    stability: float,
    difficulty: float,
    is_correct: bool,
    quality: QuizResponse = QuizResponse.GOOD
) -> float:
    """
    Stability after an answer.

    Wrong answers decay stability (floored at the minimum interval).
    Correct answers multiply it by the quality multiplier and a difficulty
    factor (11 - D) / 10, so easier questions grow faster.
    """
    if not is_correct:
        return clamp(
            ensure_finite("stability", stability * params.stability_decay),
            params.minimum_interval,
            params.maximum_interval,
        )

    if quality == QuizResponse.AGAIN:
        quality = QuizResponse.GOOD
    difficulty_factor = (11 - difficulty) / 10

    grown = stability * params.multiplier_for(quality) * difficulty_factor
    return clamp(ensure_finite("stability", grown), params.minimum_interval, params.maximum_interval)


def next_difficulty(params: QuizParameters, difficulty: float, is_correct: bool) -> float:
    """Small fixed step: down when correct, up when wrong."""
    if is_correct:
        raw = difficulty - params.difficulty_decrement
    else:
        raw = difficulty + params.difficulty_increment
    return clamp(ensure_finite("difficulty", raw), D_MIN, D_MAX)


def draw_jitter(params: QuizParameters, rng: random.Random) -> float:
    """Uniform factor in [1 - jitter, 1 + jitter) to spread due dates."""
    return 1.0 - params.jitter + rng.random() * 2 * params.jitter
