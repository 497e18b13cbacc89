"""
Running per-user study statistics.

Pure update rules; loading and saving the row lives in the database module.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Iterable, Optional

from vocab_srs.fsrs.constants import MASTERED_STABILITY_DAYS
from vocab_srs.fsrs.memory_state import CardState, round_half_up


DEFAULT_DAILY_GOAL = 20


@dataclass(frozen=True)
class UserStatistics:
    current_streak: int = 0
    longest_streak: int = 0
    last_study_date: Optional[date] = None
    total_cards_studied: int = 0
    total_study_time: int = 0  # milliseconds
    total_reviews: int = 0
    words_mastered: int = 0
    average_retention_rate: float = 0.0
    average_response_time: int = 0  # milliseconds
    daily_goal: int = DEFAULT_DAILY_GOAL


def next_streak(current_streak: int, last_study_date: Optional[date], today: date) -> int:
    """
    Day streak after studying today.

    Studying again on the same day keeps the streak; studying the day after
    the last study day extends it; any longer gap restarts it at 1.
    """
    if last_study_date == today:
        return current_streak
    if last_study_date == today - timedelta(days=1):
        return current_streak + 1
    return 1


def count_mastered(cards: Iterable[CardState]) -> int:
    """Cards whose stability has reached the mastery threshold."""
    return sum(
        1 for card in cards
        if card.stability is not None and card.stability >= MASTERED_STABILITY_DAYS
    )


def update_user_statistics(
    stats: UserStatistics,
    was_correct: bool,
    response_time_ms: int,
    today: date,
    words_mastered: Optional[int] = None
) -> UserStatistics:
    """
    Fold one review into the running statistics.

    Args:
        stats: Current statistics
        was_correct: Rating >= 3 for cards, a right answer for quiz questions
        response_time_ms: Time spent on the review
        today: UTC calendar day of the review
        words_mastered: Fresh mastered count; None keeps the previous value

    Returns:
        Updated statistics
    """
    total_reviews = stats.total_reviews + 1
    retention = (stats.average_retention_rate * stats.total_reviews + int(was_correct)) / total_reviews
    if stats.total_reviews > 0:
        avg_response = round_half_up(
            (stats.average_response_time * stats.total_reviews + response_time_ms) / total_reviews
        )
    else:
        avg_response = response_time_ms

    streak = next_streak(stats.current_streak, stats.last_study_date, today)

    return replace(
        stats,
        total_cards_studied=stats.total_cards_studied + 1,
        total_study_time=stats.total_study_time + response_time_ms,
        total_reviews=total_reviews,
        average_retention_rate=retention,
        average_response_time=avg_response,
        current_streak=streak,
        longest_streak=max(stats.longest_streak, streak),
        words_mastered=stats.words_mastered if words_mastered is None else words_mastered,
        last_study_date=today,
    )
