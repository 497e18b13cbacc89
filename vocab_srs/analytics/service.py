"""
Service layer to assemble study summaries and keep user statistics current.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, fields
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from vocab_srs import fsrs
from vocab_srs.analytics.metrics import (
    build_day_window,
    compute_due_count,
    compute_mastered_count,
    compute_progress_by_day,
    compute_state_counts,
)
from vocab_srs.analytics.queries import cards_to_df, history_to_df
from vocab_srs.analytics.statistics import UserStatistics, update_user_statistics
from vocab_srs.analytics.types import StudySummary
from vocab_srs.fsrs.memory_state import CardState, utc_now
from vocab_srs.review_ingestion import IngestionResult, ReviewHistoryRecord

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30


def build_study_summary(
    cards: Iterable[CardState],
    history: Iterable[Union[ReviewHistoryRecord, Mapping[str, Any]]],
    now: datetime,
    days: int = DEFAULT_WINDOW_DAYS
) -> StudySummary:
    """
    Build the dashboard numbers from card states and review history.

    Args:
        cards: Current card states
        history: Review history records (records outside the window are ignored)
        now: Reference time; the window ends on its UTC day
        days: Window length in days
    """
    cards_df = cards_to_df(cards)
    history_df = history_to_df(history)
    day_index = build_day_window(now, days)
    progress = compute_progress_by_day(history_df, day_index)

    return StudySummary(
        progress_by_day=progress,
        total_reviews=int(progress["reviews"].sum()),
        state_counts=compute_state_counts(cards_df),
        due_today=compute_due_count(cards_df, now),
        total_cards=len(cards_df),
        words_mastered=compute_mastered_count(cards_df),
    )


def load_study_summary(
    user_id: str,
    now: Optional[datetime] = None,
    days: int = DEFAULT_WINDOW_DAYS
) -> StudySummary:
    """Study summary for a stored user."""
    now = now or utc_now()
    since = now - timedelta(days=days)
    return build_study_summary(
        fsrs.get_all_card_states(user_id),
        fsrs.get_history_since(user_id, since),
        now,
        days,
    )


def _statistics_from_row(row: Optional[Mapping[str, Any]]) -> UserStatistics:
    if row is None:
        return UserStatistics()
    known = {f.name for f in fields(UserStatistics)}
    return UserStatistics(**{k: v for k, v in row.items() if k in known and v is not None})


def load_user_statistics(user_id: str) -> UserStatistics:
    return _statistics_from_row(fsrs.load_user_statistics_row(user_id))


def record_review_statistics(
    user_id: str,
    result: IngestionResult,
    today: Optional[date] = None
) -> UserStatistics:
    """
    Fold a stored review into the user statistics.

    Runs after the review is committed, so the mastered-card count
    already includes it.

    A failing mastered-card count keeps the previous value.
    """
    audit = result.audit_record
    today = today or audit.reviewed_at.date()
    stats = load_user_statistics(user_id)

    try:
        words_mastered = fsrs.count_mastered_cards(user_id)
    except Exception:
        logger.exception("could not count mastered cards for user %s", user_id)
        words_mastered = None

    updated = update_user_statistics(
        stats,
        was_correct=audit.was_correct,
        response_time_ms=audit.response_time_ms or 0,
        today=today,
        words_mastered=words_mastered,
    )
    fsrs.save_user_statistics_row(user_id, asdict(updated))
    return updated


def make_statistics_hook(user_id: str) -> Callable[[IngestionResult], None]:
    """Post-commit hook that keeps a user's statistics row current."""
    def hook(result: IngestionResult) -> None:
        record_review_statistics(user_id, result)
    return hook
