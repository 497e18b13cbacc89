"""
Metric computations for study summaries.
"""

from __future__ import annotations

from datetime import datetime

import pandas as pd

from vocab_srs.fsrs.constants import MASTERED_STABILITY_DAYS


def build_day_window(now: datetime, days: int) -> pd.DatetimeIndex:
    """
    Dense UTC day index of `days` days ending with the day of `now`.
    """
    if days <= 0:
        return pd.DatetimeIndex([], tz="UTC")
    end = pd.Timestamp(now).tz_convert("UTC").floor("D")
    return pd.date_range(end=end, periods=days, freq="D")


def compute_progress_by_day(history_df: pd.DataFrame, day_index: pd.DatetimeIndex) -> pd.DataFrame:
    """
    Reviews and correct reviews per day, zero-filled over the window.
    """
    progress = pd.DataFrame(
        {"reviews": 0, "correct_reviews": 0}, index=day_index, dtype="int64"
    )
    if history_df.empty or day_index.empty:
        return progress

    grouped = history_df.groupby("day_utc")["correct"]
    progress["reviews"] = grouped.size().reindex(day_index, fill_value=0).astype("int64")
    progress["correct_reviews"] = grouped.sum().reindex(day_index, fill_value=0).astype("int64")
    return progress


def compute_state_counts(cards_df: pd.DataFrame) -> dict[str, int]:
    if cards_df.empty:
        return {}
    return {str(state): int(count) for state, count in cards_df["state"].value_counts().items()}


def compute_due_count(cards_df: pd.DataFrame, now: datetime) -> int:
    """Cards whose due date has passed; cards without one are not counted."""
    if cards_df.empty:
        return 0
    return int((cards_df["due_date"] <= pd.Timestamp(now)).sum())


def compute_mastered_count(cards_df: pd.DataFrame) -> int:
    if cards_df.empty:
        return 0
    return int((cards_df["stability"] >= MASTERED_STABILITY_DAYS).sum())
