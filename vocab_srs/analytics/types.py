"""
Types for study summaries.
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd


@dataclass(frozen=True)
class StudySummary:
    """
    Precomputed counts and daily series for one learner.

    progress_by_day is indexed by UTC day with columns reviews and
    correct_reviews.
    """
    progress_by_day: pd.DataFrame
    total_reviews: int
    state_counts: dict[str, int]
    due_today: int
    total_cards: int
    words_mastered: int
