"""
Data-loading helpers for analytics.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Union

import pandas as pd

from vocab_srs import fsrs
from vocab_srs.fsrs.memory_state import CardState
from vocab_srs.review_ingestion import ReviewHistoryRecord

HISTORY_COLUMNS = ["item_id", "item_kind", "reviewed_at", "rating", "is_correct", "correct", "day_utc"]
CARD_COLUMNS = ["item_id", "state", "stability", "difficulty", "due_date"]


def _was_correct(rating: Any, is_correct: Any) -> bool:
    if not pd.isna(is_correct):
        return bool(is_correct)
    return not pd.isna(rating) and rating >= 3


def history_to_df(records: Iterable[Union[ReviewHistoryRecord, Mapping[str, Any]]]) -> pd.DataFrame:
    """
    Review history as a dataframe, one row per review, oldest first.

    A review counts as correct for rating >= 3 or a right quiz answer.
    """
    rows = [r.to_record() if isinstance(r, ReviewHistoryRecord) else dict(r) for r in records]
    if not rows:
        return pd.DataFrame(columns=HISTORY_COLUMNS)

    df = pd.DataFrame(rows)
    for column in ("rating", "is_correct", "item_kind"):
        if column not in df:
            df[column] = None

    df = df[["item_id", "item_kind", "reviewed_at", "rating", "is_correct"]].copy()
    df["reviewed_at"] = pd.to_datetime(df["reviewed_at"], utc=True, errors="coerce")
    df = df.dropna(subset=["item_id", "reviewed_at"])
    df["correct"] = [_was_correct(rating, answer) for rating, answer in zip(df["rating"], df["is_correct"])]
    df["day_utc"] = df["reviewed_at"].dt.floor("D")
    df = df.sort_values("reviewed_at").reset_index(drop=True)
    return df


def cards_to_df(cards: Iterable[CardState]) -> pd.DataFrame:
    """Current card states as a dataframe."""
    rows = [
        {
            "item_id": card.item_id,
            "state": card.state.value,
            "stability": card.stability,
            "difficulty": card.difficulty,
            "due_date": card.due_date,
        }
        for card in cards
    ]
    if not rows:
        return pd.DataFrame(columns=CARD_COLUMNS)
    df = pd.DataFrame(rows)
    df["stability"] = pd.to_numeric(df["stability"])
    df["difficulty"] = pd.to_numeric(df["difficulty"])
    df["due_date"] = pd.to_datetime(df["due_date"], utc=True)
    return df


def load_history_df(user_id: str, since: datetime) -> pd.DataFrame:
    """Load a user's review history since a point in time."""
    return history_to_df(fsrs.get_history_since(user_id, since))


def load_cards_df(user_id: str) -> pd.DataFrame:
    return cards_to_df(fsrs.get_all_card_states(user_id))
