"""
Priority Queue - Overdue and Difficulty Ordering

Selects the items that are new or due and orders them so that hard,
long-overdue items come first:
1. New items: fixed priority 3
2. Due items: 10 - difficulty - days overdue, clamped to 1..9
3. Everything else is left out

Ties are broken by hours overdue, then by difficulty (both descending).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from vocab_srs.fsrs.constants import CARD_DEFAULT_DIFFICULTY, D_MAX, D_MIN, HOURS_PER_DAY
from vocab_srs.fsrs.memory_state import clamp, round_half_up
from vocab_srs.session_builders.pool_types import (
    DueQueuePolicy,
    ItemState,
    QueueEntry,
    QueuePolicy,
)

logger = logging.getLogger(__name__)

# ---- Queue Configuration ----
DEFAULT_LIMIT = 20
NEW_ITEM_PRIORITY = 3
MIN_PRIORITY = 1
MAX_PRIORITY = 9


def is_new_item(item: ItemState) -> bool:
    """An item without a due date or a last review has never been scheduled."""
    return item.due_date is None or item.last_review is None


def hours_overdue(item: ItemState, now: datetime) -> float:
    if item.due_date is None:
        return 0.0
    return (now - item.due_date).total_seconds() / 3600


def due_priority(difficulty: Optional[float], overdue_hours: float) -> int:
    """
    Priority for a due item (lower = sooner).

    Formula: clamp(1, 9, round(10 - D - hoursOverdue / 24))
    """
    if difficulty is None:
        difficulty = CARD_DEFAULT_DIFFICULTY
    difficulty = clamp(difficulty, D_MIN, D_MAX)
    score = round_half_up(10 - difficulty - overdue_hours / HOURS_PER_DAY)
    return int(clamp(score, MIN_PRIORITY, MAX_PRIORITY))


def classify_item(item: ItemState, now: datetime) -> Optional[QueueEntry]:
    """
    Build the queue entry for one item, or None if it is neither new nor due.
    """
    if is_new_item(item):
        return QueueEntry(item=item, priority=NEW_ITEM_PRIORITY, is_new=True)

    if item.due_date > now:
        return None

    overdue = hours_overdue(item, now)
    return QueueEntry(
        item=item,
        priority=due_priority(item.difficulty, overdue),
        is_due=True,
        hours_overdue=overdue,
    )


def _sort_key(entry: QueueEntry) -> tuple:
    difficulty = entry.item.difficulty if entry.item.difficulty is not None else CARD_DEFAULT_DIFFICULTY
    return (entry.priority, -entry.hours_overdue, -difficulty)


def build_priority_queue(
    items: Iterable[ItemState],
    now: datetime,
    limit: Optional[int] = DEFAULT_LIMIT,
    group_id: Optional[str] = None
) -> list[QueueEntry]:
    """
    Select new and due items and order them by priority.

    Args:
        items: All item states for one learner
        now: Reference time
        limit: Maximum queue length (None = unbounded)
        group_id: Only consider items tagged with this group

    Returns:
        Ordered queue entries; sorting is stable for equal keys
    """
    entries = []
    for item in items:
        if group_id is not None and item.group_id != group_id:
            continue
        entry = classify_item(item, now)
        if entry is not None:
            entries.append(entry)

    entries.sort(key=_sort_key)
    if limit is not None:
        entries = entries[:limit]

    logger.debug("priority queue: %d entries (limit=%s, group=%s)", len(entries), limit, group_id)
    return entries


class PriorityQueuePolicy(DueQueuePolicy):
    """Due queue ordered by difficulty and time overdue."""

    policy = QueuePolicy.PRIORITY

    def __init__(self, group_id: Optional[str] = None):
        self.group_id = group_id

    def build(
        self,
        items: Iterable[ItemState],
        now: datetime,
        limit: Optional[int] = DEFAULT_LIMIT
    ) -> list[QueueEntry]:
        return build_priority_queue(items, now, limit, self.group_id)
