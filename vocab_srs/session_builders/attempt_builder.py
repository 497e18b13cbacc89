"""
Last-Attempt Queue - Attempt History Ordering

Orders items by the outcome of their most recent attempt:
1. Last attempt wrong: priority 1 (always included)
2. Never attempted: priority 3 (only when new items are requested)
3. Last attempt right, more than a day ago: priority 5
4. Last attempt right within the last day: left out

Equal priorities put the oldest attempt first.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Union

from vocab_srs.fsrs.memory_state import parse_timestamp
from vocab_srs.session_builders.pool_types import (
    AttemptSummary,
    DueQueuePolicy,
    ItemState,
    QueueEntry,
    QueuePolicy,
)

logger = logging.getLogger(__name__)

# ---- Queue Configuration ----
DEFAULT_LIMIT = 100
FAILED_PRIORITY = 1
UNSEEN_PRIORITY = 3
STALE_PRIORITY = 5
SUPPRESSION_WINDOW = timedelta(hours=24)


def _as_summary(attempt: Union[AttemptSummary, Mapping[str, Any]]) -> AttemptSummary:
    if isinstance(attempt, AttemptSummary):
        return attempt
    attempted_at = attempt.get("attempted_at", attempt.get("created_at"))
    return AttemptSummary(
        item_id=str(attempt["item_id"]),
        is_correct=bool(attempt["is_correct"]),
        attempted_at=parse_timestamp(attempted_at),
    )


def latest_attempts_by_item(
    attempts: Iterable[Union[AttemptSummary, Mapping[str, Any]]]
) -> dict[str, AttemptSummary]:
    """
    Reduce an attempt log to the most recent attempt per item.

    Accepts AttemptSummary values or plain records with item_id, is_correct
    and attempted_at (or created_at). Order of the log does not matter.
    """
    latest: dict[str, AttemptSummary] = {}
    for raw in attempts:
        attempt = _as_summary(raw)
        current = latest.get(attempt.item_id)
        if current is None or attempt.attempted_at > current.attempted_at:
            latest[attempt.item_id] = attempt
    return latest


def attempt_priority(
    attempt: Optional[AttemptSummary],
    now: datetime,
    include_new: bool = True
) -> Optional[int]:
    """
    Priority from the last attempt, or None when the item is left out.
    """
    if attempt is None:
        return UNSEEN_PRIORITY if include_new else None
    if not attempt.is_correct:
        return FAILED_PRIORITY
    if attempt.attempted_at < now - SUPPRESSION_WINDOW:
        return STALE_PRIORITY
    return None


def _sort_key(entry: QueueEntry) -> tuple:
    attempted = entry.last_attempt.attempted_at.timestamp() if entry.last_attempt else float("-inf")
    return (entry.priority, attempted)


def build_attempt_queue(
    items: Iterable[ItemState],
    latest_attempts: Mapping[str, AttemptSummary],
    now: datetime,
    include_new: bool = True,
    limit: Optional[int] = DEFAULT_LIMIT
) -> list[QueueEntry]:
    """
    Select and order items from their most recent attempts.

    Args:
        items: All item states for one learner
        latest_attempts: Most recent attempt keyed by item_id
        now: Reference time
        include_new: Whether never-attempted items are included
        limit: Maximum queue length (None = unbounded)

    Returns:
        Ordered queue entries
    """
    entries = []
    for item in items:
        attempt = latest_attempts.get(item.item_id)
        priority = attempt_priority(attempt, now, include_new)
        if priority is None:
            continue
        entries.append(QueueEntry(
            item=item,
            priority=priority,
            is_new=attempt is None,
            is_due=attempt is not None,
            last_attempt=attempt,
        ))

    entries.sort(key=_sort_key)
    if limit is not None:
        entries = entries[:limit]

    logger.debug("last-attempt queue: %d entries (limit=%s, include_new=%s)", len(entries), limit, include_new)
    return entries


class LastAttemptQueuePolicy(DueQueuePolicy):
    """Due queue ordered by the outcome of each item's last attempt."""

    policy = QueuePolicy.LAST_ATTEMPT

    def __init__(self, latest_attempts: Mapping[str, AttemptSummary], include_new: bool = True):
        self.latest_attempts = latest_attempts
        self.include_new = include_new

    def build(
        self,
        items: Iterable[ItemState],
        now: datetime,
        limit: Optional[int] = DEFAULT_LIMIT
    ) -> list[QueueEntry]:
        return build_attempt_queue(items, self.latest_attempts, now, self.include_new, limit)
