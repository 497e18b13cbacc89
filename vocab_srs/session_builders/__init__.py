"""Due-queue builders and policy selection."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping, Optional, Union

from vocab_srs.session_builders.attempt_builder import (
    LastAttemptQueuePolicy,
    build_attempt_queue,
    latest_attempts_by_item,
)
from vocab_srs.session_builders.pool_types import (
    AttemptSummary,
    DueQueuePolicy,
    ItemState,
    QueueEntry,
    QueuePolicy,
)
from vocab_srs.session_builders.priority_builder import (
    PriorityQueuePolicy,
    build_priority_queue,
)


def select_policy(
    policy: Union[QueuePolicy, str],
    latest_attempts: Optional[Mapping[str, AttemptSummary]] = None,
    include_new: bool = True,
    group_id: Optional[str] = None
) -> DueQueuePolicy:
    """
    Construct the strategy for a policy name.

    Raises:
        ValueError: unknown policy name
    """
    policy = QueuePolicy(policy)
    if policy == QueuePolicy.PRIORITY:
        return PriorityQueuePolicy(group_id=group_id)
    return LastAttemptQueuePolicy(latest_attempts or {}, include_new=include_new)


def build_due_queue(
    policy: DueQueuePolicy,
    items: Iterable[ItemState],
    now: datetime,
    limit: Optional[int] = None
) -> list[QueueEntry]:
    """Run a strategy, using its own default limit when none is given."""
    if limit is None:
        return policy.build(items, now)
    return policy.build(items, now, limit)


__all__ = [
    "AttemptSummary",
    "DueQueuePolicy",
    "QueueEntry",
    "QueuePolicy",
    "PriorityQueuePolicy",
    "LastAttemptQueuePolicy",
    "build_priority_queue",
    "build_attempt_queue",
    "latest_attempts_by_item",
    "select_policy",
    "build_due_queue",
]
