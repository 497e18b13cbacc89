"""
Typed queue models shared across due-queue builders.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Union

from vocab_srs.fsrs.memory_state import CardState, QuizState


ItemState = Union[CardState, QuizState]


class QueuePolicy(str, Enum):
    """Selectable due-queue strategies."""
    PRIORITY = "priority"
    LAST_ATTEMPT = "last_attempt"


@dataclass(frozen=True)
class AttemptSummary:
    """
    Most recent answer recorded for an item.
    """
    item_id: str
    is_correct: bool
    attempted_at: datetime


@dataclass(frozen=True)
class QueueEntry:
    """
    One item selected for review, with its ordering data.

    Lower priority values are reviewed first.
    """
    item: ItemState
    priority: int
    is_new: bool = False
    is_due: bool = False
    hours_overdue: float = 0.0
    last_attempt: Optional[AttemptSummary] = None

    @property
    def item_id(self) -> str:
        return self.item.item_id


class DueQueuePolicy(ABC):
    """
    Strategy that turns a learner's item states into an ordered review queue.
    """

    policy: QueuePolicy

    @abstractmethod
    def build(
        self,
        items: Iterable[ItemState],
        now: datetime,
        limit: Optional[int] = None
    ) -> list[QueueEntry]:
        ...
