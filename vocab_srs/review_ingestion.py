"""
Review Ingestion - Event to New State

Orchestrates a single review:
1. Fetch the current item state (missing items start fresh)
2. Check the optional expected version
3. Run the card or quiz scheduler
4. Diff old against new state into an immutable history record

commit() hands the result to a store (see database.persist_review) and
only then runs the post-review hooks, best-effort with failures logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from vocab_srs.errors import InvalidArgument, PreconditionFailed
from vocab_srs.fsrs.constants import CARD_KIND, QUIZ_KIND
from vocab_srs.fsrs.memory_state import CardState, QuizState, parse_timestamp, utc_now
from vocab_srs.fsrs.scheduler import CardScheduler, QuizScheduler

logger = logging.getLogger(__name__)

ItemState = Union[CardState, QuizState]

# Numeric fields tracked in the history diff, per item kind
CARD_TRACKED_FIELDS = (
    "stability", "difficulty", "reps", "lapses", "elapsed_days",
    "scheduled_days", "retrievability", "total_study_time",
)
QUIZ_TRACKED_FIELDS = (
    "stability", "difficulty", "total_attempts", "correct_attempts",
    "success_rate", "interval_days", "avg_response_time",
)


@dataclass(frozen=True)
class CardReview:
    """A 1-4 rating given to a vocabulary card."""
    rating: int
    response_time_ms: Optional[int] = None


@dataclass(frozen=True)
class QuizAnswer:
    """A right or wrong answer to a quiz question."""
    is_correct: bool
    response_time_ms: Optional[int] = None


ReviewEvent = Union[CardReview, QuizAnswer]

# (item_id, kind) -> stored state, a plain record, or None for unseen items
StateFetcher = Callable[[str, str], Union[ItemState, Mapping[str, Any], None]]
ReviewHook = Callable[["IngestionResult"], None]
ReviewStore = Callable[["IngestionResult"], None]


@dataclass(frozen=True)
class FieldChange:
    before: Any
    after: Any


@dataclass(frozen=True)
class ReviewHistoryRecord:
    """
    Immutable audit entry for one review.

    `changes` lists every tracked numeric field whose value changed.
    """
    item_id: str
    item_kind: str
    reviewed_at: datetime

    rating: Optional[int]
    is_correct: Optional[bool]
    response_time_ms: Optional[int]
    response_quality: Optional[str]

    old_stability: Optional[float]
    old_difficulty: Optional[float]
    old_state: Optional[str]
    old_due_date: Optional[datetime]

    new_stability: float
    new_difficulty: float
    new_state: Optional[str]
    new_due_date: datetime

    changes: Mapping[str, FieldChange] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def was_correct(self) -> bool:
        if self.is_correct is not None:
            return self.is_correct
        return self.rating is not None and self.rating >= 3

    def to_record(self) -> dict[str, Any]:
        record = {
            name: getattr(self, name)
            for name in self.__dataclass_fields__
            if name != "changes"
        }
        record["changes"] = {
            name: [change.before, change.after] for name, change in self.changes.items()
        }
        return record


@dataclass(frozen=True)
class IngestionResult:
    old_state: ItemState
    new_state: ItemState
    audit_record: ReviewHistoryRecord

    @property
    def item_kind(self) -> str:
        return self.audit_record.item_kind


def event_kind(event: ReviewEvent) -> str:
    if isinstance(event, CardReview):
        return CARD_KIND
    if isinstance(event, QuizAnswer):
        return QUIZ_KIND
    raise InvalidArgument(f"unsupported review event: {event!r}")


def diff_states(old: ItemState, new: ItemState) -> Mapping[str, FieldChange]:
    """Changed tracked fields between two states of the same item."""
    tracked = CARD_TRACKED_FIELDS if isinstance(new, CardState) else QUIZ_TRACKED_FIELDS
    changes = {}
    for name in tracked:
        before = getattr(old, name)
        after = getattr(new, name)
        if before != after:
            changes[name] = FieldChange(before, after)
    return MappingProxyType(changes)


def build_history_record(
    old: ItemState,
    new: ItemState,
    event: ReviewEvent,
    reviewed_at: datetime
) -> ReviewHistoryRecord:
    is_card = isinstance(new, CardState)
    quality = None if is_card or new.response_quality is None else new.response_quality.value
    return ReviewHistoryRecord(
        item_id=new.item_id,
        item_kind=CARD_KIND if is_card else QUIZ_KIND,
        reviewed_at=reviewed_at,
        rating=int(event.rating) if is_card else None,
        is_correct=None if is_card else event.is_correct,
        response_time_ms=event.response_time_ms,
        response_quality=quality,
        old_stability=old.stability,
        old_difficulty=old.difficulty,
        old_state=old.state.value if is_card else None,
        old_due_date=old.due_date,
        new_stability=new.stability,
        new_difficulty=new.difficulty,
        new_state=new.state.value if is_card else None,
        new_due_date=new.due_date,
        changes=diff_states(old, new),
    )


class ReviewIngestor:
    """
    Applies review events to item states.

    Schedulers and the state fetcher are passed in explicitly so callers
    can tune parameters per user and tests can run without a database.
    """

    def __init__(
        self,
        fetch_state: StateFetcher,
        card_scheduler: Optional[CardScheduler] = None,
        quiz_scheduler: Optional[QuizScheduler] = None,
        hooks: Iterable[ReviewHook] = (),
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.fetch_state = fetch_state
        self.card_scheduler = card_scheduler or CardScheduler()
        self.quiz_scheduler = quiz_scheduler or QuizScheduler()
        self.hooks = list(hooks)
        self.clock = clock or utc_now

    def ingest_review(
        self,
        item_id: str,
        event: ReviewEvent,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> IngestionResult:
        """
        Schedule one review and describe what changed.

        Args:
            item_id: Item identifier
            event: CardReview or QuizAnswer
            expected_version: Version the caller last saw, checked before scheduling
            now: Review time (defaults to the ingestor clock)

        Returns:
            IngestionResult with old state, new state and history record

        Raises:
            InvalidArgument: bad event or malformed stored state
            PreconditionFailed: stored version differs from expected_version
        """
        kind = event_kind(event)
        old_state = self._load(item_id, kind)

        if expected_version is not None and old_state.version != expected_version:
            raise PreconditionFailed(
                f"{kind} {item_id}: expected version {expected_version}, found {old_state.version}"
            )

        now = parse_timestamp(now if now is not None else self.clock())
        if kind == CARD_KIND:
            new_state = self.card_scheduler.schedule(old_state, event.rating, now)
            study_time = event.response_time_ms or 0
            new_state = replace(new_state, total_study_time=old_state.total_study_time + study_time)
        else:
            new_state = self.quiz_scheduler.schedule(
                old_state, event.is_correct, event.response_time_ms, now
            )
        new_state = replace(new_state, version=old_state.version + 1)

        result = IngestionResult(
            old_state=old_state,
            new_state=new_state,
            audit_record=build_history_record(old_state, new_state, event, now),
        )
        return result

    def commit(self, result: IngestionResult, store: ReviewStore) -> None:
        """
        Persist a result, then run the post-review hooks.

        Store errors such as PreconditionFailed propagate and no hook runs,
        so rejected or retried reviews are never counted twice.
        """
        store(result)
        self._run_hooks(result)

    def record_review(
        self,
        item_id: str,
        event: ReviewEvent,
        store: ReviewStore,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> IngestionResult:
        """Ingest and commit one review."""
        result = self.ingest_review(item_id, event, expected_version, now)
        self.commit(result, store)
        return result

    def _load(self, item_id: str, kind: str) -> ItemState:
        state_cls = CardState if kind == CARD_KIND else QuizState
        stored = self.fetch_state(item_id, kind)
        if stored is None:
            return state_cls(item_id=item_id)
        if isinstance(stored, state_cls):
            return stored
        if isinstance(stored, Mapping):
            return state_cls.from_record({"item_id": item_id, **stored})
        raise InvalidArgument(f"fetched state for {kind} {item_id} has unexpected type {type(stored).__name__}")

    def _run_hooks(self, result: IngestionResult) -> None:
        for hook in self.hooks:
            try:
                hook(result)
            except Exception:
                logger.exception(
                    "post-review hook %r failed for %s %s",
                    hook, result.item_kind, result.new_state.item_id,
                )
