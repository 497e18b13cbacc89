"""
Scheduler - FSRS Algorithm Logic

Pure scheduling for cards and quiz questions (no database calls).

Both schedulers:
1. Read the current item state (caller's responsibility to load it)
2. Compute elapsed time and retrievability
3. Apply the variant's update rules
4. Return a NEW state; the input is never mutated

Database I/O is handled by the database module.
"""

from __future__ import annotations

import logging
import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from vocab_srs.errors import ComputationDegenerate, InvalidArgument
from vocab_srs.fsrs import card_updates, quiz_updates
from vocab_srs.fsrs.constants import (
    CARD_KIND,
    CARD_DEFAULT_DIFFICULTY,
    CARD_DEFAULT_STABILITY,
    CardPhase,
    D_MAX,
    D_MIN,
    QUIZ_KIND,
    QUIZ_PREVIEW_RESPONSE_TIMES,
    QuizResponse,
    RETENTION_CEILING,
    RETENTION_FLOOR,
    RETENTION_MIN_HISTORY,
    RETENTION_STEP,
    RETENTION_WINDOW,
    Rating,
)
from vocab_srs.fsrs.memory_state import (
    CardState,
    QuizState,
    add_days,
    calculate_retrievability,
    card_interval,
    clamp,
    elapsed_whole_days,
    ensure_finite,
    parse_timestamp,
    quiz_interval,
    round_half_up,
    to_fixed,
    utc_now,
)
from vocab_srs.fsrs.parameters import CardParameters, QuizParameters

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
ItemState = Union[CardState, QuizState]


@dataclass(frozen=True)
class CardIntervalPreview:
    """What a rating would do to a card, without persisting anything."""
    interval: int
    state: CardPhase
    due_date: datetime


@dataclass(frozen=True)
class QuizIntervalPreview:
    interval: float
    due_date: datetime
    stability: float


# ---- Input validation ----

def validate_rating(rating: Any) -> Rating:
    """
    Check a rating is one of 1..4.

    Raises:
        InvalidArgument: for anything else, including bools and floats
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidArgument(f"rating must be an integer in 1..4, got {rating!r}")
    try:
        return Rating(rating)
    except ValueError:
        raise InvalidArgument(f"rating must be in 1..4, got {rating!r}") from None


def _read_difficulty(value: Optional[float], default: float) -> float:
    if value is None:
        return default
    if math.isnan(value):
        raise InvalidArgument("difficulty is NaN")
    return clamp(value, D_MIN, D_MAX)


def _read_stability(value: Optional[float], default: float) -> float:
    if value is None:
        return default
    if not math.isfinite(value) or value <= 0:
        raise InvalidArgument(f"stability must be a positive number, got {value!r}")
    return value


def _read_counter(name: str, value: int) -> int:
    if value < 0:
        raise InvalidArgument(f"{name} must not be negative, got {value!r}")
    return value


# ---- Scheduler capability ----

class Scheduler(ABC):
    """
    Shared capability of the card and quiz schedulers.

    Implementations are pure: the result depends only on the state, the
    review input, the clock value and (for quizzes) the injected RNG.
    """

    kind: str

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utc_now

    def _now(self, now: Optional[datetime]) -> datetime:
        return parse_timestamp(now) if now is not None else parse_timestamp(self.clock())

    @abstractmethod
    def schedule(self, state: Any, *args: Any, **kwargs: Any) -> Any:
        """Return the next state after one review."""

    @abstractmethod
    def get_next_intervals(self, state: Any, now: Optional[datetime] = None) -> Mapping[Any, Any]:
        """Preview every possible outcome without touching the state."""

    def is_due(self, state: ItemState, now: Optional[datetime] = None) -> bool:
        """Items without a due date are new and always due."""
        if state.due_date is None:
            return True
        return self._now(now) >= state.due_date


class CardScheduler(Scheduler):
    """
    Long-horizon FSRS scheduler for vocabulary cards.

    State machine:
        NEW        --AGAIN/HARD--> LEARNING   --GOOD/EASY--> REVIEW
        LEARNING   --AGAIN--> LEARNING (lapse)  --other--> REVIEW
        RELEARNING --AGAIN--> RELEARNING (lapse) --other--> REVIEW
        REVIEW     --AGAIN--> RELEARNING (lapse) --other--> REVIEW
    """

    kind = CARD_KIND

    def __init__(self, parameters: Optional[CardParameters] = None, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.parameters = parameters or CardParameters()

    def schedule(
        self,
        card: CardState,
        rating: Union[Rating, int],
        now: Optional[datetime] = None
    ) -> CardState:
        """
        Compute the card state after a review.

        Args:
            card: Current card state (may be NEW)
            rating: 1=AGAIN, 2=HARD, 3=GOOD, 4=EASY
            now: Review time (defaults to the scheduler clock)

        Returns:
            A new CardState; `card` is left untouched

        Raises:
            InvalidArgument: rating outside 1..4 or malformed state
            ComputationDegenerate: NaN/infinity from the coefficients
        """
        rating = validate_rating(rating)
        now = self._now(now)
        w = self.parameters.w

        reps = _read_counter("reps", card.reps)
        lapses = _read_counter("lapses", card.lapses)
        elapsed_days = elapsed_whole_days(card.last_review, now)

        if card.state == CardPhase.NEW:
            retrievability = 1.0
            difficulty = card_updates.init_difficulty(w, rating)
            stability = card_updates.init_stability(w, rating)
            reps = 1
            next_phase = CardPhase.REVIEW if rating >= Rating.GOOD else CardPhase.LEARNING
        else:
            stability = _read_stability(card.stability, CARD_DEFAULT_STABILITY)
            difficulty = _read_difficulty(card.difficulty, CARD_DEFAULT_DIFFICULTY)
            retrievability = (
                calculate_retrievability(elapsed_days, stability)
                if card.last_review is not None else 1.0
            )
            reps += 1

            try:
                if rating == Rating.AGAIN:
                    lapses += 1
                    next_phase = CardPhase.RELEARNING if card.state != CardPhase.LEARNING else CardPhase.LEARNING
                    stability = card_updates.next_forget_stability(w, difficulty, stability, retrievability)
                else:
                    next_phase = CardPhase.REVIEW
                    stability = card_updates.next_recall_stability(
                        w, difficulty, stability, retrievability, rating
                    )
            except (OverflowError, ValueError) as exc:
                raise ComputationDegenerate(f"stability update failed: {exc}") from exc

            difficulty = card_updates.next_difficulty(w, difficulty, rating)

        stability = clamp(
            ensure_finite("stability", stability),
            self.parameters.minimum_interval,
            self.parameters.maximum_interval,
        )
        difficulty = ensure_finite("difficulty", difficulty)

        interval = card_interval(
            stability,
            self.parameters.request_retention,
            self.parameters.minimum_interval,
            self.parameters.maximum_interval,
        )

        logger.debug(
            "card %s: %s -> %s (rating=%d, S=%.3f, D=%.3f, interval=%dd)",
            card.item_id, card.state.value, next_phase.value, rating, stability, difficulty, interval,
        )

        return replace(
            card,
            state=next_phase,
            stability=stability,
            difficulty=difficulty,
            reps=reps,
            lapses=lapses,
            elapsed_days=elapsed_days,
            scheduled_days=interval,
            due_date=add_days(now, interval),
            last_review=now,
            retrievability=retrievability,
        )

    def get_next_intervals(
        self,
        card: CardState,
        now: Optional[datetime] = None
    ) -> dict[Rating, CardIntervalPreview]:
        """
        Preview the outcome of each rating for UI buttons.

        All four previews share one review time.
        """
        now = self._now(now)
        previews = {}
        for rating in Rating:
            result = self.schedule(card, rating, now)
            previews[rating] = CardIntervalPreview(
                interval=result.scheduled_days,
                state=result.state,
                due_date=result.due_date,
            )
        return previews

    def optimize_retention(self, review_history: Sequence[Mapping[str, Any]]) -> float:
        """
        Suggest a request retention from recent review outcomes.

        Simplified heuristic, not used by scheduling itself: with at least 30
        reviews, nudge retention down when the last 100 reviews are nearly all
        successful and up when they fall below 80%.
        """
        current = self.parameters.request_retention
        if len(review_history) < RETENTION_MIN_HISTORY:
            return current

        recent = review_history[-RETENTION_WINDOW:]
        successes = sum(1 for review in recent if review["rating"] >= Rating.GOOD)
        observed = successes / len(recent)

        if observed > RETENTION_CEILING:
            return max(RETENTION_FLOOR, current - RETENTION_STEP)
        if observed < RETENTION_FLOOR:
            return min(RETENTION_CEILING, current + RETENTION_STEP)
        return current


class QuizScheduler(Scheduler):
    """
    Short-horizon scheduler for quiz questions.

    Correctness plus response time replace the 4-point rating. Intervals get
    a +/-10% spread from the injected random source; pass a seeded
    random.Random for reproducible schedules.
    """

    kind = QUIZ_KIND

    def __init__(
        self,
        parameters: Optional[QuizParameters] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Clock] = None
    ):
        super().__init__(clock)
        self.parameters = parameters or QuizParameters()
        self.rng = rng if rng is not None else random.Random()

    def determine_response_quality(
        self,
        response_time_ms: float,
        is_correct: bool,
        avg_response_time_ms: Optional[float] = None
    ) -> QuizResponse:
        if avg_response_time_ms is None:
            avg_response_time_ms = self.parameters.default_response_time_ms
        return quiz_updates.determine_response_quality(
            self.parameters, response_time_ms, is_correct, avg_response_time_ms
        )

    def calculate_interval(self, stability: float) -> float:
        """Jittered interval in days for a stability value."""
        return quiz_interval(
            stability,
            self.parameters.request_retention,
            self.parameters.minimum_interval,
            self.parameters.maximum_interval,
            quiz_updates.draw_jitter(self.parameters, self.rng),
        )

    def schedule(
        self,
        question: QuizState,
        is_correct: bool,
        response_time_ms: Optional[float] = None,
        now: Optional[datetime] = None
    ) -> QuizState:
        """
        Compute the question state after an answer.

        Args:
            question: Current question state (new if never answered)
            is_correct: Whether the answer was right
            response_time_ms: Time to answer (defaults to 5000 ms)
            now: Review time (defaults to the scheduler clock)

        Returns:
            A new QuizState with counters, running averages and due date updated
        """
        return self._schedule(question, is_correct, response_time_ms, self._now(now), None)

    def get_next_intervals(
        self,
        question: QuizState,
        now: Optional[datetime] = None
    ) -> dict[QuizResponse, QuizIntervalPreview]:
        """
        Preview each response quality using mock response times.

        Previews use a neutral spread so repeated calls agree and the random
        source is not consumed.
        """
        now = self._now(now)
        previews = {}
        for quality in (QuizResponse.AGAIN, QuizResponse.HARD, QuizResponse.GOOD, QuizResponse.EASY):
            result = self._schedule(
                question,
                quality != QuizResponse.AGAIN,
                QUIZ_PREVIEW_RESPONSE_TIMES[quality],
                now,
                1.0,
            )
            previews[quality] = QuizIntervalPreview(
                interval=result.interval_days,
                due_date=result.due_date,
                stability=result.stability,
            )
        return previews

    def _schedule(
        self,
        question: QuizState,
        is_correct: bool,
        response_time_ms: Optional[float],
        now: datetime,
        jitter_factor: Optional[float]
    ) -> QuizState:
        if not isinstance(is_correct, bool):
            raise InvalidArgument(f"is_correct must be a bool, got {is_correct!r}")

        params = self.parameters
        if response_time_ms is None:
            response_time_ms = params.default_response_time_ms
        if not math.isfinite(response_time_ms) or response_time_ms < 0:
            raise InvalidArgument(f"response time must be a non-negative number, got {response_time_ms!r}")

        # Zero is treated like missing, as in the stored defaults
        stability = _read_stability(question.stability or None, params.initial_stability)
        difficulty = _read_difficulty(question.difficulty or None, params.initial_difficulty)
        total_attempts = _read_counter("total_attempts", question.total_attempts) + 1
        correct_attempts = _read_counter("correct_attempts", question.correct_attempts)
        if is_correct:
            correct_attempts += 1

        quality = self.determine_response_quality(
            response_time_ms, is_correct, question.avg_response_time or None
        )
        new_stability = ensure_finite(
            "stability",
            quiz_updates.next_stability(params, stability, difficulty, is_correct, quality),
        )
        new_difficulty = ensure_finite(
            "difficulty", quiz_updates.next_difficulty(params, difficulty, is_correct)
        )

        if jitter_factor is None:
            jitter_factor = quiz_updates.draw_jitter(params, self.rng)
        interval = ensure_finite(
            "interval",
            quiz_interval(
                new_stability,
                params.request_retention,
                params.minimum_interval,
                params.maximum_interval,
                jitter_factor,
            ),
        )
        interval_days = to_fixed(interval, 3)

        if question.avg_response_time:
            avg_response_time = (
                question.avg_response_time * (total_attempts - 1) + response_time_ms
            ) / total_attempts
        else:
            avg_response_time = response_time_ms

        logger.debug(
            "quiz %s: correct=%s quality=%s S=%.3f D=%.2f interval=%.3fd",
            question.item_id, is_correct, quality.value, new_stability, new_difficulty, interval_days,
        )

        return replace(
            question,
            stability=to_fixed(new_stability, 3),
            difficulty=to_fixed(new_difficulty, 2),
            total_attempts=total_attempts,
            correct_attempts=correct_attempts,
            success_rate=to_fixed(correct_attempts / total_attempts, 3),
            interval_days=interval_days,
            due_date=add_days(now, interval_days),
            last_review=now,
            avg_response_time=round_half_up(avg_response_time),
            response_quality=quality,
        )
