"""
Memory State - Item Records and the Decay Model

Defines the item records both schedulers operate on and the pure numeric
functions relating stability, elapsed time and review intervals.

Key concepts:
- Stability (S): How slowly memory decays (in days)
- Difficulty (D): How hard the item is to learn (1-10 scale)
- Retrievability (R): Probability of successful recall at time t
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from vocab_srs.errors import ComputationDegenerate
from vocab_srs.fsrs.constants import (
    CardPhase,
    DECAY_BASE_RETENTION,
    HOURS_PER_DAY,
    QUIZ_DECAY_BASE_RETENTION,
    QuizResponse,
    SECONDS_PER_DAY,
)


# ---- Item records ----

@dataclass
class CardState:
    """
    Memory state for a single vocabulary card.

    A card with state NEW has never been reviewed and carries no
    stability, difficulty or last_review.
    """
    item_id: str
    state: CardPhase = CardPhase.NEW

    stability: Optional[float] = None  # S, in days
    difficulty: Optional[float] = None  # D, range 1-10

    reps: int = 0
    lapses: int = 0

    due_date: Optional[datetime] = None
    last_review: Optional[datetime] = None

    # Derived at review time, not authoritative between reviews
    elapsed_days: int = 0
    scheduled_days: int = 0
    retrievability: Optional[float] = None

    total_study_time: int = 0  # milliseconds
    group_id: Optional[str] = None
    version: int = 0

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "CardState":
        """Build a CardState from a plain record (database row or JSON)."""
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in record.items() if key in known}
        if "item_id" not in values and "id" in record:
            values["item_id"] = str(record["id"])
        values["state"] = CardPhase(values.get("state") or CardPhase.NEW)
        values["due_date"] = parse_timestamp(values.get("due_date"))
        values["last_review"] = parse_timestamp(values.get("last_review"))
        for counter in ("reps", "lapses", "elapsed_days", "scheduled_days", "total_study_time", "version"):
            if values.get(counter) is None:
                values.pop(counter, None)
        return cls(**values)

    def to_record(self) -> dict[str, Any]:
        record = asdict(self)
        record["state"] = self.state.value
        return record


@dataclass
class QuizState:
    """
    Memory state for a single quiz question.

    Quiz questions have no explicit phase: a question without due_date and
    last_review is new.
    """
    item_id: str

    stability: Optional[float] = None
    difficulty: Optional[float] = None

    total_attempts: int = 0
    correct_attempts: int = 0
    success_rate: float = 0.0

    interval_days: Optional[float] = None
    due_date: Optional[datetime] = None
    last_review: Optional[datetime] = None

    avg_response_time: Optional[float] = None  # milliseconds, running mean
    response_quality: Optional[QuizResponse] = None

    group_id: Optional[str] = None
    version: int = 0

    @property
    def failed_attempts(self) -> int:
        return self.total_attempts - self.correct_attempts

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "QuizState":
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in record.items() if key in known}
        if "item_id" not in values and "id" in record:
            values["item_id"] = str(record["id"])
        values["due_date"] = parse_timestamp(values.get("due_date"))
        values["last_review"] = parse_timestamp(values.get("last_review"))
        if values.get("response_quality"):
            values["response_quality"] = QuizResponse(values["response_quality"])
        for counter in ("total_attempts", "correct_attempts", "success_rate", "version"):
            if values.get(counter) is None:
                values.pop(counter, None)
        return cls(**values)

    def to_record(self) -> dict[str, Any]:
        record = asdict(self)
        if self.response_quality is not None:
            record["response_quality"] = self.response_quality.value
        return record


# ---- Timestamps ----

def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Normalise a stored timestamp to an aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC) and ISO-8601 strings,
    including the trailing "Z" form JSON clients send.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def elapsed_whole_days(last_review: Optional[datetime], now: datetime) -> int:
    """
    Whole days between last review and now, never negative.

    Returns 0 for items that were never reviewed.
    """
    if last_review is None:
        return 0
    seconds = (now - last_review).total_seconds()
    return max(0, math.floor(seconds / SECONDS_PER_DAY))


def add_days(moment: datetime, days: float) -> datetime:
    return moment + timedelta(days=days)


# ---- Rounding ----

def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from minus infinity."""
    return math.floor(value + 0.5)


def to_fixed(value: float, digits: int) -> float:
    """
    Round to a fixed number of decimals using the exact binary value,
    picking the larger candidate on a tie.
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def ensure_finite(name: str, value: float) -> float:
    """Fail loudly instead of letting NaN or infinity reach a stored state."""
    if not math.isfinite(value):
        raise ComputationDegenerate(f"{name} is not finite: {value!r}")
    return value


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


# ---- Decay model ----

def calculate_retrievability(elapsed_days: float, stability: Optional[float]) -> float:
    """
    Calculate retrievability using exponential decay.

    Formula: R = exp(-t / S)

    Args:
        elapsed_days: Time since the last review in days
        stability: Current stability in days

    Returns:
        Retrievability between 0 and 1 (0 for missing or non-positive stability)
    """
    if stability is None or stability <= 0:
        return 0.0
    return math.exp(-elapsed_days / stability)


def card_interval(
    stability: float,
    request_retention: float,
    minimum_interval: float,
    maximum_interval: float
) -> int:
    """
    Convert card stability to a whole-day review interval.

    Formula: I = round(S * ln(r) / ln(0.9)), clamped to the interval bounds.
    """
    interval = round_half_up(
        stability * math.log(request_retention) / math.log(DECAY_BASE_RETENTION)
    )
    return int(clamp(interval, minimum_interval, maximum_interval))


def quiz_interval(
    stability: float,
    request_retention: float,
    minimum_interval: float,
    maximum_interval: float,
    jitter_factor: float = 1.0
) -> float:
    """
    Convert quiz stability to a review interval in days, rounded to the hour.

    Formula: I = round(S * ln(r) / ln(0.8) * jitter * 24) / 24, clamped.

    Args:
        stability: Current stability in days
        request_retention: Target retention
        minimum_interval: Lower bound in days
        maximum_interval: Upper bound in days
        jitter_factor: Multiplicative spread (1.0 = none)

    Returns:
        Interval in days
    """
    base_interval = stability * math.log(request_retention) / math.log(QUIZ_DECAY_BASE_RETENTION)
    spread = ensure_finite("interval", base_interval * jitter_factor)
    interval = round_half_up(spread * HOURS_PER_DAY) / HOURS_PER_DAY
    return clamp(interval, minimum_interval, maximum_interval)
