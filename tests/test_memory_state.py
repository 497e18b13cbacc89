import math
from datetime import datetime, timedelta, timezone

import pytest

from vocab_srs.errors import ComputationDegenerate
from vocab_srs.fsrs.constants import CardPhase, QuizResponse
from vocab_srs.fsrs.memory_state import (
    CardState,
    QuizState,
    calculate_retrievability,
    card_interval,
    elapsed_whole_days,
    ensure_finite,
    parse_timestamp,
    quiz_interval,
    round_half_up,
    to_fixed,
)


def test_retrievability_decays_exponentially():
    assert calculate_retrievability(0, 10) == 1.0
    assert calculate_retrievability(10, 10) == pytest.approx(math.exp(-1))
    assert calculate_retrievability(5, 10) > calculate_retrievability(6, 10)


@pytest.mark.parametrize("stability", [0, -3.0, None])
def test_retrievability_is_zero_without_positive_stability(stability):
    assert calculate_retrievability(4, stability) == 0.0


def test_card_interval_at_default_retention_equals_stability_rounded():
    assert card_interval(2.4, 0.9, 1, 36500) == 2


def test_card_interval_is_clamped():
    assert card_interval(0.2, 0.9, 1, 36500) == 1
    assert card_interval(1e9, 0.9, 1, 36500) == 36500


def test_quiz_interval_rounds_to_the_hour_and_clamps():
    interval = quiz_interval(1.5, 0.85, 0.25, 180)
    assert interval == 26 / 24
    assert quiz_interval(0.01, 0.85, 0.25, 180) == 0.25
    assert quiz_interval(10_000, 0.85, 0.25, 180) == 180


def test_quiz_interval_applies_jitter():
    assert quiz_interval(10, 0.85, 0.25, 180, 1.1) > quiz_interval(10, 0.85, 0.25, 180)


def test_elapsed_whole_days_floors_and_never_goes_negative():
    now = datetime(2024, 3, 10, 12, tzinfo=timezone.utc)
    assert elapsed_whole_days(None, now) == 0
    assert elapsed_whole_days(now - timedelta(days=2, hours=23), now) == 2
    assert elapsed_whole_days(now + timedelta(days=1), now) == 0


def test_rounding_matches_javascript():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert to_fixed(1.0005, 3) == 1.0
    assert to_fixed(0.6666666, 3) == 0.667
    assert to_fixed(4.95, 2) == 4.95


def test_ensure_finite_rejects_nan_and_infinity():
    assert ensure_finite("x", 1.5) == 1.5
    with pytest.raises(ComputationDegenerate):
        ensure_finite("x", float("nan"))
    with pytest.raises(ComputationDegenerate):
        ensure_finite("x", float("inf"))


def test_parse_timestamp_normalises_to_utc():
    assert parse_timestamp("2024-01-01T00:00:00Z") == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp(datetime(2024, 1, 1)).tzinfo == timezone.utc
    assert parse_timestamp(None) is None
    assert parse_timestamp("") is None


def test_card_record_conversion():
    card = CardState.from_record({
        "id": "hond",
        "state": "review",
        "stability": 3.2,
        "difficulty": 4.1,
        "reps": 2,
        "lapses": None,
        "due_date": "2024-03-12T12:00:00Z",
        "last_review": "2024-03-10T12:00:00+00:00",
        "unrelated": "ignored",
    })
    assert card.item_id == "hond"
    assert card.state == CardPhase.REVIEW
    assert card.lapses == 0
    assert card.due_date == datetime(2024, 3, 12, 12, tzinfo=timezone.utc)

    record = card.to_record()
    assert record["state"] == "review"
    assert CardState.from_record(record) == card


def test_quiz_record_conversion():
    question = QuizState.from_record({
        "item_id": "q1",
        "total_attempts": 4,
        "correct_attempts": 3,
        "response_quality": "easy",
    })
    assert question.response_quality == QuizResponse.EASY
    assert question.failed_attempts == 1
    assert question.to_record()["response_quality"] == "easy"
