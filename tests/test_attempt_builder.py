from datetime import timedelta

import pytest

from vocab_srs.fsrs import QuizState
from vocab_srs.session_builders import (
    AttemptSummary,
    LastAttemptQueuePolicy,
    QueuePolicy,
    build_attempt_queue,
    build_due_queue,
    latest_attempts_by_item,
    select_policy,
)


def questions(*ids):
    return [QuizState(item_id=item_id) for item_id in ids]


@pytest.fixture
def attempts(now):
    return {
        "wrong": AttemptSummary("wrong", False, now - timedelta(minutes=5)),
        "stale": AttemptSummary("stale", True, now - timedelta(hours=30)),
        "recent": AttemptSummary("recent", True, now - timedelta(hours=2)),
    }


def test_priorities_from_last_attempt(now, attempts):
    queue = build_attempt_queue(questions("recent", "unseen", "stale", "wrong"), attempts, now)

    assert [(entry.item_id, entry.priority) for entry in queue] == [
        ("wrong", 1),
        ("unseen", 3),
        ("stale", 5),
    ]
    assert queue[1].is_new and queue[1].last_attempt is None
    assert queue[0].last_attempt == attempts["wrong"]


def test_recent_correct_answers_are_suppressed(now):
    latest = {"q": AttemptSummary("q", True, now - timedelta(hours=23, minutes=59))}
    assert build_attempt_queue(questions("q"), latest, now) == []

    latest = {"q": AttemptSummary("q", True, now - timedelta(hours=24, minutes=1))}
    assert build_attempt_queue(questions("q"), latest, now)[0].priority == 5


def test_new_items_only_when_requested(now, attempts):
    queue = build_attempt_queue(questions("unseen", "wrong"), attempts, now, include_new=False)
    assert [entry.item_id for entry in queue] == ["wrong"]


def test_ties_put_oldest_attempt_first(now):
    latest = {
        "a": AttemptSummary("a", False, now - timedelta(hours=1)),
        "b": AttemptSummary("b", False, now - timedelta(days=3)),
        "c": AttemptSummary("c", False, now - timedelta(hours=10)),
    }
    queue = build_attempt_queue(questions("a", "b", "c"), latest, now)
    assert [entry.item_id for entry in queue] == ["b", "c", "a"]


def test_default_limit_is_one_hundred(now):
    queue = build_attempt_queue(questions(*[str(i) for i in range(150)]), {}, now)
    assert len(queue) == 100


def test_latest_attempts_by_item_reads_plain_records():
    log = [
        {"item_id": "q1", "is_correct": True, "created_at": "2024-03-01T10:00:00Z"},
        {"item_id": "q1", "is_correct": False, "created_at": "2024-03-05T10:00:00Z"},
        {"item_id": "q1", "is_correct": True, "created_at": "2024-03-02T10:00:00Z"},
        {"item_id": "q2", "is_correct": True, "attempted_at": "2024-03-03T10:00:00+00:00"},
    ]
    latest = latest_attempts_by_item(log)

    assert set(latest) == {"q1", "q2"}
    assert latest["q1"].is_correct is False
    assert latest["q1"].attempted_at.day == 5
    assert latest["q2"].is_correct is True


def test_policy_selection(now, attempts):
    policy = select_policy(QueuePolicy.LAST_ATTEMPT, latest_attempts=attempts, include_new=False)
    assert isinstance(policy, LastAttemptQueuePolicy)

    queue = build_due_queue(policy, questions("unseen", "wrong", "stale"), now)
    assert [entry.item_id for entry in queue] == ["wrong", "stale"]


def test_unknown_policy_is_rejected():
    with pytest.raises(ValueError):
        select_policy("fastest")
