from datetime import timedelta

from vocab_srs.fsrs import CardPhase, CardState, QuizState
from vocab_srs.session_builders import (
    PriorityQueuePolicy,
    QueuePolicy,
    build_due_queue,
    build_priority_queue,
    select_policy,
)
from vocab_srs.session_builders.priority_builder import due_priority


def reviewed(item_id, now, overdue_hours, difficulty=5.0, group_id=None):
    return CardState(
        item_id=item_id,
        state=CardPhase.REVIEW,
        stability=4.0,
        difficulty=difficulty,
        reps=2,
        last_review=now - timedelta(days=4),
        due_date=now - timedelta(hours=overdue_hours),
        group_id=group_id,
    )


def test_due_priority_formula():
    assert due_priority(5.0, 48) == 3
    assert due_priority(1.0, 0) == 9
    assert due_priority(9.0, 72) == 1
    assert due_priority(None, 0) == 5
    assert due_priority(4.0, 12) == 6  # 10 - 4 - 0.5 rounds half up


def test_new_and_due_items_are_selected(now):
    items = [
        CardState(item_id="new"),
        reviewed("due", now, overdue_hours=1),
        reviewed("later", now, overdue_hours=-5),
    ]
    queue = build_priority_queue(items, now)

    assert [entry.item_id for entry in queue] == ["new", "due"]
    assert queue[0].is_new and queue[0].priority == 3
    assert queue[1].is_due and queue[1].hours_overdue == 1


def test_never_returns_items_that_are_neither_new_nor_due(now):
    items = [reviewed(f"c{h}", now, overdue_hours=h) for h in range(-48, 49, 6)]
    items.append(QuizState(item_id="q-new"))
    items.append(QuizState(item_id="q-later", last_review=now, due_date=now + timedelta(hours=3)))

    queue = build_priority_queue(items, now, limit=None)

    assert all(entry.is_new or entry.is_due for entry in queue)
    assert "q-later" not in {entry.item_id for entry in queue}
    assert len(queue) == 10


def test_ordering_by_priority_then_overdue_then_difficulty(now):
    items = [
        reviewed("easy-fresh", now, overdue_hours=1, difficulty=2.0),       # priority 8
        reviewed("hard-overdue", now, overdue_hours=96, difficulty=8.0),    # priority 1
        reviewed("mid-a", now, overdue_hours=10, difficulty=5.0),           # priority 5
        reviewed("mid-b", now, overdue_hours=20, difficulty=5.0),           # priority 4
        reviewed("mid-c", now, overdue_hours=2, difficulty=5.4),            # priority 5
        CardState(item_id="new"),                                           # priority 3
    ]
    queue = build_priority_queue(items, now)
    assert [entry.item_id for entry in queue] == [
        "hard-overdue", "new", "mid-b", "mid-a", "mid-c", "easy-fresh",
    ]


def test_equal_keys_keep_input_order(now):
    items = [CardState(item_id=name) for name in ("b", "a", "c")]
    assert [entry.item_id for entry in build_priority_queue(items, now)] == ["b", "a", "c"]


def test_group_filter_and_limit(now):
    items = [reviewed(f"g{i}", now, overdue_hours=i, group_id="g") for i in range(5)]
    items += [reviewed(f"o{i}", now, overdue_hours=i, group_id="other") for i in range(5)]

    queue = build_priority_queue(items, now, limit=3, group_id="g")

    assert len(queue) == 3
    assert all(entry.item.group_id == "g" for entry in queue)
    assert [entry.item_id for entry in queue] == ["g4", "g3", "g2"]


def test_policy_selection(now):
    policy = select_policy("priority", group_id="g")
    assert isinstance(policy, PriorityQueuePolicy)
    assert policy.policy == QueuePolicy.PRIORITY

    items = [CardState(item_id=str(i), group_id="g") for i in range(30)]
    assert len(build_due_queue(policy, items, now)) == 20
    assert len(build_due_queue(policy, items, now, limit=5)) == 5
