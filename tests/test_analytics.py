from datetime import date, timedelta

import pytest

from vocab_srs import analytics, fsrs
from vocab_srs.analytics import UserStatistics, build_study_summary, update_user_statistics
from vocab_srs.analytics.statistics import next_streak
from vocab_srs.errors import PreconditionFailed
from vocab_srs.fsrs import CardPhase, CardState
from vocab_srs.review_ingestion import CardReview, QuizAnswer, ReviewIngestor

TODAY = date(2024, 3, 10)


@pytest.mark.parametrize("last,streak,expected", [
    (None, 0, 1),
    (TODAY, 4, 4),
    (TODAY - timedelta(days=1), 4, 5),
    (TODAY - timedelta(days=2), 4, 1),
])
def test_next_streak(last, streak, expected):
    assert next_streak(streak, last, TODAY) == expected


def test_first_review_statistics():
    stats = update_user_statistics(UserStatistics(), True, 3000, TODAY, words_mastered=2)

    assert stats.total_reviews == 1
    assert stats.total_cards_studied == 1
    assert stats.total_study_time == 3000
    assert stats.average_retention_rate == 1.0
    assert stats.average_response_time == 3000
    assert stats.current_streak == 1
    assert stats.longest_streak == 1
    assert stats.words_mastered == 2
    assert stats.last_study_date == TODAY


def test_running_averages_and_longest_streak():
    stats = UserStatistics(
        total_reviews=3,
        average_retention_rate=1.0,
        average_response_time=4000,
        current_streak=2,
        longest_streak=6,
        words_mastered=5,
        last_study_date=TODAY - timedelta(days=1),
    )
    updated = update_user_statistics(stats, False, 2001, TODAY)

    assert updated.average_retention_rate == pytest.approx(0.75)
    assert updated.average_response_time == 3500
    assert updated.current_streak == 3
    assert updated.longest_streak == 6
    assert updated.words_mastered == 5


def test_count_mastered():
    cards = [
        CardState(item_id="a", stability=30.0),
        CardState(item_id="b", stability=21.0),
        CardState(item_id="c", stability=20.9),
        CardState(item_id="d"),
    ]
    assert analytics.count_mastered(cards) == 2


def test_study_summary(card_scheduler, quiz_scheduler, now):
    cards = [
        CardState(item_id="new"),
        CardState(item_id="due", state=CardPhase.REVIEW, stability=30.0, last_review=now - timedelta(days=30),
                  due_date=now - timedelta(hours=1)),
        CardState(item_id="later", state=CardPhase.LEARNING, stability=2.0, last_review=now,
                  due_date=now + timedelta(days=2)),
    ]
    history = [
        {"item_id": "due", "reviewed_at": now - timedelta(days=1), "rating": 3},
        {"item_id": "due", "reviewed_at": now - timedelta(days=1, hours=2), "rating": 1},
        {"item_id": "q", "reviewed_at": now - timedelta(hours=1), "is_correct": True, "rating": None},
        {"item_id": "old", "reviewed_at": now - timedelta(days=60), "rating": 4},
    ]
    summary = build_study_summary(cards, history, now, days=7)

    assert len(summary.progress_by_day) == 7
    assert summary.progress_by_day.index[-1].date() == now.date()
    assert summary.progress_by_day["reviews"].tolist() == [0, 0, 0, 0, 0, 2, 1]
    assert summary.progress_by_day["correct_reviews"].tolist() == [0, 0, 0, 0, 0, 1, 1]
    assert summary.total_reviews == 3
    assert summary.state_counts == {"new": 1, "review": 1, "learning": 1}
    assert summary.due_today == 1
    assert summary.total_cards == 3
    assert summary.words_mastered == 1


def test_study_summary_without_data(now):
    summary = build_study_summary([], [], now)
    assert summary.total_reviews == 0
    assert summary.total_cards == 0
    assert summary.state_counts == {}
    assert len(summary.progress_by_day) == 30


def test_ingestion_history_records_feed_the_summary(card_scheduler, quiz_scheduler, clock, now):
    ingestor = ReviewIngestor(lambda item_id, kind: None, card_scheduler, quiz_scheduler, clock=clock)
    records = [
        ingestor.ingest_review("a", CardReview(rating=2)).audit_record,
        ingestor.ingest_review("b", QuizAnswer(is_correct=False)).audit_record,
    ]
    summary = build_study_summary([], records, now, days=1)
    assert summary.progress_by_day["reviews"].tolist() == [2]
    assert summary.progress_by_day["correct_reviews"].tolist() == [0]


@pytest.mark.usefixtures("database")
def test_statistics_hook_counts_only_stored_reviews(card_scheduler, quiz_scheduler, clock, now):
    user = "anna"
    ingestor = ReviewIngestor(
        fsrs.make_state_fetcher(user),
        card_scheduler,
        quiz_scheduler,
        hooks=[analytics.make_statistics_hook(user)],
        clock=clock,
    )
    store = fsrs.make_review_store(user)
    fsrs.save_item_state(user, CardState(item_id="old", state=CardPhase.REVIEW, stability=40.0))

    first = ingestor.ingest_review("tafel", CardReview(rating=4, response_time_ms=1800))
    retry = ingestor.ingest_review("tafel", CardReview(rating=4, response_time_ms=1800))
    ingestor.commit(first, store)
    with pytest.raises(PreconditionFailed):
        ingestor.commit(retry, store)
    # ingested but never committed
    ingestor.ingest_review("stoel", CardReview(rating=1, response_time_ms=2200))

    stats = analytics.load_user_statistics(user)
    assert stats.total_reviews == 1
    assert stats.average_retention_rate == pytest.approx(1.0)
    assert stats.average_response_time == 1800
    assert stats.total_study_time == 1800
    assert stats.current_streak == 1
    assert stats.last_study_date == now.date()
    assert stats.words_mastered == 1


@pytest.mark.usefixtures("database")
def test_mastered_count_includes_the_committed_review(card_scheduler, quiz_scheduler, clock):
    user = "anna"
    ingestor = ReviewIngestor(
        fsrs.make_state_fetcher(user),
        card_scheduler,
        quiz_scheduler,
        hooks=[analytics.make_statistics_hook(user)],
        clock=clock,
    )
    fsrs.save_item_state(user, CardState(
        item_id="tafel", state=CardPhase.REVIEW, stability=15.0, difficulty=5.0,
        reps=3, last_review=clock() - timedelta(days=15), due_date=clock(),
    ))

    result = ingestor.record_review("tafel", CardReview(rating=4), store=fsrs.make_review_store(user))

    assert result.new_state.stability >= 21
    assert analytics.load_user_statistics(user).words_mastered == 1


@pytest.mark.usefixtures("database")
def test_load_study_summary_reads_the_database(card_scheduler, quiz_scheduler, clock, now):
    user = "anna"
    ingestor = ReviewIngestor(fsrs.make_state_fetcher(user), card_scheduler, quiz_scheduler, clock=clock)
    fsrs.persist_review(user, ingestor.ingest_review("tafel", CardReview(rating=3)))
    fsrs.persist_review(user, ingestor.ingest_review("q", QuizAnswer(is_correct=True)))

    summary = analytics.load_study_summary(user, now=now, days=3)
    assert summary.total_reviews == 2
    assert summary.total_cards == 1
    assert summary.state_counts == {"review": 1}
