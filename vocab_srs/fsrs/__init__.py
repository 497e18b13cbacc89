"""
FSRS - Free Spaced Repetition Scheduler

Main API for vocabulary cards and quiz questions.

Two schedulers share one interface (schedule, get_next_intervals, is_due):
- CardScheduler: 4-point ratings, new/learning/review/relearning phases,
  whole-day intervals from one day up to a hundred years
- QuizScheduler: right/wrong answers classified by response time,
  hour-rounded intervals from six hours up to 180 days
- Exponential forgetting curve: R = exp(-t/S)

Quick start:
    from vocab_srs import fsrs

    # Initialize database
    fsrs.init_db()

    # Schedule a review (algorithm only, no DB calls)
    card = fsrs.CardScheduler().schedule(card, fsrs.Rating.GOOD)
"""

# Constants and parameters
from vocab_srs.fsrs.constants import (
    CARD_KIND,
    QUIZ_KIND,
    CardPhase,
    D_MAX,
    D_MIN,
    DEFAULT_WEIGHTS,
    MASTERED_STABILITY_DAYS,
    QuizResponse,
    Rating,
)
from vocab_srs.fsrs.parameters import CardParameters, QuizParameters

# Memory state and decay model
from vocab_srs.fsrs.memory_state import (
    CardState,
    QuizState,
    calculate_retrievability,
    card_interval,
    quiz_interval,
)

# Core scheduler API (algorithm logic)
from vocab_srs.fsrs.scheduler import (
    CardIntervalPreview,
    CardScheduler,
    QuizIntervalPreview,
    QuizScheduler,
    Scheduler,
    validate_rating,
)

# Database API
from vocab_srs.fsrs.database import (
    init_db,
    reset_db,
    get_engine,
    get_session,
    load_card_state,
    load_quiz_state,
    make_state_fetcher,
    save_item_state,
    get_all_card_states,
    get_all_quiz_states,
    persist_review,
    make_review_store,
    get_recent_history,
    get_history_since,
    load_latest_attempts,
    load_user_statistics_row,
    save_user_statistics_row,
    count_mastered_cards,
)


__all__ = [
    # Core algorithm
    "Scheduler",
    "CardScheduler",
    "QuizScheduler",
    "CardIntervalPreview",
    "QuizIntervalPreview",
    "validate_rating",

    # Database operations
    "init_db",
    "reset_db",
    "get_engine",
    "get_session",
    "load_card_state",
    "load_quiz_state",
    "make_state_fetcher",
    "save_item_state",
    "get_all_card_states",
    "get_all_quiz_states",
    "persist_review",
    "make_review_store",
    "get_recent_history",
    "get_history_since",
    "load_latest_attempts",
    "load_user_statistics_row",
    "save_user_statistics_row",
    "count_mastered_cards",

    # Enums
    "Rating",
    "CardPhase",
    "QuizResponse",

    # Memory state
    "CardState",
    "QuizState",
    "calculate_retrievability",
    "card_interval",
    "quiz_interval",

    # Parameters
    "CardParameters",
    "QuizParameters",
    "DEFAULT_WEIGHTS",
    "CARD_KIND",
    "QUIZ_KIND",
    "D_MIN",
    "D_MAX",
    "MASTERED_STABILITY_DAYS",
]
