"""
FSRS Constants and Parameters

Rating scales, card phases and the default coefficient tables for both
schedulers in one place.
"""

from __future__ import annotations

from enum import Enum, IntEnum


# ---- Ratings ----

class Rating(IntEnum):
    """User rating for a card review."""
    AGAIN = 1   # Completely forgot, needs to restart learning
    HARD = 2    # Remembered with difficulty
    GOOD = 3    # Remembered correctly with some effort
    EASY = 4    # Remembered easily and quickly


class CardPhase(str, Enum):
    """Lifecycle state of a card."""
    NEW = "new"                 # Never studied
    LEARNING = "learning"       # First time through
    REVIEW = "review"           # Graduated to spaced review
    RELEARNING = "relearning"   # Forgotten after graduating


class QuizResponse(str, Enum):
    """Response quality derived from correctness and answer speed."""
    AGAIN = "again"  # Wrong answer
    HARD = "hard"    # Correct but slow
    GOOD = "good"    # Correct at normal speed
    EASY = "easy"    # Correct and fast


# ---- Shared ----

CARD_KIND = "card"
QUIZ_KIND = "quiz"

D_MIN = 1.0
D_MAX = 10.0
DECAY_BASE_RETENTION = 0.9  # Retention the card stability is defined against
SECONDS_PER_DAY = 86400.0
HOURS_PER_DAY = 24


# ---- Card scheduler defaults ----

CARD_REQUEST_RETENTION = 0.9
CARD_MINIMUM_INTERVAL = 1        # days
CARD_MAXIMUM_INTERVAL = 36500    # days (100 years)
CARD_INITIAL_STABILITY_FLOOR = 0.1

# w[0..3]: initial stability per rating
# w[4], w[5]: initial difficulty
# w[6]: difficulty step per rating
# w[8..10]: recall stability growth
# w[11..14]: forgetting curve
# w[15], w[16]: hard penalty / easy bonus
DEFAULT_WEIGHTS = (
    0.4, 0.6, 2.4, 5.8, 4.93, 0.94, 0.86, 0.01, 1.49,
    0.14, 0.94, 2.18, 0.05, 0.34, 1.26, 0.29, 2.61,
)
WEIGHT_COUNT = len(DEFAULT_WEIGHTS)


# ---- Quiz scheduler defaults ----

QUIZ_REQUEST_RETENTION = 0.85
QUIZ_DECAY_BASE_RETENTION = 0.8
QUIZ_MINIMUM_INTERVAL = 0.25     # 6 hours
QUIZ_MAXIMUM_INTERVAL = 180      # 6 months

QUIZ_MULTIPLIERS = {
    QuizResponse.EASY: 2.5,
    QuizResponse.GOOD: 1.3,
    QuizResponse.HARD: 0.8,
    QuizResponse.AGAIN: 0.5,
}

QUIZ_STABILITY_DECAY = 0.85       # Applied on wrong answers
QUIZ_DIFFICULTY_INCREMENT = 0.15  # Wrong answer
QUIZ_DIFFICULTY_DECREMENT = 0.05  # Correct answer
QUIZ_INITIAL_STABILITY = 1.0
QUIZ_INITIAL_DIFFICULTY = 5.0
QUIZ_DEFAULT_RESPONSE_TIME_MS = 5000

QUIZ_EASY_SPEED_RATIO = 0.7   # Faster than 70% of average -> easy
QUIZ_HARD_SPEED_RATIO = 1.3   # Slower than 130% of average -> hard
QUIZ_JITTER = 0.1             # +/-10% interval spread

# Mock response times used for interval previews
QUIZ_PREVIEW_RESPONSE_TIMES = {
    QuizResponse.AGAIN: 5000,
    QuizResponse.HARD: 8000,
    QuizResponse.GOOD: 5000,
    QuizResponse.EASY: 2000,
}


# ---- Statistics ----

MASTERED_STABILITY_DAYS = 21  # Cards at or above this count as mastered


# ---- Stored-record defaults ----
# Column defaults of the card table, applied when a non-new card record
# arrives without memory parameters.

CARD_DEFAULT_STABILITY = 1.0
CARD_DEFAULT_DIFFICULTY = 5.0


# ---- Retention tuning ----

RETENTION_MIN_HISTORY = 30
RETENTION_WINDOW = 100
RETENTION_STEP = 0.05
RETENTION_FLOOR = 0.8
RETENTION_CEILING = 0.95
