"""
SQLAlchemy ORM Models for the scheduling database

Card and quiz-question state, the append-only review history and the
per-user aggregate statistics.
"""

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Float, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CardRow(Base):
    """
    Persistent memory state for one vocabulary card of one user.
    """
    __tablename__ = 'cards'

    user_id = Column(String(255), primary_key=True, nullable=False)
    item_id = Column(String(255), primary_key=True, nullable=False)
    group_id = Column(String(255), nullable=True)

    state = Column(String(20), nullable=False, default='new')  # new/learning/review/relearning
    stability = Column(Float, nullable=True)
    difficulty = Column(Float, nullable=True)
    elapsed_days = Column(Integer, nullable=False, default=0)
    scheduled_days = Column(Integer, nullable=False, default=0)
    reps = Column(Integer, nullable=False, default=0)
    lapses = Column(Integer, nullable=False, default=0)

    last_review = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)

    total_study_time = Column(Integer, nullable=False, default=0)  # milliseconds

    # Optimistic concurrency: bumped on every review write
    version = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<CardRow({self.user_id}, {self.item_id}, {self.state})>"


class QuizQuestionRow(Base):
    """
    Persistent memory state for one quiz question of one user.
    """
    __tablename__ = 'quiz_questions'

    user_id = Column(String(255), primary_key=True, nullable=False)
    item_id = Column(String(255), primary_key=True, nullable=False)
    group_id = Column(String(255), nullable=True)

    stability = Column(Float, nullable=True)
    difficulty = Column(Float, nullable=True)
    total_attempts = Column(Integer, nullable=False, default=0)
    correct_attempts = Column(Integer, nullable=False, default=0)
    success_rate = Column(Float, nullable=False, default=0.0)
    interval_days = Column(Float, nullable=True)

    due_date = Column(DateTime(timezone=True), nullable=True)
    last_review = Column(DateTime(timezone=True), nullable=True)
    avg_response_time = Column(Float, nullable=True)  # milliseconds
    response_quality = Column(String(10), nullable=True)

    version = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<QuizQuestionRow({self.user_id}, {self.item_id})>"


class ReviewHistoryRow(Base):
    """
    Immutable log entry for a single review of a card or quiz question.

    Captures the state before and after the review; never updated.
    """
    __tablename__ = 'review_history'

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(String(255), nullable=False, index=True)
    item_id = Column(String(255), nullable=False, index=True)
    item_kind = Column(String(10), nullable=False)  # "card" or "quiz"

    reviewed_at = Column(DateTime(timezone=True), nullable=False, index=True)
    rating = Column(Integer, nullable=True)  # cards: 1=AGAIN .. 4=EASY
    is_correct = Column(Boolean, nullable=True)  # quiz questions
    response_time = Column(Integer, nullable=True)  # milliseconds
    response_quality = Column(String(10), nullable=True)

    old_stability = Column(Float, nullable=True)
    old_difficulty = Column(Float, nullable=True)
    old_state = Column(String(20), nullable=True)
    old_due_date = Column(DateTime(timezone=True), nullable=True)

    new_stability = Column(Float, nullable=False)
    new_difficulty = Column(Float, nullable=False)
    new_state = Column(String(20), nullable=True)
    new_due_date = Column(DateTime(timezone=True), nullable=False)

    # {field: [before, after]} for every numeric field the review changed
    changes = Column(JSON, nullable=False, default=dict)

    def __repr__(self):
        return f"<ReviewHistoryRow(id={self.id}, {self.item_kind}/{self.item_id})>"


class UserStatisticsRow(Base):
    """
    Aggregate study statistics for the dashboard.
    """
    __tablename__ = 'user_statistics'

    user_id = Column(String(255), primary_key=True, nullable=False)

    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_study_date = Column(Date, nullable=True)

    total_cards_studied = Column(Integer, nullable=False, default=0)
    total_study_time = Column(Integer, nullable=False, default=0)
    total_reviews = Column(Integer, nullable=False, default=0)
    words_mastered = Column(Integer, nullable=False, default=0)

    average_retention_rate = Column(Float, nullable=False, default=0.0)
    average_response_time = Column(Integer, nullable=False, default=0)
    daily_goal = Column(Integer, nullable=False, default=20)

    def __repr__(self):
        return f"<UserStatisticsRow({self.user_id}, streak={self.current_streak})>"


class QuizAttemptRow(Base):
    """
    One answer to a quiz question, used by the last-attempt due queue.
    """
    __tablename__ = 'quiz_attempts'

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(String(255), nullable=False, index=True)
    item_id = Column(String(255), nullable=False, index=True)
    is_correct = Column(Boolean, nullable=False)
    response_time = Column(Integer, nullable=True)  # milliseconds
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<QuizAttemptRow({self.item_id}, correct={self.is_correct})>"
