"""
Database - Scheduling Database I/O Operations

Handles all database operations for item state, review history, quiz
attempts and user statistics. Uses SQLAlchemy ORM; any SQLAlchemy URL
works (Postgres in production, SQLite for tests).

This module handles ONLY database I/O.
Algorithm logic is handled by the scheduler module.
"""

from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional, Union

from sqlalchemy import create_engine, func, inspect, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from vocab_srs import config
from vocab_srs.errors import PreconditionFailed
from vocab_srs.fsrs.constants import CARD_KIND, MASTERED_STABILITY_DAYS, QUIZ_KIND
from vocab_srs.fsrs.memory_state import CardState, QuizState, parse_timestamp
from vocab_srs.fsrs.models import (
    Base,
    CardRow,
    QuizAttemptRow,
    QuizQuestionRow,
    ReviewHistoryRow,
    UserStatisticsRow,
)
from vocab_srs.session_builders import attempt_builder, pool_types

if TYPE_CHECKING:
    from vocab_srs.review_ingestion import IngestionResult, ReviewHistoryRecord

logger = logging.getLogger(__name__)

ItemState = Union[CardState, QuizState]

REQUIRED_TABLES = ('cards', 'quiz_questions', 'review_history', 'quiz_attempts', 'user_statistics')


@lru_cache(maxsize=None)
def _create_engine(db_url: str) -> Engine:
    if db_url.startswith("sqlite"):
        return create_engine(db_url, echo=False)
    return create_engine(
        db_url,
        pool_size=5,           # Keep 5 connections open
        max_overflow=10,       # Allow up to 10 extra connections
        pool_pre_ping=True,    # Verify connections before use
        echo=False
    )


def get_engine() -> Engine:
    """
    Get SQLAlchemy engine for the configured database.

    Engines are cached per URL so the connection pool is shared.

    Returns:
        SQLAlchemy Engine instance
    """
    return _create_engine(config.get_database_url())


def get_session() -> Session:
    """
    Get a SQLAlchemy session for database operations.

    Returns:
        SQLAlchemy Session instance
    """
    SessionLocal = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return SessionLocal()


def init_db():
    """
    Initialize database schema if tables don't exist.

    Safe to call multiple times - only creates missing tables.
    """
    engine = get_engine()
    existing_tables = set(inspect(engine).get_table_names())
    if not set(REQUIRED_TABLES) <= existing_tables:
        Base.metadata.create_all(engine)
        logger.info("created scheduling tables on %s", engine.url.render_as_string(hide_password=True))


def reset_db():
    """
    DANGEROUS: Delete all data and recreate tables.

    Only use this for testing or when you want to start fresh.
    All review history will be lost!
    """
    engine = get_engine()
    Base.metadata.drop_all(engine)
    logger.warning("all scheduling tables dropped")
    init_db()


# ---- Row conversion ----

def _row_to_dict(row: Base) -> dict[str, Any]:
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}


def _card_from_row(row: CardRow) -> CardState:
    return CardState.from_record(_row_to_dict(row))


def _quiz_from_row(row: QuizQuestionRow) -> QuizState:
    return QuizState.from_record(_row_to_dict(row))


def _state_columns(state: ItemState) -> dict[str, Any]:
    if isinstance(state, CardState):
        return {
            "group_id": state.group_id,
            "state": state.state.value,
            "stability": state.stability,
            "difficulty": state.difficulty,
            "elapsed_days": state.elapsed_days,
            "scheduled_days": state.scheduled_days,
            "reps": state.reps,
            "lapses": state.lapses,
            "last_review": state.last_review,
            "due_date": state.due_date,
            "total_study_time": state.total_study_time,
            "version": state.version,
        }
    return {
        "group_id": state.group_id,
        "stability": state.stability,
        "difficulty": state.difficulty,
        "total_attempts": state.total_attempts,
        "correct_attempts": state.correct_attempts,
        "success_rate": state.success_rate,
        "interval_days": state.interval_days,
        "due_date": state.due_date,
        "last_review": state.last_review,
        "avg_response_time": state.avg_response_time,
        "response_quality": state.response_quality.value if state.response_quality else None,
        "version": state.version,
    }


def _history_to_dict(row: ReviewHistoryRow) -> dict[str, Any]:
    record = _row_to_dict(row)
    for key in ("reviewed_at", "old_due_date", "new_due_date"):
        record[key] = parse_timestamp(record[key])
    return record


# ---- Item state ----

def load_card_state(user_id: str, item_id: str) -> Optional[CardState]:
    """
    Load card state from database.

    Args:
        user_id: User identifier for scoping review data
        item_id: Card identifier

    Returns:
        CardState if found, None if the card was never reviewed
    """
    session = get_session()
    try:
        row = session.get(CardRow, (user_id, item_id))
        return _card_from_row(row) if row is not None else None
    finally:
        session.close()


def load_quiz_state(user_id: str, item_id: str) -> Optional[QuizState]:
    """
    Load quiz question state from database.

    Returns:
        QuizState if found, None if the question was never answered
    """
    session = get_session()
    try:
        row = session.get(QuizQuestionRow, (user_id, item_id))
        return _quiz_from_row(row) if row is not None else None
    finally:
        session.close()


def make_state_fetcher(user_id: str) -> Callable[[str, str], Optional[ItemState]]:
    """
    State fetcher for ReviewIngestor, scoped to one user.
    """
    def fetch(item_id: str, kind: str) -> Optional[ItemState]:
        if kind == CARD_KIND:
            return load_card_state(user_id, item_id)
        if kind == QUIZ_KIND:
            return load_quiz_state(user_id, item_id)
        raise ValueError(f"unknown item kind: {kind!r}")
    return fetch


def save_item_state(user_id: str, state: ItemState):
    """
    Insert or overwrite an item state without a version check.

    For seeding and imports; reviews go through persist_review.
    """
    model = CardRow if isinstance(state, CardState) else QuizQuestionRow
    session = get_session()
    try:
        session.merge(model(user_id=user_id, item_id=state.item_id, **_state_columns(state)))
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_all_card_states(user_id: str, group_id: Optional[str] = None) -> list[CardState]:
    """
    Get all stored cards of a user, optionally limited to one group.
    """
    session = get_session()
    try:
        query = session.query(CardRow).filter(CardRow.user_id == user_id)
        if group_id is not None:
            query = query.filter(CardRow.group_id == group_id)
        return [_card_from_row(row) for row in query.order_by(CardRow.item_id).all()]
    finally:
        session.close()


def get_all_quiz_states(user_id: str, group_id: Optional[str] = None) -> list[QuizState]:
    session = get_session()
    try:
        query = session.query(QuizQuestionRow).filter(QuizQuestionRow.user_id == user_id)
        if group_id is not None:
            query = query.filter(QuizQuestionRow.group_id == group_id)
        return [_quiz_from_row(row) for row in query.order_by(QuizQuestionRow.item_id).all()]
    finally:
        session.close()


# ---- Reviews ----

def _write_state(session: Session, user_id: str, old_state: ItemState, new_state: ItemState):
    """
    Compare-and-set write: update only if the stored version is still the
    one the review was computed from.
    """
    model = CardRow if isinstance(new_state, CardState) else QuizQuestionRow
    values = _state_columns(new_state)

    stmt = (
        update(model)
        .where(
            model.user_id == user_id,
            model.item_id == new_state.item_id,
            model.version == old_state.version,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if session.execute(stmt).rowcount == 1:
        return

    if old_state.version != 0:
        raise PreconditionFailed(
            f"{new_state.item_id}: stored state changed since version {old_state.version}"
        )

    # First review of this item: the row must not exist yet
    session.add(model(user_id=user_id, item_id=new_state.item_id, **values))
    session.flush()


def _history_row(user_id: str, audit: ReviewHistoryRecord) -> ReviewHistoryRow:
    record = audit.to_record()
    record.pop("response_time_ms")
    return ReviewHistoryRow(user_id=user_id, response_time=audit.response_time_ms, **record)


def persist_review(user_id: str, result: IngestionResult):
    """
    Store the outcome of one ingested review atomically.

    Writes the new item state, the history record and (for quiz questions)
    the attempt in one transaction; nothing is written on failure.

    Raises:
        PreconditionFailed: another review of the same item was stored first
    """
    audit = result.audit_record
    session = get_session()
    try:
        _write_state(session, user_id, result.old_state, result.new_state)
        session.add(_history_row(user_id, audit))
        if audit.item_kind == QUIZ_KIND:
            session.add(QuizAttemptRow(
                user_id=user_id,
                item_id=audit.item_id,
                is_correct=audit.is_correct,
                response_time=audit.response_time_ms,
                created_at=audit.reviewed_at,
            ))
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise PreconditionFailed(
            f"{audit.item_id}: item was created by a concurrent review"
        ) from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    logger.debug("stored %s review of %s (version %d)", audit.item_kind, audit.item_id, result.new_state.version)


def make_review_store(user_id: str) -> Callable[[IngestionResult], None]:
    """
    Review store for ReviewIngestor.commit, scoped to one user.
    """
    def store(result: IngestionResult) -> None:
        persist_review(user_id, result)
    return store


def get_recent_history(user_id: str, limit: int = 10) -> list[dict]:
    """
    Get recent review history records.

    Args:
        user_id: User identifier for scoping review data
        limit: Maximum number of records to return

    Returns:
        List of history records (newest first)
    """
    session = get_session()
    try:
        rows = session.query(ReviewHistoryRow).filter(
            ReviewHistoryRow.user_id == user_id
        ).order_by(
            ReviewHistoryRow.reviewed_at.desc(),
            ReviewHistoryRow.id.desc()
        ).limit(limit).all()
        return [_history_to_dict(row) for row in rows]
    finally:
        session.close()


def get_history_since(user_id: str, since: datetime) -> list[dict]:
    """
    Get all history records at or after `since`, oldest first.
    """
    session = get_session()
    try:
        rows = session.query(ReviewHistoryRow).filter(
            ReviewHistoryRow.user_id == user_id,
            ReviewHistoryRow.reviewed_at >= since
        ).order_by(ReviewHistoryRow.reviewed_at, ReviewHistoryRow.id).all()
        return [_history_to_dict(row) for row in rows]
    finally:
        session.close()


def load_latest_attempts(
    user_id: str,
    item_ids: Optional[Iterable[str]] = None
) -> dict[str, pool_types.AttemptSummary]:
    """
    Most recent quiz attempt per question.

    Args:
        user_id: User identifier
        item_ids: Restrict to these questions (None = all)

    Returns:
        Dict of item_id -> AttemptSummary
    """
    session = get_session()
    try:
        query = session.query(QuizAttemptRow).filter(QuizAttemptRow.user_id == user_id)
        if item_ids is not None:
            query = query.filter(QuizAttemptRow.item_id.in_(list(item_ids)))
        attempts = [
            pool_types.AttemptSummary(
                item_id=row.item_id,
                is_correct=row.is_correct,
                attempted_at=parse_timestamp(row.created_at),
            )
            for row in query.all()
        ]
    finally:
        session.close()
    return attempt_builder.latest_attempts_by_item(attempts)


# ---- User statistics ----

def load_user_statistics_row(user_id: str) -> Optional[dict]:
    session = get_session()
    try:
        row = session.get(UserStatisticsRow, user_id)
        return _row_to_dict(row) if row is not None else None
    finally:
        session.close()


def save_user_statistics_row(user_id: str, values: dict):
    """Insert or replace the statistics row of a user."""
    session = get_session()
    try:
        session.merge(UserStatisticsRow(user_id=user_id, **values))
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def count_mastered_cards(user_id: str) -> int:
    """Cards with stability of at least 21 days."""
    session = get_session()
    try:
        return session.query(func.count(CardRow.item_id)).filter(
            CardRow.user_id == user_id,
            CardRow.stability >= MASTERED_STABILITY_DAYS
        ).scalar() or 0
    finally:
        session.close()
