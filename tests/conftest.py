"""Shared fixtures: fixed clock, deterministic randomness, throwaway database."""

import random
from datetime import datetime, timezone

import pytest

from vocab_srs import fsrs


T0 = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


class MidpointRandom(random.Random):
    """Random source whose draws always land in the middle of the range."""

    def random(self):
        return 0.5


@pytest.fixture
def now():
    return T0


@pytest.fixture
def clock():
    return lambda: T0


@pytest.fixture
def card_scheduler(clock):
    return fsrs.CardScheduler(clock=clock)


@pytest.fixture
def quiz_scheduler(clock):
    """Quiz scheduler with neutral jitter so intervals are exact."""
    return fsrs.QuizScheduler(rng=MidpointRandom(), clock=clock)


@pytest.fixture
def database(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'reviews.db'}")
    monkeypatch.delenv("TEST_MODE", raising=False)
    fsrs.init_db()
    engine = fsrs.get_engine()
    yield
    engine.dispose()
