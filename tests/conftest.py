"""Pytest fixtures for testing."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.db.database import Base
from app.db.models import Learner
from app.db.init_db import seed_kana, load_characters
from app.services.kana import KanaCharacter, Script
from app.services.stats import StatsStore


class ManualCall:
    """A scheduled callback that only runs when the test says so."""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Feedback scheduler that queues callbacks until run_pending() is called."""

    def __init__(self):
        self.calls = []

    def schedule(self, delay, callback):
        call = ManualCall(delay, callback)
        self.calls.append(call)
        return call

    @property
    def pending(self):
        return [call for call in self.calls if not call.cancelled]

    def run_pending(self):
        calls, self.calls = self.calls, []
        for call in calls:
            if not call.cancelled:
                call.callback()
        return len(calls)


@pytest.fixture(scope="function")
def test_db():
    """Create a test database seeded with the shipped kana dataset."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    db = SessionLocal()

    seed_kana(db)

    yield db

    db.close()


@pytest.fixture
def test_learner(test_db):
    """Create a test learner."""
    learner = Learner(id="kana_test_learner")
    test_db.add(learner)
    test_db.commit()
    return learner


@pytest.fixture
def store(test_db, test_learner):
    """Stats store for the test learner."""
    return StatsStore(test_db, test_learner.id)


@pytest.fixture
def dataset(test_db):
    """Every seeded character, hiragana first."""
    return load_characters(test_db)


@pytest.fixture
def basic_dataset(dataset):
    """The 46 basic characters of each script (ids 1-46)."""
    return [kana for kana in dataset if int(kana.id[1:]) <= 46]


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


@pytest.fixture
def make_kana():
    """Factory for ad-hoc kana values."""
    counter = {"n": 0}

    def _make(romanization, id=None, script=Script.HIRAGANA, character="?", row_hint=None):
        counter["n"] += 1
        return KanaCharacter(
            character=character,
            romanization=romanization,
            id=id or f"x{counter['n']}",
            script=script,
            row_hint=row_hint,
        )

    return _make
