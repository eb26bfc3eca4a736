"""Cumulative quiz statistics and the durable slot they live in."""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.orm import Session

from app.constants import STATS_KEY
from app.db.models import StatsSlot

logger = logging.getLogger(__name__)


class ResetNotConfirmedError(ValueError):
    """Raised when a stats reset is requested without confirmation."""


class CharacterStat(BaseModel):
    """Per-character attempt counters."""
    attempts: int = Field(0, ge=0)
    correct: int = Field(0, ge=0)

    @model_validator(mode="after")
    def check_correct_within_attempts(self):
        if self.correct > self.attempts:
            raise ValueError("correct cannot exceed attempts")
        return self


class QuizStats(BaseModel):
    """
    Cumulative quiz performance across all sessions.

    Persisted as JSON with camelCase keys (totalAnswered, correctAnswers,
    streak, bestStreak, lastPlayed, characterStats).
    """
    model_config = ConfigDict(populate_by_name=True)

    total_answered: int = Field(0, ge=0, alias="totalAnswered")
    correct_answers: int = Field(0, ge=0, alias="correctAnswers")
    streak: int = Field(0, ge=0)
    best_streak: int = Field(0, ge=0, alias="bestStreak")
    last_played: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="lastPlayed")
    character_stats: Dict[str, CharacterStat] = Field(default_factory=dict, alias="characterStats")

    @model_validator(mode="after")
    def check_invariants(self):
        if self.correct_answers > self.total_answered:
            raise ValueError("correctAnswers cannot exceed totalAnswered")
        if self.best_streak < self.streak:
            raise ValueError("bestStreak cannot be lower than streak")
        return self

    @property
    def accuracy(self) -> Optional[float]:
        if self.total_answered == 0:
            return None
        return self.correct_answers / self.total_answered

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def default_stats() -> QuizStats:
    """Zeroed statistics, as used on first read and after a reset."""
    return QuizStats()


def record_answer(stats: QuizStats, char_id: str, is_correct: bool) -> Dict[str, Any]:
    """
    Apply one answered question to the statistics in place.

    Updates:
    - totalAnswered, correctAnswers
    - streak (reset to 0 on a wrong answer), bestStreak
    - characterStats[char_id].attempts / .correct

    Args:
        stats: Statistics to update
        char_id: Dataset id of the character under test
        is_correct: Whether the answer was correct

    Returns:
        Dictionary with the updated values for easy inspection
    """
    stats.total_answered += 1

    if is_correct:
        stats.correct_answers += 1
        stats.streak += 1
        stats.best_streak = max(stats.best_streak, stats.streak)
    else:
        stats.streak = 0

    entry = stats.character_stats.setdefault(char_id, CharacterStat())
    entry.attempts += 1
    if is_correct:
        entry.correct += 1

    return {
        "total_answered": stats.total_answered,
        "correct_answers": stats.correct_answers,
        "streak": stats.streak,
        "best_streak": stats.best_streak,
        "character": {"attempts": entry.attempts, "correct": entry.correct},
    }


class StatsStore:
    """
    Durable key-value slots for one learner, backed by the stats_slots table.

    Supports get-with-default, full overwrite and a read-modify-write
    transaction that commits once.
    """

    def __init__(self, db: Session, owner_id: str):
        self.db = db
        self.owner_id = owner_id

    def _slot(self, key: str) -> Optional[StatsSlot]:
        return self.db.query(StatsSlot).filter(
            StatsSlot.owner_id == self.owner_id,
            StatsSlot.key == key
        ).first()

    def get(self, key: str, default: Any = None) -> Any:
        slot = self._slot(key)
        return slot.value if slot is not None else default

    def put(self, key: str, value: Any, commit: bool = True) -> None:
        slot = self._slot(key)
        if slot is None:
            self.db.add(StatsSlot(owner_id=self.owner_id, key=key, value=value))
        else:
            # Reassign so the JSON column is flagged dirty
            slot.value = value
        if commit:
            self.db.commit()

    def load(self) -> QuizStats:
        document = self.get(STATS_KEY)
        if document is None:
            return default_stats()
        return QuizStats.model_validate(document)

    def save(self, stats: QuizStats) -> None:
        self.put(STATS_KEY, stats.to_document())

    @contextmanager
    def transaction(self) -> Iterator[QuizStats]:
        """
        Read the stats, let the caller apply a delta, write them back.

        The write happens once, on normal exit. On error the DB session is
        rolled back and nothing is written.

        Example:
            >>> with store.transaction() as stats:
            ...     record_answer(stats, "h1", True)
        """
        stats = self.load()
        try:
            yield stats
        except Exception:
            self.db.rollback()
            raise
        self.put(STATS_KEY, stats.to_document())


def mark_played(store: StatsStore, when: Optional[datetime] = None) -> QuizStats:
    """Record the start of a session as lastPlayed."""
    with store.transaction() as stats:
        stats.last_played = when or datetime.now(timezone.utc)
    return stats


def reset_stats(store: StatsStore, confirmed: bool) -> QuizStats:
    """
    Overwrite the whole stats slot with zeroed defaults.

    Per-character history is cleared as well. Live quiz sessions are not
    touched.

    Raises:
        ResetNotConfirmedError: If ``confirmed`` is not True
    """
    if confirmed is not True:
        raise ResetNotConfirmedError("Resetting statistics requires confirmation")

    stats = default_stats()
    store.save(stats)
    logger.info("Quiz statistics reset", extra={"learner_id": store.owner_id})
    return stats
