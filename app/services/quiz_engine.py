"""Quiz session engine: question sequencing, distractors and answer evaluation."""
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.config import settings
from app.constants import DISTRACTOR_COUNT
from app.services.kana import KanaCharacter, Script, filter_by_script
from app.services.scheduler import FeedbackScheduler, ScheduledCall
from app.services.stats import StatsStore, mark_played, record_answer

logger = logging.getLogger(__name__)


class QuizMode(str, Enum):
    """Which characters a session draws from."""
    HIRAGANA = "hiragana"
    KATAKANA = "katakana"
    MIXED = "mixed"

    @property
    def script(self) -> Optional[Script]:
        if self is QuizMode.MIXED:
            return None
        return Script(self.value)


class QuizState(str, Enum):
    """Lifecycle of a quiz session."""
    SETUP = "setup"              # Mode selection, not started
    IN_PROGRESS = "in_progress"  # A question is live, awaiting an answer
    FEEDBACK = "feedback"        # Answer evaluated, input locked
    COMPLETED = "completed"      # Queue exhausted


class EmptyPoolError(ValueError):
    """Raised when a quiz mode has no characters to ask about."""


class InvalidTransitionError(RuntimeError):
    """Raised when an operation is not allowed in the current quiz state."""


@dataclass(frozen=True)
class QuizQuestion:
    """The character under test and its shuffled answer options."""
    kana: KanaCharacter
    options: Tuple[str, ...]


@dataclass
class QuizSession:
    """In-memory progress through one shuffled queue."""
    mode: QuizMode
    queue: List[KanaCharacter]
    position: int = 0
    completed: bool = False

    @property
    def total(self) -> int:
        return len(self.queue)

    @property
    def current(self) -> KanaCharacter:
        return self.queue[self.position]


@dataclass(frozen=True)
class AnswerResult:
    """Outcome of one submitted answer."""
    char_id: str
    is_correct: bool
    correct_answer: str
    submitted_answer: str
    accepted: bool = True
    stats: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "char_id": self.char_id,
            "is_correct": self.is_correct,
            "correct_answer": self.correct_answer,
            "submitted_answer": self.submitted_answer,
            "accepted": self.accepted,
        }


def build_queue(pool: Sequence[KanaCharacter], rng: Optional[random.Random] = None) -> List[KanaCharacter]:
    """Return a random permutation of ``pool``."""
    queue = list(pool)
    (rng or random).shuffle(queue)
    return queue


def generate_distractors(
    dataset: Sequence[KanaCharacter],
    correct: KanaCharacter,
    count: int = DISTRACTOR_COUNT,
    rng: Optional[random.Random] = None
) -> List[str]:
    """
    Sample wrong romanizations for a multiple choice question.

    Candidates come from the full dataset, both scripts. A reading shared by
    a hiragana and a katakana character counts once, so the options never
    show the same text twice.

    Args:
        dataset: Every known character
        correct: The character under test
        count: Number of distractors wanted (default 3)
        rng: Random source, the module-level one if omitted

    Returns:
        Up to ``count`` distinct strings, none equal to the correct reading.
        Fewer are returned when the dataset is too small.
    """
    answer = correct.romanization
    candidates = sorted({
        kana.romanization for kana in dataset
        if kana.romanization and kana.romanization != answer
    })

    if len(candidates) < count:
        logger.warning(
            f"Only {len(candidates)} distractors available for {answer!r}, wanted {count}",
            extra={"char_id": correct.id}
        )
        count = len(candidates)

    return (rng or random).sample(candidates, count)


def format_question(
    kana: KanaCharacter,
    distractors: List[str],
    rng: Optional[random.Random] = None
) -> QuizQuestion:
    """Combine the correct reading with its distractors in random order."""
    options = [kana.romanization] + list(distractors)
    (rng or random).shuffle(options)
    return QuizQuestion(kana=kana, options=tuple(options))


def normalize_answer(raw: str) -> str:
    return (raw or "").strip().lower()


def evaluate_answer(kana: KanaCharacter, raw: str) -> bool:
    """Typed and tapped answers alike: trimmed, case-insensitive exact match."""
    return normalize_answer(raw) == (kana.romanization or "").lower()


class QuizEngine:
    """
    State machine for one learner's quiz.

    States move SETUP -> IN_PROGRESS -> FEEDBACK -> IN_PROGRESS, and from
    FEEDBACK to COMPLETED once the queue is exhausted. A new session can only
    be started from SETUP or COMPLETED.

    Statistics are read and written through a StatsStore passed to each
    operation, since the database session belongs to the request while the
    engine outlives it.
    """

    def __init__(
        self,
        dataset: Sequence[KanaCharacter],
        rng: Optional[random.Random] = None,
        scheduler: Optional[FeedbackScheduler] = None,
        feedback_delay: Optional[float] = None,
        learner_id: Optional[str] = None
    ):
        self.dataset: Tuple[KanaCharacter, ...] = tuple(dataset)
        self.rng = rng or random.Random()
        self.scheduler = scheduler
        self.feedback_delay = settings.FEEDBACK_DELAY_SECONDS if feedback_delay is None else feedback_delay
        self.learner_id = learner_id

        self.state = QuizState.SETUP
        self.session: Optional[QuizSession] = None
        self.question: Optional[QuizQuestion] = None
        self.last_result: Optional[AnswerResult] = None
        self._pending_advance: Optional[ScheduledCall] = None

    def _log_extra(self, **fields) -> Dict[str, Any]:
        extra = {"learner_id": self.learner_id}
        if self.session is not None:
            extra["session_mode"] = self.session.mode.value
        extra.update(fields)
        return extra

    def start(self, mode: QuizMode, store: StatsStore) -> QuizQuestion:
        """
        Start a new session over every character of ``mode``.

        Args:
            mode: Script filter; MIXED uses the whole dataset
            store: Stats store; lastPlayed is updated

        Returns:
            The first question

        Raises:
            InvalidTransitionError: If a session is still running
            EmptyPoolError: If ``mode`` matches no characters. The engine is
                left exactly as it was.
        """
        if self.state not in (QuizState.SETUP, QuizState.COMPLETED):
            logger.warning(f"Rejected start while {self.state.value}", extra=self._log_extra())
            raise InvalidTransitionError(f"Cannot start a quiz while {self.state.value}")

        pool = filter_by_script(self.dataset, mode.script)
        if not pool:
            logger.warning(f"No questions available for mode {mode.value}", extra=self._log_extra())
            raise EmptyPoolError(f"No questions available for mode {mode.value}")

        mark_played(store)

        self.session = QuizSession(mode=mode, queue=build_queue(pool, self.rng))
        self.last_result = None
        self._next_question()

        logger.info(
            f"Quiz started: mode={mode.value}, questions={self.session.total}",
            extra=self._log_extra()
        )
        return self.question

    def _next_question(self) -> None:
        kana = self.session.current
        distractors = generate_distractors(self.dataset, kana, rng=self.rng)
        self.question = format_question(kana, distractors, rng=self.rng)
        self.state = QuizState.IN_PROGRESS

    def submit_answer(self, raw: str, store: StatsStore) -> AnswerResult:
        """
        Evaluate an answer to the live question.

        Statistics are updated in one transaction, then the engine enters
        FEEDBACK and the automatic advance is scheduled.

        Args:
            raw: Typed text or the tapped option
            store: Stats store to update

        Returns:
            The result. While in FEEDBACK the previous result is returned
            with ``accepted=False`` and nothing is recorded.

        Raises:
            InvalidTransitionError: If no question is live
        """
        if self.state is QuizState.FEEDBACK:
            logger.warning(
                "Answer rejected: question already answered",
                extra=self._log_extra(char_id=self.last_result.char_id)
            )
            previous = self.last_result
            return AnswerResult(
                char_id=previous.char_id,
                is_correct=previous.is_correct,
                correct_answer=previous.correct_answer,
                submitted_answer=previous.submitted_answer,
                accepted=False
            )

        if self.state is not QuizState.IN_PROGRESS:
            logger.warning(f"Answer rejected while {self.state.value}", extra=self._log_extra())
            raise InvalidTransitionError(f"No question is awaiting an answer ({self.state.value})")

        kana = self.question.kana
        is_correct = evaluate_answer(kana, raw)

        with store.transaction() as stats:
            updated = record_answer(stats, kana.id, is_correct)

        self.last_result = AnswerResult(
            char_id=kana.id,
            is_correct=is_correct,
            correct_answer=kana.romanization,
            submitted_answer=normalize_answer(raw),
            stats=updated
        )
        self.state = QuizState.FEEDBACK

        logger.debug(
            f"Answer {'correct' if is_correct else 'incorrect'} for {kana.romanization!r}",
            extra=self._log_extra(char_id=kana.id)
        )

        if self.scheduler is not None:
            self._pending_advance = self.scheduler.schedule(self.feedback_delay, self._advance_after_feedback)

        return self.last_result

    def _advance_after_feedback(self) -> None:
        self._pending_advance = None
        if self.state is not QuizState.FEEDBACK:
            logger.debug(f"Scheduled advance skipped while {self.state.value}", extra=self._log_extra())
            return
        self.advance()

    def advance(self) -> QuizState:
        """
        Move past the answered question.

        Returns:
            IN_PROGRESS with a fresh question, or COMPLETED when the queue is
            exhausted

        Raises:
            InvalidTransitionError: If the current question has not been answered
        """
        if self.state is not QuizState.FEEDBACK:
            logger.warning(f"Advance rejected while {self.state.value}", extra=self._log_extra())
            raise InvalidTransitionError(f"Cannot advance while {self.state.value}")

        self._cancel_pending()
        self.session.position += 1

        if self.session.position >= self.session.total:
            self.session.completed = True
            self.question = None
            self.state = QuizState.COMPLETED
            logger.info(f"Quiz completed: {self.session.total} questions", extra=self._log_extra())
        else:
            self._next_question()

        return self.state

    def _cancel_pending(self) -> None:
        if self._pending_advance is not None:
            self._pending_advance.cancel()
            self._pending_advance = None

    def discard(self) -> None:
        """Abandon the session; a scheduled advance will not fire."""
        self._cancel_pending()
        logger.debug("Quiz session discarded", extra=self._log_extra())

    @property
    def progress(self) -> Dict[str, int]:
        if self.session is None:
            return {"position": 0, "total": 0}
        return {"position": self.session.position, "total": self.session.total}

    def snapshot(self) -> Dict[str, Any]:
        """Everything the UI needs to render the current state."""
        question = None
        if self.question is not None:
            kana = self.question.kana
            question = {
                "char_id": kana.id,
                "character": kana.character,
                "script": kana.script.value,
                "options": list(self.question.options),
            }

        return {
            "state": self.state.value,
            "mode": self.session.mode.value if self.session else None,
            "question": question,
            "progress": self.progress,
            "last_result": self.last_result.to_dict() if self.last_result else None,
        }
