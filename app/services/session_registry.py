"""In-process registry of live quiz sessions, one per learner.

Sessions are never persisted: restarting the process or starting a new quiz
drops the old one. A learner who simply leaves never tells the server, so
sessions idle for longer than ``idle_timeout`` are discarded, and the least
recently used session is dropped once ``max_sessions`` is reached.
"""
import logging
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from app.config import settings
from app.services.quiz_engine import QuizEngine

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Maps learner ids to their current QuizEngine."""

    def __init__(
        self,
        idle_timeout: Optional[float] = None,
        max_sessions: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.idle_timeout = settings.SESSION_IDLE_SECONDS if idle_timeout is None else idle_timeout
        self.max_sessions = settings.MAX_SESSIONS if max_sessions is None else max_sessions
        self._clock = clock
        # learner id -> (engine, last touched); oldest first
        self._engines: "OrderedDict[str, Tuple[QuizEngine, float]]" = OrderedDict()

    def get(self, learner_id: str) -> Optional[QuizEngine]:
        self.expire()
        entry = self._engines.get(learner_id)
        if entry is None:
            return None
        self._touch(learner_id, entry[0])
        return entry[0]

    def replace(self, learner_id: str, engine: QuizEngine) -> QuizEngine:
        """Install ``engine`` for the learner, tearing down any previous one."""
        self.expire()
        entry = self._engines.pop(learner_id, None)
        if entry is not None and entry[0] is not engine:
            entry[0].discard()

        while len(self._engines) >= self.max_sessions:
            oldest_id, (oldest, _) = self._engines.popitem(last=False)
            oldest.discard()
            logger.info("Quiz session evicted: registry full", extra={"learner_id": oldest_id})

        self._touch(learner_id, engine)
        return engine

    def _touch(self, learner_id: str, engine: QuizEngine) -> None:
        self._engines[learner_id] = (engine, self._clock())
        self._engines.move_to_end(learner_id)

    def expire(self) -> int:
        """Discard sessions idle longer than ``idle_timeout``. Returns how many were dropped."""
        cutoff = self._clock() - self.idle_timeout
        expired = [learner_id for learner_id, (_, touched) in self._engines.items() if touched <= cutoff]
        for learner_id in expired:
            engine, _ = self._engines.pop(learner_id)
            engine.discard()
            logger.info("Quiz session expired", extra={"learner_id": learner_id})
        return len(expired)

    def discard(self, learner_id: str) -> bool:
        """Drop the learner's session. Returns False if there was none."""
        entry = self._engines.pop(learner_id, None)
        if entry is None:
            return False
        entry[0].discard()
        logger.info("Quiz session abandoned", extra={"learner_id": learner_id})
        return True

    def clear(self) -> None:
        for engine, _ in self._engines.values():
            engine.discard()
        self._engines.clear()

    def __len__(self) -> int:
        return len(self._engines)


registry = SessionRegistry()
"""Process-wide registry used by the quiz router."""


def get_registry() -> SessionRegistry:
    """FastAPI dependency returning the process-wide registry."""
    return registry
