"""Quiz operation endpoints."""
import logging
from fastapi import APIRouter, Depends, Request, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session
from app.db.database import get_db
from app.db.init_db import load_characters
from app.routers.user import require_learner, format_stats
from app.services.quiz_engine import QuizEngine, QuizMode, EmptyPoolError, InvalidTransitionError
from app.services.scheduler import FeedbackScheduler, AsyncioScheduler
from app.services.session_registry import SessionRegistry, get_registry
from app.services.stats import StatsStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quiz", tags=["quiz"])


class StartQuizRequest(BaseModel):
    """Request body for starting a quiz."""
    mode: QuizMode = QuizMode.HIRAGANA


class AnswerSubmission(BaseModel):
    """Request body for answer submission, typed or tapped."""
    answer: str = Field(..., min_length=1, max_length=100, description="Typed romaji or the chosen option")

    @field_validator('answer')
    @classmethod
    def validate_answer(cls, v):
        """Validate that answer is not empty or whitespace."""
        if not v or v.strip() == '':
            raise ValueError('answer cannot be empty')
        return v.strip()


def get_scheduler() -> FeedbackScheduler:
    """FastAPI dependency for the feedback-delay scheduler."""
    return AsyncioScheduler()


def get_engine(learner_id: str, sessions: SessionRegistry) -> QuizEngine:
    engine = sessions.get(learner_id)
    if engine is None:
        raise HTTPException(status_code=404, detail="No quiz in progress")
    return engine


@router.post("/start")
async def start_quiz(
    quiz_request: StartQuizRequest,
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionRegistry = Depends(get_registry),
    scheduler: FeedbackScheduler = Depends(get_scheduler)
):
    """
    Start a new quiz over every character of the chosen mode.

    Any quiz the learner had running is discarded.

    Returns:
    - session snapshot with the first question
    - 404 if the mode has no characters
    - 500 if the stored statistics cannot be read
    """
    learner_id = require_learner(request, db)

    engine = QuizEngine(load_characters(db), scheduler=scheduler, learner_id=learner_id)
    try:
        engine.start(quiz_request.mode, StatsStore(db, learner_id))
    except EmptyPoolError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        db.rollback()
        logger.error(f"Error starting quiz: {e}", exc_info=True, extra={"learner_id": learner_id})
        raise HTTPException(status_code=500, detail=f"Error starting quiz: {str(e)}")

    sessions.replace(learner_id, engine)
    return engine.snapshot()


@router.get("/state")
async def get_quiz_state(
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionRegistry = Depends(get_registry)
):
    """
    Get the current state of the learner's quiz.

    Returns:
    - state (in_progress, feedback, completed)
    - current question and options
    - progress (position / total)
    - result of the last answer
    """
    learner_id = require_learner(request, db)
    return get_engine(learner_id, sessions).snapshot()


@router.post("/answer")
async def submit_answer(
    answer: AnswerSubmission,
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionRegistry = Depends(get_registry)
):
    """
    Submit an answer to the live question.

    Updates the stored statistics once per question. A second submission
    while feedback is shown is not counted and comes back with
    ``already_answered: true``. The quiz advances by itself after the
    feedback delay.
    """
    learner_id = require_learner(request, db)
    engine = get_engine(learner_id, sessions)
    store = StatsStore(db, learner_id)

    try:
        result = engine.submit_answer(answer.answer, store)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        db.rollback()
        logger.error(f"Error submitting answer: {e}", exc_info=True, extra={"learner_id": learner_id})
        raise HTTPException(status_code=500, detail=f"Error submitting answer: {str(e)}")

    return {
        **result.to_dict(),
        "already_answered": not result.accepted,
        "state": engine.state.value,
        "progress": engine.progress,
        "stats": format_stats(store.load())
    }


@router.delete("")
async def abandon_quiz(
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionRegistry = Depends(get_registry)
):
    """Discard the learner's quiz. Stored statistics are kept."""
    learner_id = require_learner(request, db)
    return {"discarded": sessions.discard(learner_id)}
