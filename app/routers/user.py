"""Learner bootstrap and quiz statistics endpoints."""
import uuid
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Response, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session
from app.db.database import get_db
from app.db.models import Learner
from app.services.stats import StatsStore, QuizStats, ResetNotConfirmedError, reset_stats
from app.constants import COOKIE_NAME, LEARNER_ID_PREFIX
from app.config import settings

router = APIRouter(prefix="/api", tags=["user"])


class ResetStatsRequest(BaseModel):
    """Request body for wiping statistics. ``confirm`` must be true."""
    confirm: bool = False


def get_or_create_learner(request: Request, response: Response, db: Session) -> str:
    """
    Get or create anonymous learner based on cookie.

    Args:
        request: FastAPI request
        response: FastAPI response (to set cookie)
        db: Database session

    Returns:
        Learner id
    """
    learner_id = request.cookies.get(COOKIE_NAME)

    if learner_id:
        learner = db.query(Learner).filter(Learner.id == learner_id).first()
        if learner:
            learner.last_active_at = datetime.now(timezone.utc)
            db.commit()
            return learner_id

    learner_id = f"{LEARNER_ID_PREFIX}{uuid.uuid4()}"
    db.add(Learner(id=learner_id))
    db.commit()

    response.set_cookie(
        key=COOKIE_NAME,
        value=learner_id,
        max_age=settings.COOKIE_MAX_AGE,
        httponly=settings.COOKIE_HTTPONLY,
        samesite=settings.COOKIE_SAMESITE,
        secure=settings.COOKIE_SECURE
    )

    return learner_id


def require_learner(request: Request, db: Session) -> str:
    """Return the learner id from the cookie, or 401 if it is missing or unknown."""
    learner_id = request.cookies.get(COOKIE_NAME)
    if not learner_id:
        raise HTTPException(status_code=401, detail="No learner session found")

    exists = db.query(Learner.id).filter(Learner.id == learner_id).first()
    if not exists:
        raise HTTPException(status_code=401, detail="Unknown learner session")
    return learner_id


def format_stats(stats: QuizStats) -> dict:
    """Stats document plus derived accuracy for display."""
    accuracy = stats.accuracy
    return {
        **stats.to_document(),
        "accuracy": accuracy,
        "accuracyPercentage": round(accuracy * 100, 1) if accuracy is not None else 0,
    }


@router.get("/bootstrap")
async def bootstrap(
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Bootstrap learner session and return initial data.

    Returns:
    - learner id (cookie is set on first visit)
    - cumulative quiz statistics
    """
    learner_id = get_or_create_learner(request, response, db)
    stats = StatsStore(db, learner_id).load()

    return {
        "learner_id": learner_id,
        "stats": format_stats(stats)
    }


@router.get("/stats")
async def get_stats(request: Request, db: Session = Depends(get_db)):
    """Current cumulative statistics, zeroed defaults if none recorded yet."""
    learner_id = require_learner(request, db)
    return format_stats(StatsStore(db, learner_id).load())


@router.post("/stats/reset")
async def reset_learner_stats(
    reset_request: ResetStatsRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Wipe all statistics, including per-character history.

    Requires ``{"confirm": true}``. A running quiz keeps going; only the
    stored statistics are replaced.
    """
    learner_id = require_learner(request, db)

    try:
        stats = reset_stats(StatsStore(db, learner_id), confirmed=reset_request.confirm)
    except ResetNotConfirmedError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return format_stats(stats)
