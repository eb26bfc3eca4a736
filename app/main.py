"""Main FastAPI application for Kana Study."""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from app.routers import user, quiz, kana
from app.db.init_db import init_db
from app.db.database import get_db
from app.logging_config import setup_logging, get_logger
from app.config import settings
from app.constants import DEFAULT_RATE_LIMIT
from app.services.session_registry import registry

# Set up logging on module import
log_level = settings.LOG_LEVEL if settings.LOG_LEVEL else None
setup_logging(log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup and drop live quizzes on shutdown.

    This function runs once when the application starts, performing:
    - Database table creation
    - Kana dataset seeding
    """
    logger.info("Application startup initiated")
    try:
        init_db()
        logger.info("Database initialization completed successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)
        raise

    yield

    registry.clear()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Kana Study API",
    description="""
    Self-study service for the two Japanese kana scripts.

    ## Features

    - **Study View**: Hiragana and katakana grouped by phonetic row, in gojūon order
    - **Flashcards**: Random character drill per script
    - **Quiz**: Every character of the chosen mode once, multiple choice or typed romaji
    - **Statistics**: Streaks and per-character accuracy kept across sessions
    - **Anonymous Sessions**: No account required, uses a browser cookie

    ## Quiz Flow

    1. **Bootstrap**: GET `/api/bootstrap` sets the learner cookie
    2. **Start Quiz**: POST `/api/quiz/start` with mode `hiragana`, `katakana` or `mixed`
    3. **Submit Answers**: POST `/api/quiz/answer`; the quiz advances by itself after a short delay
    4. **Poll State**: GET `/api/quiz/state` for the next question or completion
    5. **Reset Stats**: POST `/api/stats/reset` with `{"confirm": true}`
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_tags=[
        {
            "name": "user",
            "description": "Learner session and cumulative statistics"
        },
        {
            "name": "kana",
            "description": "Study view and flashcards"
        },
        {
            "name": "quiz",
            "description": "Quiz lifecycle: start, answer, state"
        },
        {
            "name": "health",
            "description": "Service health and readiness checks"
        }
    ]
)

# Add rate limiting
limiter = Limiter(key_func=get_remote_address, default_limits=[DEFAULT_RATE_LIMIT])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

logger.info(f"Rate limiting enabled: default {DEFAULT_RATE_LIMIT} per IP")

# Add CSRF protection for production
if settings.is_production:
    from starlette.middleware.sessions import SessionMiddleware
    app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY)
    logger.info("Session middleware enabled for CSRF protection")

# Include routers
app.include_router(user.router)
app.include_router(kana.router)
app.include_router(quiz.router)


@app.get("/health", tags=["health"])
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint with database verification.

    Returns:
        200 OK: Service is healthy and database is accessible
        503 Service Unavailable: Database connection failed
    """
    timestamp = datetime.now(timezone.utc).isoformat()

    try:
        db.execute(text("SELECT 1"))
        logger.debug("Health check passed")

        return {
            "status": "healthy",
            "database": "connected",
            "timestamp": timestamp,
            "environment": settings.ENVIRONMENT
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)

        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "database": "disconnected",
                "error": str(e),
                "timestamp": timestamp
            }
        )


@app.get("/readiness", tags=["health"])
async def readiness_check(db: Session = Depends(get_db)):
    """Readiness check for container orchestration.

    Returns:
        200 OK: Service is ready
        503 Service Unavailable: Service is not ready
    """
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ready", "timestamp": datetime.now(timezone.utc).isoformat()}
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "error": str(e)}
        )
