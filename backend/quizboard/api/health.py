"""Health check endpoint: attempt store reachability and loaded quiz content."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quizboard.db.session import get_db
from quizboard.services.quiz_content import QuizContentProvider, get_quiz_provider

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
def health(
    db: Session = Depends(get_db),
    provider: QuizContentProvider = Depends(get_quiz_provider),
):
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.warning("Health check: attempt store unreachable: %s", e)
        database = "unreachable"

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "service": "quizboard-backend",
        "database": database,
        "quizzes": len(provider.get_all_quizzes()),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
