"""Leaderboard routes: read-only views over completed attempts."""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from quizboard.api.deps import get_current_session
from quizboard.db.session import get_db
from quizboard.schemas.common import SuccessResponse
from quizboard.schemas.leaderboard import Leaderboard, QuizLeaderboard
from quizboard.schemas.session import SessionRead
from quizboard.services import leaderboard as leaderboard_service
from quizboard.services.quiz_content import QuizContentProvider, get_quiz_provider
from quizboard.tasks import refresh_leaderboards

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=Leaderboard)
def get_global_leaderboard(
    limit: int | None = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Users ranked by total score across all completed attempts."""
    board = leaderboard_service.get_global_leaderboard(db)
    if limit is not None:
        board = board.model_copy(update={"entries": board.entries[:limit]})
    return board


@router.get("/quizzes/{quiz_id}", response_model=QuizLeaderboard)
def get_quiz_leaderboard(
    quiz_id: str,
    limit: int | None = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
    provider: QuizContentProvider = Depends(get_quiz_provider),
):
    """Each user's best attempt at one quiz, ranked by percentage."""
    board = leaderboard_service.get_quiz_leaderboard(db, provider, quiz_id)
    if limit is not None:
        board = board.model_copy(update={"entries": board.entries[:limit]})
    return board


@router.post(
    "/refresh",
    response_model=SuccessResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def request_refresh(session: SessionRead = Depends(get_current_session)):
    """Enqueue a full recomputation of every leaderboard snapshot."""
    try:
        task = refresh_leaderboards.delay()
    except Exception as e:
        logger.warning("Could not enqueue leaderboard refresh (non-fatal): %s", e)
        return SuccessResponse(
            success=False,
            message="Leaderboard refresh could not be queued; cached boards expire on their own",
        )
    logger.info("Leaderboard refresh requested by %s (task %s)", session.username, task.id)
    return SuccessResponse(message="Leaderboard refresh queued", data={"taskId": task.id})
