"""Attempt lifecycle routes.

Flow:
  1. POST /api/attempts                 → start an attempt (question order fixed here)
  2. GET  /api/attempts/{id}/questions  → questions in the attempt's order
  3. POST /api/attempts/{id}/answers    → answer one question
  4. POST /api/attempts/{id}/complete   → score and freeze the attempt
  5. GET  /api/attempts/{id}            → attempt state
  6. GET  /api/attempts, /active        → the caller's attempts

Every route is scoped to the session user; someone else's attempt id is a 404.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from quizboard.api.deps import get_current_session
from quizboard.db.models import AttemptStatusEnum, QuizModeEnum
from quizboard.db.session import get_db
from quizboard.schemas.attempt import (
    AnswerRead,
    AnswerResult,
    AnswerSubmit,
    AttemptQuestionsRead,
    AttemptRead,
    AttemptResult,
    AttemptStart,
    AttemptStatus,
)
from quizboard.schemas.quiz import QuestionRead
from quizboard.schemas.session import SessionRead
from quizboard.services import attempts as attempt_service
from quizboard.services.leaderboard import invalidate_leaderboards
from quizboard.services.quiz_content import QuizContentProvider, get_quiz_provider
from quizboard.tasks import refresh_leaderboards

logger = logging.getLogger(__name__)
router = APIRouter()


def _schedule_leaderboard_refresh(quiz_id: str) -> None:
    invalidate_leaderboards(quiz_id)
    try:
        refresh_leaderboards.delay()
    except Exception as e:
        logger.warning("Could not enqueue leaderboard refresh (non-fatal): %s", e)


@router.post(
    "",
    response_model=AttemptRead,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def start_attempt(
    body: AttemptStart,
    session: SessionRead = Depends(get_current_session),
    db: Session = Depends(get_db),
    provider: QuizContentProvider = Depends(get_quiz_provider),
):
    """Start a quiz. Fails with 409 while another attempt at the same quiz is active."""
    quiz = provider.get_quiz_by_id(body.quiz_id)
    attempt = attempt_service.start_attempt(
        db, session.username, body.quiz_id, body.mode, quiz
    )
    return AttemptRead.model_validate(attempt)


@router.get("", response_model=list[AttemptRead], response_model_exclude_none=True)
def list_attempts(
    status_filter: AttemptStatus | None = Query(None, alias="status"),
    session: SessionRead = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List the caller's attempts, newest first, optionally filtered by status."""
    status_enum = AttemptStatusEnum(status_filter.value) if status_filter else None
    rows = attempt_service.list_attempts(db, session.username, status_enum)
    return [AttemptRead.model_validate(a) for a in rows]


@router.get(
    "/active", response_model=dict[str, AttemptRead], response_model_exclude_none=True
)
def get_active_attempts(
    session: SessionRead = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """The caller's active attempts keyed by quiz id."""
    active = attempt_service.get_active_attempts(db, session.username)
    return {quiz_id: AttemptRead.model_validate(a) for quiz_id, a in active.items()}


@router.get("/{attempt_id}", response_model=AttemptRead, response_model_exclude_none=True)
def get_attempt(
    attempt_id: uuid.UUID,
    session: SessionRead = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    attempt = attempt_service.get_attempt(db, attempt_id, session.username)
    return AttemptRead.model_validate(attempt)


@router.get(
    "/{attempt_id}/questions",
    response_model=AttemptQuestionsRead,
    response_model_exclude_none=True,
)
def get_attempt_questions(
    attempt_id: uuid.UUID,
    session: SessionRead = Depends(get_current_session),
    db: Session = Depends(get_db),
    provider: QuizContentProvider = Depends(get_quiz_provider),
):
    """Questions in this attempt's order; the answer key only once it is revealed."""
    attempt, questions = attempt_service.attempt_questions(
        db, provider, attempt_id, session.username
    )
    return AttemptQuestionsRead(
        attempt_id=attempt.id,
        status=AttemptStatus(attempt.status.value),
        questions=questions,
    )


@router.post(
    "/{attempt_id}/answers",
    response_model=AnswerResult,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def submit_answer(
    attempt_id: uuid.UUID,
    body: AnswerSubmit,
    session: SessionRead = Depends(get_current_session),
    db: Session = Depends(get_db),
    provider: QuizContentProvider = Depends(get_quiz_provider),
):
    """Answer one question. In learn mode the answer key comes back straight away."""
    attempt, answer = attempt_service.submit_answer(
        db,
        provider,
        attempt_id,
        body.question_id,
        body.selected_option_id,
        user_id=session.username,
    )

    review = None
    if attempt.mode == QuizModeEnum.LEARN:
        quiz = provider.get_quiz_by_id(attempt.quiz_id)
        question = quiz.get_question(body.question_id) if quiz else None
        if question is not None:
            review = QuestionRead.review(question)

    answered = len(attempt.answers)
    return AnswerResult(
        answer=AnswerRead.model_validate(answer),
        answered_count=answered,
        remaining_count=len(attempt.question_order) - answered,
        review=review,
    )


@router.post(
    "/{attempt_id}/complete",
    response_model=AttemptResult,
    response_model_exclude_none=True,
)
def complete_attempt(
    attempt_id: uuid.UUID,
    session: SessionRead = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Score and freeze the attempt. A second call fails with 409."""
    attempt, breakdown = attempt_service.complete_attempt(
        db, attempt_id, user_id=session.username
    )
    _schedule_leaderboard_refresh(attempt.quiz_id)
    return AttemptResult(attempt=AttemptRead.model_validate(attempt), breakdown=breakdown)
