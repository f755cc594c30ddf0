"""Attempt lifecycle: start → answer* → complete.

States
------
``active``     – created by ``start_attempt``; grows by ``submit_answer``
``completed``  – terminal; set once by ``complete_attempt``, then frozen

Invariants kept here:
  - at most one active attempt per (user, quiz), checked and created under a
    per-(user, quiz) lock and backed by a partial unique index;
  - ``question_order`` is fixed at creation, seeded from the attempt id;
  - answers are append-only, one per question, with non-decreasing
    ``answered_at``; mutations of one attempt are serialised by a
    per-attempt lock plus ``SELECT … FOR UPDATE``;
  - completion flips the status with a conditional UPDATE, so a retried or
    concurrent completion fails instead of scoring twice.
"""

from __future__ import annotations

import enum
import json
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quizboard.config import settings
from quizboard.core.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    QuizboardError,
)
from quizboard.core.locks import attempt_locks, quiz_slot_locks
from quizboard.core.shuffle import shuffle_question_order
from quizboard.db.models import (
    Attempt,
    AttemptAnswer,
    AttemptStatusEnum,
    QuizModeEnum,
)
from quizboard.schemas.attempt import ScoreBreakdown
from quizboard.schemas.quiz import QuestionRead, Quiz
from quizboard.services.quiz_content import QuizContentProvider
from quizboard.services.scoring import calculate_score, grade_answer

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def question_order_seed(attempt_id: uuid.UUID) -> int:
    """Seed for an attempt's question order: the low 32 bits of its id."""
    return attempt_id.int & 0xFFFFFFFF


def _as_mode(mode: QuizModeEnum | enum.Enum | str) -> QuizModeEnum:
    return QuizModeEnum(getattr(mode, "value", mode))


@contextmanager
def _rollback_on_error(db: Session) -> Iterator[None]:
    """Release row locks taken by FOR UPDATE as soon as a domain error is raised."""
    try:
        yield
    except QuizboardError:
        db.rollback()
        raise


# ── Lookups ───────────────────────────────────────────────────────────────────


def find_active_attempt(db: Session, user_id: str, quiz_id: str) -> Attempt | None:
    return (
        db.query(Attempt)
        .filter(
            Attempt.user_id == user_id,
            Attempt.quiz_id == quiz_id,
            Attempt.status == AttemptStatusEnum.ACTIVE,
        )
        .first()
    )


def get_attempt(
    db: Session,
    attempt_id: uuid.UUID,
    user_id: str | None = None,
    *,
    for_update: bool = False,
) -> Attempt:
    """Load an attempt, optionally scoped to its owner.

    Raises:
        NotFoundError: no such attempt, or it belongs to someone else.
    """
    query = db.query(Attempt).filter(Attempt.id == attempt_id)
    if for_update:
        query = query.with_for_update()
    attempt = query.first()
    if attempt is None or (user_id is not None and attempt.user_id != user_id):
        raise NotFoundError(
            f"Attempt '{attempt_id}' not found", details={"attemptId": str(attempt_id)}
        )
    return attempt


def list_attempts(
    db: Session, user_id: str, status: AttemptStatusEnum | None = None
) -> list[Attempt]:
    """The user's attempts, newest first."""
    query = db.query(Attempt).filter(Attempt.user_id == user_id)
    if status is not None:
        query = query.filter(Attempt.status == status)
    return query.order_by(Attempt.started_at.desc()).all()


def get_active_attempts(db: Session, user_id: str) -> dict[str, Attempt]:
    """Map of quiz id → the user's active attempt for that quiz."""
    return {a.quiz_id: a for a in list_attempts(db, user_id, AttemptStatusEnum.ACTIVE)}


def _load_quiz(provider: QuizContentProvider, quiz_id: str) -> Quiz:
    quiz = provider.get_quiz_by_id(quiz_id)
    if quiz is None:
        raise NotFoundError(f"Quiz '{quiz_id}' not found", details={"quizId": quiz_id})
    return quiz


# ── Transitions ───────────────────────────────────────────────────────────────


def start_attempt(
    db: Session,
    user_id: str,
    quiz_id: str,
    mode: QuizModeEnum | enum.Enum | str,
    quiz: Quiz | None,
    *,
    now: datetime | None = None,
) -> Attempt:
    """Create the user's active attempt for *quiz*.

    Raises:
        NotFoundError: *quiz* is missing or is not the quiz named by *quiz_id*.
        ConflictError: the user already has an active attempt for this quiz.
    """
    if quiz is None or quiz.id != quiz_id:
        raise NotFoundError(f"Quiz '{quiz_id}' not found", details={"quizId": quiz_id})

    with quiz_slot_locks.hold((user_id, quiz_id)):
        existing = find_active_attempt(db, user_id, quiz_id)
        if existing is not None:
            raise ConflictError(
                f"An active attempt already exists for quiz '{quiz_id}'",
                details={"quizId": quiz_id, "attemptId": str(existing.id)},
            )

        attempt_id = uuid.uuid4()
        order = shuffle_question_order(quiz.question_ids, question_order_seed(attempt_id))
        attempt = Attempt(
            id=attempt_id,
            quiz_id=quiz_id,
            user_id=user_id,
            status=AttemptStatusEnum.ACTIVE,
            mode=_as_mode(mode),
            question_order_json=json.dumps(order),
            started_at=now or _utcnow(),
        )
        db.add(attempt)
        try:
            db.commit()
        except IntegrityError as e:
            # Another worker won the race between our check and insert.
            db.rollback()
            raise ConflictError(
                f"An active attempt already exists for quiz '{quiz_id}'",
                details={"quizId": quiz_id},
            ) from e
        db.refresh(attempt)

    logger.info(
        "Attempt %s started: user=%s quiz=%s mode=%s",
        attempt.id, user_id, quiz_id, attempt.mode.value,
    )
    return attempt


def submit_answer(
    db: Session,
    provider: QuizContentProvider,
    attempt_id: uuid.UUID,
    question_id: str,
    selected_option_id: str,
    *,
    user_id: str | None = None,
    now: datetime | None = None,
) -> tuple[Attempt, AttemptAnswer]:
    """Record an answer on an active attempt. Does not change its status.

    Raises:
        NotFoundError: unknown attempt, question not in this attempt, or the
            question was already answered.
        InvalidStateError: the attempt is completed.
        ValidationError: the option does not belong to the question.
    """
    with attempt_locks.hold(attempt_id), _rollback_on_error(db):
        attempt = get_attempt(db, attempt_id, user_id, for_update=True)
        if attempt.is_completed:
            raise InvalidStateError(
                "Cannot answer a completed attempt",
                details={"attemptId": str(attempt_id), "status": attempt.status.value},
            )
        if question_id not in attempt.question_order:
            raise NotFoundError(
                f"Question '{question_id}' is not part of this attempt",
                details={"attemptId": str(attempt_id), "questionId": question_id},
            )
        if any(a.question_id == question_id for a in attempt.answers):
            raise NotFoundError(
                f"Question '{question_id}' has already been answered",
                details={
                    "attemptId": str(attempt_id),
                    "questionId": question_id,
                    "reason": "already_answered",
                },
            )

        quiz = _load_quiz(provider, attempt.quiz_id)
        question = quiz.get_question(question_id)
        if question is None:
            raise NotFoundError(
                f"Question '{question_id}' not found in quiz '{quiz.id}'",
                details={"quizId": quiz.id, "questionId": question_id},
            )
        is_correct = grade_answer(question, selected_option_id)

        answered_at = now or _utcnow()
        if attempt.answers and answered_at < attempt.answers[-1].answered_at:
            answered_at = attempt.answers[-1].answered_at

        answer = AttemptAnswer(
            question_id=question_id,
            selected_option_id=selected_option_id,
            is_correct=is_correct,
            answered_at=answered_at,
            position=len(attempt.answers),
        )
        attempt.answers.append(answer)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise NotFoundError(
                f"Question '{question_id}' has already been answered",
                details={
                    "attemptId": str(attempt_id),
                    "questionId": question_id,
                    "reason": "already_answered",
                },
            ) from e
        db.refresh(attempt)

    logger.debug(
        "Attempt %s: answered %s with %s (correct=%s)",
        attempt_id, question_id, selected_option_id, is_correct,
    )
    return attempt, answer


def complete_attempt(
    db: Session,
    attempt_id: uuid.UUID,
    *,
    user_id: str | None = None,
    now: datetime | None = None,
) -> tuple[Attempt, ScoreBreakdown]:
    """Score and freeze an attempt. Unanswered questions simply do not score.

    Raises:
        NotFoundError: unknown attempt.
        InvalidStateError: the attempt is already completed.
    """
    points = settings.POINTS_PER_QUESTION
    with attempt_locks.hold(attempt_id), _rollback_on_error(db):
        attempt = get_attempt(db, attempt_id, user_id, for_update=True)
        if attempt.is_completed:
            raise InvalidStateError(
                "Attempt is already completed",
                details={"attemptId": str(attempt_id), "status": attempt.status.value},
            )

        breakdown = calculate_score(attempt.answers, points)
        result = db.execute(
            update(Attempt)
            .where(Attempt.id == attempt_id, Attempt.status == AttemptStatusEnum.ACTIVE)
            .values(
                status=AttemptStatusEnum.COMPLETED,
                completed_at=now or _utcnow(),
                score=int(breakdown.score),
                max_score=len(attempt.question_order) * points,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise InvalidStateError(
                "Attempt is already completed", details={"attemptId": str(attempt_id)}
            )
        db.commit()
        db.refresh(attempt)

    logger.info(
        "Attempt %s completed: user=%s quiz=%s score=%s/%s",
        attempt.id, attempt.user_id, attempt.quiz_id, attempt.score, attempt.max_score,
    )
    return attempt, breakdown


# ── Views ─────────────────────────────────────────────────────────────────────


def attempt_questions(
    db: Session,
    provider: QuizContentProvider,
    attempt_id: uuid.UUID,
    user_id: str | None = None,
) -> tuple[Attempt, list[QuestionRead]]:
    """The quiz's questions in this attempt's order.

    Answer keys are revealed once the attempt is completed, and in learn mode
    for questions that have already been answered.
    """
    attempt = get_attempt(db, attempt_id, user_id)
    quiz = _load_quiz(provider, attempt.quiz_id)
    answered = {a.question_id for a in attempt.answers}
    learn = attempt.mode == QuizModeEnum.LEARN

    questions: list[QuestionRead] = []
    for question_id in attempt.question_order:
        question = quiz.get_question(question_id)
        if question is None:
            logger.warning(
                "Question %s of attempt %s no longer exists in quiz %s",
                question_id, attempt.id, quiz.id,
            )
            continue
        if attempt.is_completed or (learn and question_id in answered):
            questions.append(QuestionRead.review(question))
        else:
            questions.append(QuestionRead.public(question))
    return attempt, questions
