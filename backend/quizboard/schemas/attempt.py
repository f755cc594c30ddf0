"""Attempt schemas."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import Field

from quizboard.schemas.common import CamelModel
from quizboard.schemas.quiz import QuestionRead


class AttemptStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class QuizMode(str, Enum):
    NORMAL = "normal"
    LEARN = "learn"


class AttemptStart(CamelModel):
    """POST /api/attempts: start a quiz."""

    quiz_id: str = Field(min_length=1)
    mode: QuizMode = QuizMode.NORMAL


class AnswerSubmit(CamelModel):
    """POST /api/attempts/{id}/answers: answer one question."""

    question_id: str = Field(min_length=1)
    selected_option_id: str = Field(min_length=1)


class AnswerRead(CamelModel):
    question_id: str
    selected_option_id: str
    is_correct: bool
    answered_at: datetime


class AttemptRead(CamelModel):
    """A single quiz attempt. ``completedAt``/``score``/``maxScore`` only once completed."""

    id: uuid.UUID
    quiz_id: str
    user_id: str
    status: AttemptStatus
    mode: QuizMode
    question_order: list[str]
    answers: list[AnswerRead] = []
    started_at: datetime
    completed_at: datetime | None = None
    score: int | None = Field(default=None, ge=0)
    max_score: int | None = None


class ScoreBreakdown(CamelModel):
    total_questions: int
    correct_answers: int
    score: int | float
    max_score: int | float
    percentage: float


class AnswerResult(CamelModel):
    """Result of answering one question.

    ``review`` carries the answer key in learn mode and is None otherwise.
    """

    answer: AnswerRead
    answered_count: int
    remaining_count: int
    review: QuestionRead | None = None


class AttemptResult(CamelModel):
    """Completed attempt together with its score breakdown."""

    attempt: AttemptRead
    breakdown: ScoreBreakdown


class AttemptQuestionsRead(CamelModel):
    """Questions of an attempt, in the attempt's own order."""

    attempt_id: uuid.UUID
    status: AttemptStatus
    questions: list[QuestionRead]
