"""Scoring for multiple-choice attempts.

Grading is an exact option-id match against the question's answer key.
Scoring turns a list of graded answers into a breakdown:

    score      = correct answers × points per question
    maxScore   = answers × points per question
    percentage = score / maxScore × 100   (0 when nothing was answered)
"""

from __future__ import annotations

from typing import Protocol, Sequence

from quizboard.core.errors import ValidationError
from quizboard.schemas.attempt import ScoreBreakdown
from quizboard.schemas.quiz import Question


class GradedAnswer(Protocol):
    is_correct: bool


def grade_answer(question: Question, selected_option_id: str) -> bool:
    """Return True if *selected_option_id* is the question's correct option.

    Raises:
        ValidationError: the option does not belong to this question.
    """
    if not question.has_option(selected_option_id):
        raise ValidationError(
            f"Option '{selected_option_id}' is not an option of question '{question.id}'",
            details={"questionId": question.id, "selectedOptionId": selected_option_id},
        )
    return selected_option_id == question.correct_option_id


def calculate_score(
    answers: Sequence[GradedAnswer],
    points_per_question: int | float = 1,
) -> ScoreBreakdown:
    """Compute the score breakdown for *answers* without touching them."""
    if points_per_question <= 0:
        raise ValidationError(
            "points_per_question must be positive",
            details={"pointsPerQuestion": points_per_question},
        )

    total_questions = len(answers)
    correct_answers = sum(1 for a in answers if a.is_correct)
    score = correct_answers * points_per_question
    max_score = total_questions * points_per_question
    percentage = 0.0 if total_questions == 0 else (score / max_score) * 100

    return ScoreBreakdown(
        total_questions=total_questions,
        correct_answers=correct_answers,
        score=score,
        max_score=max_score,
        percentage=percentage,
    )


def percentage_of(score: int | float, max_score: int | float) -> float:
    """Same formula as ``calculate_score`` for a stored score / max pair."""
    if not max_score:
        return 0.0
    return (score / max_score) * 100
