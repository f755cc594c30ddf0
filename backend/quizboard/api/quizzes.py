"""Quiz content routes (read-only)."""

from fastapi import APIRouter, Depends

from quizboard.core.errors import NotFoundError
from quizboard.schemas.quiz import QuestionRead, QuizRead, QuizSummary
from quizboard.services.quiz_content import QuizContentProvider, get_quiz_provider

router = APIRouter()


@router.get("", response_model=list[QuizSummary])
def list_quizzes(provider: QuizContentProvider = Depends(get_quiz_provider)):
    """All quizzes, without their questions."""
    return provider.get_quiz_summaries()


@router.get("/{quiz_id}", response_model=QuizRead, response_model_exclude_none=True)
def get_quiz(quiz_id: str, provider: QuizContentProvider = Depends(get_quiz_provider)):
    """A single quiz with its questions in authoring order. The answer key is never included."""
    quiz = provider.get_quiz_by_id(quiz_id)
    if quiz is None:
        raise NotFoundError(f"Quiz '{quiz_id}' not found", details={"quizId": quiz_id})
    return QuizRead(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        metadata=quiz.metadata,
        questions=[QuestionRead.public(q) for q in quiz.questions],
        created_at=quiz.created_at,
        updated_at=quiz.updated_at,
    )
