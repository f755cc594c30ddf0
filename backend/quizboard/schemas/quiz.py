"""Quiz schemas.

``Quiz`` is the contract for quiz JSON files: the loader validates every
file against it, so an instance is always a well-formed, immutable quiz.
The ``*Read`` variants are the public projections that never carry the
answer key.
"""

from datetime import datetime
from enum import Enum

from pydantic import Field, model_validator

from quizboard.schemas.common import CamelModel


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Option(CamelModel):
    model_config = {"frozen": True}

    id: str
    text: str


class Question(CamelModel):
    model_config = {"frozen": True}

    id: str
    text: str
    options: list[Option] = Field(min_length=2)
    correct_option_id: str
    explanation: str | None = None
    concept_explanation: str | None = None  # shown in learn mode

    @model_validator(mode="after")
    def _correct_option_exists(self) -> "Question":
        option_ids = [o.id for o in self.options]
        if len(set(option_ids)) != len(option_ids):
            raise ValueError(f"question '{self.id}' has duplicate option ids")
        if self.correct_option_id not in option_ids:
            raise ValueError(
                f"question '{self.id}': correctOptionId '{self.correct_option_id}' "
                "is not one of its options"
            )
        return self

    def has_option(self, option_id: str) -> bool:
        return any(o.id == option_id for o in self.options)


class QuizMetadata(CamelModel):
    model_config = {"frozen": True}

    difficulty: Difficulty
    estimated_minutes: int = Field(gt=0)
    tags: list[str] = []


class Quiz(CamelModel):
    """Full quiz including the answer key."""

    model_config = {"frozen": True}

    id: str
    title: str
    description: str
    questions: list[Question] = Field(min_length=1)
    metadata: QuizMetadata
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _unique_question_ids(self) -> "Quiz":
        ids = self.question_ids
        if len(set(ids)) != len(ids):
            raise ValueError(f"quiz '{self.id}' has duplicate question ids")
        return self

    @property
    def question_ids(self) -> list[str]:
        return [q.id for q in self.questions]

    def get_question(self, question_id: str) -> Question | None:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None


class QuizSummary(CamelModel):
    """Quiz listing entry without question data."""

    id: str
    title: str
    description: str
    metadata: QuizMetadata
    question_count: int


class QuestionRead(CamelModel):
    """Question as shown to a player.

    The answer-key fields stay None (and are dropped from responses) until
    the attempt is completed, or straight away in learn mode.
    """

    id: str
    text: str
    options: list[Option]
    correct_option_id: str | None = None
    explanation: str | None = None
    concept_explanation: str | None = None

    @classmethod
    def public(cls, question: Question) -> "QuestionRead":
        return cls(id=question.id, text=question.text, options=list(question.options))

    @classmethod
    def review(cls, question: Question) -> "QuestionRead":
        return cls(
            id=question.id,
            text=question.text,
            options=list(question.options),
            correct_option_id=question.correct_option_id,
            explanation=question.explanation,
            concept_explanation=question.concept_explanation,
        )


class QuizRead(CamelModel):
    """Public quiz view."""

    id: str
    title: str
    description: str
    metadata: QuizMetadata
    questions: list[QuestionRead]
    created_at: datetime
    updated_at: datetime
