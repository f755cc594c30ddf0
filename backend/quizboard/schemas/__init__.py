"""Pydantic schemas — re‑exported for convenience."""

from quizboard.schemas.common import CamelModel, ErrorResponse, SuccessResponse  # noqa: F401
from quizboard.schemas.session import SessionRead  # noqa: F401
from quizboard.schemas.quiz import (  # noqa: F401
    Difficulty,
    Option,
    Question,
    QuestionRead,
    Quiz,
    QuizMetadata,
    QuizRead,
    QuizSummary,
)
from quizboard.schemas.attempt import (  # noqa: F401
    AnswerRead,
    AnswerResult,
    AnswerSubmit,
    AttemptQuestionsRead,
    AttemptRead,
    AttemptResult,
    AttemptStart,
    AttemptStatus,
    QuizMode,
    ScoreBreakdown,
)
from quizboard.schemas.leaderboard import (  # noqa: F401
    Leaderboard,
    LeaderboardEntry,
    QuizLeaderboard,
    QuizLeaderboardEntry,
)
