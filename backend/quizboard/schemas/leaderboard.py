"""Leaderboard schemas: read-only projections of the completed attempts."""

from datetime import datetime

from pydantic import Field

from quizboard.schemas.common import CamelModel


class LeaderboardEntry(CamelModel):
    """Global leaderboard row."""

    username: str
    total_score: int = Field(ge=0)
    quizzes_completed: int = Field(ge=0)
    average_score: float = Field(ge=0)
    rank: int = Field(gt=0)


class Leaderboard(CamelModel):
    entries: list[LeaderboardEntry]
    generated_at: datetime


class QuizLeaderboardEntry(CamelModel):
    """Per-quiz leaderboard row (the user's best attempt)."""

    username: str
    score: int = Field(ge=0)
    max_score: int = Field(ge=0)
    percentage: float = Field(ge=0)
    completed_at: datetime
    rank: int = Field(gt=0)


class QuizLeaderboard(CamelModel):
    quiz_id: str
    quiz_title: str
    entries: list[QuizLeaderboardEntry]
    generated_at: datetime
