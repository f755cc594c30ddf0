"""API route package — imports all routers for main.py."""

from quizboard.api.health import router as health_router  # noqa: F401
from quizboard.api.quizzes import router as quizzes_router  # noqa: F401
from quizboard.api.attempts import router as attempts_router  # noqa: F401
from quizboard.api.leaderboard import router as leaderboard_router  # noqa: F401
