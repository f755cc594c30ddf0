"""Quiz content provider: validated quiz JSON files behind a TTL cache.

Each ``<quizId>.json`` file under ``QUIZ_DATA_DIR`` must match the ``Quiz``
schema. Loaded quizzes are kept in a process-wide read-through cache keyed
by (data directory, quiz id); entries expire after
``QUIZ_CACHE_TTL_SECONDS`` or when ``invalidate()`` is called.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock

from cachetools import TTLCache
from pydantic import ValidationError as PydanticValidationError

from quizboard.config import settings
from quizboard.core.errors import ValidationError
from quizboard.schemas.quiz import Quiz, QuizSummary

logger = logging.getLogger(__name__)

_ALL_QUIZZES = "*"


class QuizContentProvider:
    """Read-only access to quiz content stored as JSON files."""

    def __init__(self, data_dir: str | Path, ttl_seconds: int = 300, maxsize: int = 512):
        self._dir = Path(data_dir)
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds)
        self._lock = Lock()

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _key(self, quiz_id: str) -> tuple[str, str]:
        return (str(self._dir.resolve()), quiz_id)

    def _load_file(self, path: Path) -> Quiz:
        """Parse and validate one quiz file.

        Raises:
            ValidationError: the file is not valid JSON or not a valid quiz.
        """
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            quiz = Quiz.model_validate(data)
        except json.JSONDecodeError as e:
            raise ValidationError(
                f"Quiz file '{path.name}' is not valid JSON",
                details={"file": path.name, "error": str(e)},
            ) from e
        except PydanticValidationError as e:
            raise ValidationError(
                f"Quiz file '{path.name}' does not match the quiz schema",
                details={"file": path.name, "errors": e.errors(include_url=False, include_context=False)},
            ) from e

        if quiz.id != path.stem:
            raise ValidationError(
                f"Quiz file '{path.name}' declares id '{quiz.id}'",
                details={"file": path.name, "quizId": quiz.id},
            )
        return quiz

    def get_quiz_by_id(self, quiz_id: str) -> Quiz | None:
        """Return the quiz, or None if no such quiz file exists."""
        if not quiz_id or "/" in quiz_id or "\\" in quiz_id or quiz_id.startswith("."):
            return None

        key = self._key(quiz_id)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        path = self._dir / f"{quiz_id}.json"
        if not path.is_file():
            return None

        quiz = self._load_file(path)
        with self._lock:
            self._cache[key] = quiz
        logger.debug("Loaded quiz %s from %s", quiz_id, path)
        return quiz

    def get_all_quizzes(self) -> list[Quiz]:
        """Return every valid quiz, sorted by id. Invalid files are logged and skipped."""
        key = self._key(_ALL_QUIZZES)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        if not self._dir.is_dir():
            logger.warning("Quiz data directory %s does not exist", self._dir)
            return []

        quizzes: list[Quiz] = []
        for path in sorted(self._dir.glob("*.json")):
            try:
                quizzes.append(self._load_file(path))
            except ValidationError as e:
                logger.error("Skipping quiz file %s: %s", path.name, e.message)

        with self._lock:
            self._cache[key] = tuple(quizzes)
            for quiz in quizzes:
                self._cache[self._key(quiz.id)] = quiz
        return quizzes

    def get_quiz_summaries(self) -> list[QuizSummary]:
        return [
            QuizSummary(
                id=q.id,
                title=q.title,
                description=q.description,
                metadata=q.metadata,
                question_count=len(q.questions),
            )
            for q in self.get_all_quizzes()
        ]

    def invalidate(self) -> None:
        """Drop every cached quiz so the next read goes back to disk."""
        with self._lock:
            self._cache.clear()
        logger.info("Quiz content cache invalidated")


_instance: QuizContentProvider | None = None


def get_quiz_provider() -> QuizContentProvider:
    """FastAPI dependency: the process-wide quiz content provider."""
    global _instance
    if _instance is None:
        _instance = QuizContentProvider(
            settings.QUIZ_DATA_DIR, ttl_seconds=settings.QUIZ_CACHE_TTL_SECONDS
        )
        logger.info("Quiz content provider initialised → %s", settings.QUIZ_DATA_DIR)
    return _instance
