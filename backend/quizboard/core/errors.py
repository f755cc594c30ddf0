"""Domain error taxonomy for the attempt & scoring engine.

Every error carries a stable ``error_code`` and the HTTP status that the
request handlers in ``quizboard.main`` map it to. None of them is fatal to
the process, and the engine never retries on its own.
"""

from typing import Any

from fastapi import status


class QuizboardError(Exception):
    """Base class for all domain errors."""

    error_code = "quizboard_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConflictError(QuizboardError):
    """An active attempt already exists for this user + quiz."""

    error_code = "attempt_conflict"
    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(QuizboardError):
    """Operation is not valid for the attempt's current status."""

    error_code = "invalid_attempt_state"
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(QuizboardError):
    """Unknown attempt, quiz, question or option reference."""

    error_code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(QuizboardError):
    """Malformed input that passed the transport layer, e.g. a foreign option id."""

    error_code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
