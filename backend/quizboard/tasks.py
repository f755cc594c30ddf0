"""Background tasks executed by Celery workers."""

import logging

from quizboard.celery_app import celery_app
from quizboard.db.session import get_session_factory
from quizboard.services.leaderboard import refresh_leaderboards as _refresh
from quizboard.services.quiz_content import get_quiz_provider

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="refresh_leaderboards", max_retries=3)
def refresh_leaderboards(self) -> dict:
    """Recompute every leaderboard snapshot from the completed attempts.

    Enqueued after each attempt completion and on explicit refresh requests.
    """
    factory = get_session_factory()
    db = factory()
    try:
        result = _refresh(db, get_quiz_provider())
        return {"success": True, **result}
    except Exception as exc:
        logger.exception("Leaderboard refresh failed")
        # Retry with exponential back-off (5s, 15s, 45s)
        raise self.retry(exc=exc, countdown=5 * (3**self.request.retries))
    finally:
        db.close()
