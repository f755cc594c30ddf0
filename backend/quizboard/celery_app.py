"""Celery application for leaderboard snapshot refreshes."""

from celery import Celery

from quizboard.config import settings

celery_app = Celery(
    "quizboard",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["quizboard.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Refreshes are idempotent full recomputations
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_routes={"refresh_leaderboards": {"queue": "leaderboards"}},
    # Stale refresh messages are dropped after one cache TTL
    task_default_expires=settings.LEADERBOARD_CACHE_TTL_SECONDS,
    result_expires=3600,
    # Eager by default so local runs need no worker.
    # Set CELERY_TASK_ALWAYS_EAGER=false in .env when running a real worker.
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_eager_propagates=True,
)

if settings.LEADERBOARD_REFRESH_INTERVAL_SECONDS > 0:
    celery_app.conf.beat_schedule = {
        "refresh-leaderboards": {
            "task": "refresh_leaderboards",
            "schedule": float(settings.LEADERBOARD_REFRESH_INTERVAL_SECONDS),
        },
    }
