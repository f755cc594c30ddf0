"""Leaderboard aggregation over completed attempts.

Both boards are rebuilt from the full set of completed attempts on every
computation; nothing is updated incrementally. Ranking is standard
competition ranking ("1224"): equal sort values share a rank and the next
distinct value resumes at its 1-based position.

Global board
    totalScore       sum of every completed attempt's score
    quizzesCompleted number of distinct quizzes completed
    averageScore     totalScore / quizzesCompleted
    order            totalScore desc, username asc; ties on totalScore

Per-quiz board
    one row per user: their best attempt (highest percentage, earlier
    completion on a tie)
    order            percentage desc, completedAt asc; ties on percentage
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Protocol, Sequence, TypeVar

from sqlalchemy.orm import Session

from quizboard.core.errors import NotFoundError
from quizboard.db.models import Attempt, AttemptStatusEnum
from quizboard.schemas.leaderboard import (
    Leaderboard,
    LeaderboardEntry,
    QuizLeaderboard,
    QuizLeaderboardEntry,
)
from quizboard.services.cache import cache_delete, cache_get, cache_set
from quizboard.services.quiz_content import QuizContentProvider
from quizboard.services.scoring import percentage_of

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CACHE_PREFIX = "leaderboard"


class CompletedAttempt(Protocol):
    user_id: str
    quiz_id: str
    score: int | None
    max_score: int | None
    completed_at: datetime | None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_completed(attempt: CompletedAttempt) -> bool:
    return attempt.completed_at is not None and attempt.score is not None


def assign_ranks(items: Sequence[T], key: Callable[[T], Any]) -> list[int]:
    """Competition ranks for an already-sorted sequence, tied on ``key``."""
    ranks: list[int] = []
    previous: Any = None
    rank = 0
    for position, item in enumerate(items, start=1):
        value = key(item)
        if position == 1 or value != previous:
            rank = position
        ranks.append(rank)
        previous = value
    return ranks


def build_global_leaderboard(
    attempts: Iterable[CompletedAttempt], now: datetime | None = None
) -> Leaderboard:
    totals: dict[str, int] = defaultdict(int)
    quizzes: dict[str, set[str]] = defaultdict(set)
    for attempt in attempts:
        if not _is_completed(attempt):
            continue
        totals[attempt.user_id] += attempt.score
        quizzes[attempt.user_id].add(attempt.quiz_id)

    rows = sorted(totals.items(), key=lambda row: (-row[1], row[0]))
    ranks = assign_ranks(rows, key=lambda row: row[1])

    entries = [
        LeaderboardEntry(
            username=username,
            total_score=total,
            quizzes_completed=len(quizzes[username]),
            average_score=total / len(quizzes[username]),
            rank=rank,
        )
        for (username, total), rank in zip(rows, ranks)
    ]
    return Leaderboard(entries=entries, generated_at=now or _utcnow())


def build_quiz_leaderboard(
    quiz_id: str,
    quiz_title: str,
    attempts: Iterable[CompletedAttempt],
    now: datetime | None = None,
) -> QuizLeaderboard:
    def _pct(a: CompletedAttempt) -> float:
        return percentage_of(a.score, a.max_score or 0)

    def _best_first(a: CompletedAttempt) -> tuple[float, datetime]:
        return (-_pct(a), a.completed_at)

    best: dict[str, CompletedAttempt] = {}
    for attempt in attempts:
        if attempt.quiz_id != quiz_id or not _is_completed(attempt):
            continue
        current = best.get(attempt.user_id)
        if current is None or _best_first(attempt) < _best_first(current):
            best[attempt.user_id] = attempt

    rows = sorted(best.values(), key=lambda a: (-_pct(a), a.completed_at, a.user_id))
    ranks = assign_ranks(rows, key=_pct)

    entries = [
        QuizLeaderboardEntry(
            username=a.user_id,
            score=a.score,
            max_score=a.max_score or 0,
            percentage=_pct(a),
            completed_at=a.completed_at,
            rank=rank,
        )
        for a, rank in zip(rows, ranks)
    ]
    return QuizLeaderboard(
        quiz_id=quiz_id,
        quiz_title=quiz_title,
        entries=entries,
        generated_at=now or _utcnow(),
    )


# ── Store-backed boards ───────────────────────────────────────────────────────


def completed_attempts(db: Session, quiz_id: str | None = None) -> list[Attempt]:
    """Completed attempts visible at read time."""
    query = db.query(Attempt).filter(Attempt.status == AttemptStatusEnum.COMPLETED)
    if quiz_id is not None:
        query = query.filter(Attempt.quiz_id == quiz_id)
    return query.all()


def _global_key() -> dict[str, str]:
    return {"scope": "global"}


def _quiz_key(quiz_id: str) -> dict[str, str]:
    return {"scope": "quiz", "quizId": quiz_id}


def get_global_leaderboard(db: Session, *, use_cache: bool = True) -> Leaderboard:
    if use_cache:
        cached = cache_get(_CACHE_PREFIX, _global_key())
        if cached is not None:
            return Leaderboard.model_validate(cached)

    board = build_global_leaderboard(completed_attempts(db))
    cache_set(_CACHE_PREFIX, _global_key(), board.model_dump(mode="json", by_alias=True))
    return board


def get_quiz_leaderboard(
    db: Session,
    provider: QuizContentProvider,
    quiz_id: str,
    *,
    use_cache: bool = True,
) -> QuizLeaderboard:
    """Per-quiz board.

    Raises:
        NotFoundError: unknown quiz.
    """
    quiz = provider.get_quiz_by_id(quiz_id)
    if quiz is None:
        raise NotFoundError(f"Quiz '{quiz_id}' not found", details={"quizId": quiz_id})

    if use_cache:
        cached = cache_get(_CACHE_PREFIX, _quiz_key(quiz_id))
        if cached is not None:
            return QuizLeaderboard.model_validate(cached)

    board = build_quiz_leaderboard(quiz.id, quiz.title, completed_attempts(db, quiz.id))
    cache_set(_CACHE_PREFIX, _quiz_key(quiz_id), board.model_dump(mode="json", by_alias=True))
    return board


def invalidate_leaderboards(quiz_id: str) -> None:
    """Drop the snapshots a new completion for *quiz_id* makes stale."""
    cache_delete(_CACHE_PREFIX, _global_key())
    cache_delete(_CACHE_PREFIX, _quiz_key(quiz_id))


def refresh_leaderboards(db: Session, provider: QuizContentProvider) -> dict[str, Any]:
    """Recompute the global board and every quiz board, replacing cached snapshots."""
    attempts = completed_attempts(db)
    global_board = build_global_leaderboard(attempts)
    cache_set(_CACHE_PREFIX, _global_key(), global_board.model_dump(mode="json", by_alias=True))

    refreshed: list[str] = []
    for quiz in provider.get_all_quizzes():
        board = build_quiz_leaderboard(quiz.id, quiz.title, attempts)
        cache_set(_CACHE_PREFIX, _quiz_key(quiz.id), board.model_dump(mode="json", by_alias=True))
        refreshed.append(quiz.id)

    logger.info(
        "Leaderboards refreshed: %d users ranked, %d quiz boards",
        len(global_board.entries), len(refreshed),
    )
    return {"users": len(global_board.entries), "quizzes": refreshed}
