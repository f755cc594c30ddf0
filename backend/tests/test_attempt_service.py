"""Service-level tests for the attempt state machine."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from quizboard.core.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from quizboard.core.shuffle import shuffle_question_order
from quizboard.db.models import Attempt, AttemptStatusEnum, QuizModeEnum
from quizboard.schemas.attempt import QuizMode
from quizboard.services import attempts as svc

T0 = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def quiz(provider):
    return provider.get_quiz_by_id("quiz-1")


def _start(db, quiz, user="alice", mode=QuizMode.NORMAL):
    return svc.start_attempt(db, user, quiz.id, mode, quiz, now=T0)


# ── StartAttempt ───────────────────────────────────────────────────────────────


class TestStartAttempt:
    def test_creates_active_attempt(self, db, quiz):
        attempt = _start(db, quiz)
        assert attempt.status == AttemptStatusEnum.ACTIVE
        assert attempt.mode == QuizModeEnum.NORMAL
        assert attempt.user_id == "alice"
        assert attempt.answers == []
        assert attempt.completed_at is None
        assert attempt.score is None
        assert attempt.started_at == T0

    def test_question_order_is_seeded_permutation(self, db, quiz):
        attempt = _start(db, quiz)
        assert sorted(attempt.question_order) == sorted(quiz.question_ids)
        expected = shuffle_question_order(quiz.question_ids, svc.question_order_seed(attempt.id))
        assert attempt.question_order == expected

    def test_learn_mode_from_string(self, db, quiz):
        attempt = svc.start_attempt(db, "alice", quiz.id, "learn", quiz)
        assert attempt.mode == QuizModeEnum.LEARN

    def test_second_active_attempt_conflicts(self, db, quiz):
        first = _start(db, quiz)
        with pytest.raises(ConflictError) as exc:
            _start(db, quiz)
        assert exc.value.details["attemptId"] == str(first.id)
        assert db.query(Attempt).count() == 1

    def test_other_user_or_quiz_not_blocked(self, db, provider, quiz):
        _start(db, quiz)
        _start(db, quiz, user="bob")
        other = provider.get_quiz_by_id("quiz-2")
        svc.start_attempt(db, "alice", other.id, QuizMode.NORMAL, other)
        assert db.query(Attempt).count() == 3

    def test_restart_after_completion(self, db, quiz):
        first = _start(db, quiz)
        svc.complete_attempt(db, first.id)
        second = _start(db, quiz)
        assert second.id != first.id
        assert second.status == AttemptStatusEnum.ACTIVE

    def test_missing_quiz(self, db):
        with pytest.raises(NotFoundError):
            svc.start_attempt(db, "alice", "nope", QuizMode.NORMAL, None)

    def test_mismatched_quiz(self, db, quiz):
        with pytest.raises(NotFoundError):
            svc.start_attempt(db, "alice", "quiz-2", QuizMode.NORMAL, quiz)

    def test_partial_index_enforced_by_database(self, db):
        def _row():
            return Attempt(
                id=uuid.uuid4(),
                quiz_id="quiz-1",
                user_id="alice",
                status=AttemptStatusEnum.ACTIVE,
                mode=QuizModeEnum.NORMAL,
                question_order_json="[]",
                started_at=T0,
            )

        db.add(_row())
        db.commit()
        db.add(_row())
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()


# ── SubmitAnswer ───────────────────────────────────────────────────────────────


class TestSubmitAnswer:
    def test_records_answer(self, db, provider, quiz):
        attempt = _start(db, quiz)
        qid = attempt.question_order[0]
        attempt, answer = svc.submit_answer(db, provider, attempt.id, qid, "b", now=T0)
        assert answer.is_correct is True
        assert answer.question_id == qid
        assert attempt.status == AttemptStatusEnum.ACTIVE
        assert [a.question_id for a in attempt.answers] == [qid]

    def test_incorrect_answer(self, db, provider, quiz):
        attempt = _start(db, quiz)
        _, answer = svc.submit_answer(db, provider, attempt.id, "q1", "a")
        assert answer.is_correct is False

    def test_answers_keep_submission_order(self, db, provider, quiz):
        attempt = _start(db, quiz)
        for qid in ["q3", "q1", "q5"]:
            attempt, _ = svc.submit_answer(db, provider, attempt.id, qid, "b")
        assert [a.question_id for a in attempt.answers] == ["q3", "q1", "q5"]

    def test_answered_at_never_decreases(self, db, provider, quiz):
        attempt = _start(db, quiz)
        svc.submit_answer(db, provider, attempt.id, "q1", "b", now=T0 + timedelta(minutes=5))
        attempt, answer = svc.submit_answer(db, provider, attempt.id, "q2", "b", now=T0)
        assert answer.answered_at == T0 + timedelta(minutes=5)
        times = [a.answered_at for a in attempt.answers]
        assert times == sorted(times)

    def test_duplicate_answer_rejected(self, db, provider, quiz):
        attempt = _start(db, quiz)
        svc.submit_answer(db, provider, attempt.id, "q1", "b")
        with pytest.raises(NotFoundError) as exc:
            svc.submit_answer(db, provider, attempt.id, "q1", "a")
        assert exc.value.details["reason"] == "already_answered"
        reloaded = svc.get_attempt(db, attempt.id)
        assert len(reloaded.answers) == 1
        assert reloaded.answers[0].selected_option_id == "b"

    def test_unknown_question(self, db, provider, quiz):
        attempt = _start(db, quiz)
        with pytest.raises(NotFoundError):
            svc.submit_answer(db, provider, attempt.id, "q99", "b")

    def test_foreign_option(self, db, provider, quiz):
        attempt = _start(db, quiz)
        with pytest.raises(ValidationError):
            svc.submit_answer(db, provider, attempt.id, "q1", "zzz")
        assert svc.get_attempt(db, attempt.id).answers == []

    def test_unknown_attempt(self, db, provider):
        with pytest.raises(NotFoundError):
            svc.submit_answer(db, provider, uuid.uuid4(), "q1", "b")

    def test_other_users_attempt_is_not_found(self, db, provider, quiz):
        attempt = _start(db, quiz)
        with pytest.raises(NotFoundError):
            svc.submit_answer(db, provider, attempt.id, "q1", "b", user_id="mallory")

    def test_completed_attempt_rejects_answers(self, db, provider, quiz):
        attempt = _start(db, quiz)
        svc.complete_attempt(db, attempt.id)
        with pytest.raises(InvalidStateError):
            svc.submit_answer(db, provider, attempt.id, "q1", "b")
        assert svc.get_attempt(db, attempt.id).answers == []


# ── CompleteAttempt ────────────────────────────────────────────────────────────


class TestCompleteAttempt:
    def test_scores_and_freezes(self, db, provider, quiz):
        attempt = _start(db, quiz)
        for qid, option in [("q1", "b"), ("q2", "b"), ("q3", "a"), ("q4", "b"), ("q5", "c")]:
            svc.submit_answer(db, provider, attempt.id, qid, option)

        done = T0 + timedelta(minutes=10)
        attempt, breakdown = svc.complete_attempt(db, attempt.id, now=done)
        assert attempt.status == AttemptStatusEnum.COMPLETED
        assert attempt.completed_at == done
        assert attempt.score == 3
        assert attempt.max_score == 5
        assert breakdown.correct_answers == 3
        assert breakdown.percentage == pytest.approx(60.0)

    def test_partial_completion(self, db, provider, quiz):
        attempt = _start(db, quiz)
        svc.submit_answer(db, provider, attempt.id, "q2", "b")
        svc.submit_answer(db, provider, attempt.id, "q4", "a")

        attempt, breakdown = svc.complete_attempt(db, attempt.id)
        assert breakdown.total_questions == 2
        assert breakdown.score == 1
        assert breakdown.percentage == pytest.approx(50.0)
        # Unanswered questions still count against the stored maximum
        assert attempt.score == 1
        assert attempt.max_score == 5

    def test_empty_completion(self, db, quiz):
        attempt = _start(db, quiz)
        attempt, breakdown = svc.complete_attempt(db, attempt.id)
        assert attempt.score == 0
        assert breakdown.percentage == 0

    def test_second_completion_rejected(self, db, quiz):
        attempt = _start(db, quiz)
        first, _ = svc.complete_attempt(db, attempt.id, now=T0)
        with pytest.raises(InvalidStateError):
            svc.complete_attempt(db, attempt.id, now=T0 + timedelta(hours=1))
        reloaded = svc.get_attempt(db, attempt.id)
        assert reloaded.completed_at == T0
        assert reloaded.score == first.score

    def test_unknown_attempt(self, db):
        with pytest.raises(NotFoundError):
            svc.complete_attempt(db, uuid.uuid4())


# ── Views ──────────────────────────────────────────────────────────────────────


class TestViews:
    def test_list_attempts_newest_first(self, db, provider, quiz):
        first = _start(db, quiz)
        svc.complete_attempt(db, first.id)
        second = svc.start_attempt(db, "alice", quiz.id, QuizMode.NORMAL, quiz, now=T0 + timedelta(hours=1))
        _start(db, quiz, user="bob")

        assert [a.id for a in svc.list_attempts(db, "alice")] == [second.id, first.id]
        completed = svc.list_attempts(db, "alice", AttemptStatusEnum.COMPLETED)
        assert [a.id for a in completed] == [first.id]

    def test_active_attempts_map(self, db, provider, quiz):
        a1 = _start(db, quiz)
        other = provider.get_quiz_by_id("quiz-2")
        a2 = svc.start_attempt(db, "alice", other.id, QuizMode.NORMAL, other)
        svc.complete_attempt(db, a2.id)

        active = svc.get_active_attempts(db, "alice")
        assert list(active) == ["quiz-1"]
        assert active["quiz-1"].id == a1.id

    def test_questions_hidden_while_active(self, db, provider, quiz):
        attempt = _start(db, quiz)
        svc.submit_answer(db, provider, attempt.id, "q1", "b")
        _, questions = svc.attempt_questions(db, provider, attempt.id)
        assert [q.id for q in questions] == attempt.question_order
        assert all(q.correct_option_id is None for q in questions)

    def test_learn_mode_reveals_answered_questions(self, db, provider, quiz):
        attempt = _start(db, quiz, mode=QuizMode.LEARN)
        svc.submit_answer(db, provider, attempt.id, "q1", "a")
        _, questions = svc.attempt_questions(db, provider, attempt.id)
        by_id = {q.id: q for q in questions}
        assert by_id["q1"].correct_option_id == "b"
        assert by_id["q1"].concept_explanation == "Concept 1"
        assert by_id["q2"].correct_option_id is None

    def test_completed_reveals_everything(self, db, provider, quiz):
        attempt = _start(db, quiz)
        svc.complete_attempt(db, attempt.id)
        _, questions = svc.attempt_questions(db, provider, attempt.id)
        assert all(q.correct_option_id == "b" for q in questions)
