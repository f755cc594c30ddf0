"""SQLAlchemy ORM models for the attempt store.

Tables
------
- attempts        – one row per quiz attempt (active or completed)
- attempt_answers – per‑question answers in an attempt, in submission order

Quiz content is not stored here; it lives in validated JSON files and is
referenced by ``quiz_id``. ``user_id`` is the session username.
"""

import enum
import json
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quizboard.db.session import Base


# ── helpers ───────────────────────────────────────────────────────────────────


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that always comes back as UTC.

    SQLite drops the offset on storage; this re-attaches it on load.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


# ── Enums (stored by value via SQLAlchemy Enum) ───────────────────────────────


class AttemptStatusEnum(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class QuizModeEnum(str, enum.Enum):
    NORMAL = "normal"
    LEARN = "learn"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


# ── Attempts ──────────────────────────────────────────────────────────────────


class Attempt(Base):
    __tablename__ = "attempts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    quiz_id: Mapped[str] = mapped_column(String(200), index=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    status: Mapped[AttemptStatusEnum] = mapped_column(
        Enum(AttemptStatusEnum, name="attempt_status_enum", values_callable=_enum_values),
        default=AttemptStatusEnum.ACTIVE,
    )
    mode: Mapped[QuizModeEnum] = mapped_column(
        Enum(QuizModeEnum, name="quiz_mode_enum", values_callable=_enum_values),
        default=QuizModeEnum.NORMAL,
    )
    question_order_json: Mapped[str] = mapped_column(Text)  # JSON list of question ids
    started_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_score: Mapped[int | None] = mapped_column(Integer, nullable=True)

    answers: Mapped[list["AttemptAnswer"]] = relationship(
        back_populates="attempt",
        cascade="all, delete-orphan",
        order_by="AttemptAnswer.position",
    )

    __table_args__ = (
        # At most one active attempt per (user, quiz); completed ones pile up freely.
        Index(
            "uq_attempts_active_user_quiz",
            "user_id",
            "quiz_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("ix_attempts_quiz_status", "quiz_id", "status"),
        CheckConstraint("score IS NULL OR score >= 0", name="ck_attempts_score_non_negative"),
    )

    @property
    def question_order(self) -> list[str]:
        return json.loads(self.question_order_json)

    @property
    def is_completed(self) -> bool:
        return self.status == AttemptStatusEnum.COMPLETED


class AttemptAnswer(Base):
    """Individual answer within an attempt."""

    __tablename__ = "attempt_answers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    attempt_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("attempts.id"))
    position: Mapped[int] = mapped_column(Integer, default=0)
    question_id: Mapped[str] = mapped_column(String(200))
    selected_option_id: Mapped[str] = mapped_column(String(200))
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False)
    answered_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)

    attempt: Mapped["Attempt"] = relationship(back_populates="answers")

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )
