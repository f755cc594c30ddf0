"""Initial migration - create attempt store tables

Revision ID: 0_initial
Revises:
Create Date: 2025-01-01 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Create enums ──────────────────────────────────────────────────
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE attempt_status_enum AS ENUM ('active', 'completed');
        EXCEPTION WHEN duplicate_object THEN null;
        END $$;
    """)
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE quiz_mode_enum AS ENUM ('normal', 'learn');
        EXCEPTION WHEN duplicate_object THEN null;
        END $$;
    """)

    # ── attempts table ────────────────────────────────────────────────
    op.create_table(
        'attempts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('quiz_id', sa.String(200), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('status', postgresql.ENUM('active', 'completed', name='attempt_status_enum', create_type=False), nullable=False, server_default='active'),
        sa.Column('mode', postgresql.ENUM('normal', 'learn', name='quiz_mode_enum', create_type=False), nullable=False, server_default='normal'),
        sa.Column('question_order_json', sa.Text(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('max_score', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('score IS NULL OR score >= 0', name='ck_attempts_score_non_negative'),
    )
    op.create_index('ix_attempts_quiz_id', 'attempts', ['quiz_id'])
    op.create_index('ix_attempts_user_id', 'attempts', ['user_id'])
    op.create_index('ix_attempts_quiz_status', 'attempts', ['quiz_id', 'status'])
    # One active attempt per (user, quiz)
    op.create_index(
        'uq_attempts_active_user_quiz',
        'attempts',
        ['user_id', 'quiz_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    # ── attempt_answers table ─────────────────────────────────────────
    op.create_table(
        'attempt_answers',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('attempt_id', sa.UUID(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('question_id', sa.String(200), nullable=False),
        sa.Column('selected_option_id', sa.String(200), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['attempt_id'], ['attempts.id']),
        sa.UniqueConstraint('attempt_id', 'question_id', name='uq_attempt_question'),
    )


def downgrade() -> None:
    # Drop all tables in reverse order
    op.drop_table('attempt_answers')
    op.drop_index('uq_attempts_active_user_quiz', table_name='attempts')
    op.drop_index('ix_attempts_quiz_status', table_name='attempts')
    op.drop_index('ix_attempts_user_id', table_name='attempts')
    op.drop_index('ix_attempts_quiz_id', table_name='attempts')
    op.drop_table('attempts')

    # Drop enums
    op.execute("DROP TYPE IF EXISTS quiz_mode_enum CASCADE")
    op.execute("DROP TYPE IF EXISTS attempt_status_enum CASCADE")
