"""Initial schema - assessment lifecycle engine

Revision ID: 0001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Question sets
    op.create_table(
        'question_sets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), nullable=False, index=True),
        sa.Column('source_document_ref', sa.String(1000), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, default='pending'),
        sa.Column('total_questions', sa.Integer(), nullable=False, default=0),
        sa.Column('requested_questions', sa.Integer(), nullable=True),
        sa.Column('job_id', sa.String(255), nullable=True, index=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('dispatched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_question_sets_owner_status', 'question_sets', ['owner_id', 'status'])

    # Questions (created in bulk at generation completion)
    op.create_table(
        'questions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('question_set_id', sa.Uuid(), sa.ForeignKey('question_sets.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('position', sa.Integer(), nullable=False, default=0),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('option_a', sa.Text(), nullable=False),
        sa.Column('option_b', sa.Text(), nullable=False),
        sa.Column('option_c', sa.Text(), nullable=False),
        sa.Column('option_d', sa.Text(), nullable=False),
        sa.Column('correct_label', sa.String(1), nullable=False),
    )

    # Participants
    op.create_table(
        'participants',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('teacher_id', sa.Uuid(), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('teacher_id', 'email', name='uq_participants_teacher_email'),
    )

    # Access tokens
    op.create_table(
        'access_tokens',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('code', sa.String(64), unique=True, nullable=False, index=True),
        sa.Column('participant_id', sa.Uuid(), sa.ForeignKey('participants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_set_id', sa.Uuid(), sa.ForeignKey('question_sets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('issued_by', sa.Uuid(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('consumed', sa.Boolean(), nullable=False, default=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_access_tokens_participant_set', 'access_tokens', ['participant_id', 'question_set_id'])

    # Attempt results (one per participant and set)
    op.create_table(
        'attempt_results',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('participant_id', sa.Uuid(), sa.ForeignKey('participants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_set_id', sa.Uuid(), sa.ForeignKey('question_sets.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('access_token_id', sa.Uuid(), sa.ForeignKey('access_tokens.id'), nullable=False),
        sa.Column('correct_count', sa.Integer(), nullable=False),
        sa.Column('wrong_count', sa.Integer(), nullable=False),
        sa.Column('unattempted_count', sa.Integer(), nullable=False),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('raw_score', sa.Float(), nullable=False),
        sa.Column('final_score', sa.Float(), nullable=False),
        sa.Column('percentage', sa.Integer(), nullable=False),
        sa.Column('grade', sa.String(2), nullable=False),
        sa.Column('passed', sa.Boolean(), nullable=False),
        sa.Column('time_spent_seconds', sa.Integer(), nullable=False),
        sa.Column('answers', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('participant_id', 'question_set_id', name='uq_attempt_results_participant_set'),
    )

    # Event log (append-only)
    op.create_table(
        'event_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False, index=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False, index=True),
        sa.Column('actor_id', sa.Uuid(), nullable=True, index=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('request_id', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )
    op.create_index('ix_event_logs_entity', 'event_logs', ['entity_type', 'entity_id'])
    op.create_index('ix_event_logs_type_time', 'event_logs', ['event_type', 'created_at'])


def downgrade() -> None:
    op.drop_table('event_logs')
    op.drop_table('attempt_results')
    op.drop_table('access_tokens')
    op.drop_table('participants')
    op.drop_table('questions')
    op.drop_table('question_sets')
