"""
AccessToken and AttemptResult models.

An AccessToken grants one participant one attempt at one question set. It is
consumed in the same transaction that inserts the AttemptResult, and never
deleted (audit trail).
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from assessment_engine.kernel.models.base import Base, generate_uuid


class AttemptPhase(str, Enum):
    """Phase of the attempt a token grants."""

    ISSUED = "issued"
    IN_PROGRESS = "in_progress"
    GRADED = "graded"


class AccessToken(Base):
    """Single-use, time-limited credential for one (participant, question set)."""

    __tablename__ = "access_tokens"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    code: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=False,
    )
    participant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
    )
    question_set_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("question_sets.id", ondelete="CASCADE"),
        nullable=False,
    )
    issued_by: Mapped[uuid.UUID] = mapped_column(Uuid(), nullable=False)

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    consumed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_access_tokens_participant_set", "participant_id", "question_set_id"),
    )

    @property
    def phase(self) -> AttemptPhase:
        if self.consumed:
            return AttemptPhase.GRADED
        if self.started_at is not None:
            return AttemptPhase.IN_PROGRESS
        return AttemptPhase.ISSUED


class AttemptResult(Base):
    """Immutable graded outcome of one redeemed token."""

    __tablename__ = "attempt_results"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    participant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
    )
    question_set_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("question_sets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    access_token_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("access_tokens.id"),
        nullable=False,
    )

    correct_count: Mapped[int] = mapped_column(Integer, nullable=False)
    wrong_count: Mapped[int] = mapped_column(Integer, nullable=False)
    unattempted_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    raw_score: Mapped[float] = mapped_column(Float, nullable=False)
    final_score: Mapped[float] = mapped_column(Float, nullable=False)
    percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    grade: Mapped[str] = mapped_column(String(2), nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    time_spent_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    answers: Mapped[str] = mapped_column(Text, nullable=False)  # JSON-encoded answer map

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("participant_id", "question_set_id", name="uq_attempt_results_participant_set"),
    )
