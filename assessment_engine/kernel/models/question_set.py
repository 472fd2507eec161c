"""
QuestionSet and Question models.

A QuestionSet is one generation job and the quiz it produces. Its status is
authoritative and is only ever written through the guarded transitions in
orchestration.state_machine.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assessment_engine.kernel.models.base import Base, TimestampMixin, generate_uuid

OPTION_LABELS = ("A", "B", "C", "D")


class QuestionSetStatus(str, Enum):
    """Lifecycle state of a question set."""

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (QuestionSetStatus.COMPLETED, QuestionSetStatus.FAILED)


class QuestionSet(Base, TimestampMixin):
    """
    One generation job and its resulting quiz.

    total_questions stays 0 until status is completed; job_id is set by the
    first dispatch and overwritten by every later one.
    """

    __tablename__ = "question_sets"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
        index=True,
    )
    source_document_ref: Mapped[str] = mapped_column(
        String(1000),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    status: Mapped[QuestionSetStatus] = mapped_column(
        String(50),
        default=QuestionSetStatus.PENDING,
        nullable=False,
    )
    total_questions: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    requested_questions: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    job_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    failure_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    dispatched_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    questions: Mapped[List["Question"]] = relationship(
        "Question",
        back_populates="question_set",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Question.position",
    )

    __table_args__ = (
        Index("ix_question_sets_owner_status", "owner_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<QuestionSet {self.name} {self.status}>"


class Question(Base):
    """One multiple-choice item. Created in bulk at generation completion, never edited."""

    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    question_set_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("question_sets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    option_a: Mapped[str] = mapped_column(Text, nullable=False)
    option_b: Mapped[str] = mapped_column(Text, nullable=False)
    option_c: Mapped[str] = mapped_column(Text, nullable=False)
    option_d: Mapped[str] = mapped_column(Text, nullable=False)
    correct_label: Mapped[str] = mapped_column(String(1), nullable=False)

    question_set: Mapped["QuestionSet"] = relationship(
        "QuestionSet",
        back_populates="questions",
    )

    @property
    def options(self) -> dict[str, str]:
        return dict(zip(OPTION_LABELS, (self.option_a, self.option_b, self.option_c, self.option_d)))
