"""
Participant model - a quiz taker on a teacher's roster.
"""

import uuid

from sqlalchemy import String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from assessment_engine.kernel.models.base import Base, TimestampMixin, generate_uuid


class Participant(Base, TimestampMixin):
    """Recipient of access tokens. Owned by the teacher who added them."""

    __tablename__ = "participants"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    teacher_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("teacher_id", "email", name="uq_participants_teacher_email"),
    )
