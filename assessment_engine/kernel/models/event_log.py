"""
Immutable event log for audit trail.

Every lifecycle mutation (dispatch, webhook outcome, issuance, grading) is
logged here in the same transaction as the mutation itself.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, String, func, Index, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from assessment_engine.kernel.models.base import Base, generate_uuid


class EventType(str, Enum):
    """All event types for the audit log."""

    # Question set lifecycle
    QUESTION_SET_CREATED = "question_set.created"
    GENERATION_DISPATCHED = "generation.dispatched"
    GENERATION_DISPATCH_FAILED = "generation.dispatch_failed"
    GENERATION_COMPLETED = "generation.completed"
    GENERATION_FAILED = "generation.failed"
    WEBHOOK_IGNORED = "generation.webhook_ignored"

    # Roster
    PARTICIPANT_ADDED = "participant.added"

    # Access tokens
    ACCESS_ISSUED = "access.issued"
    ACCESS_REUSED = "access.reused"
    NOTIFICATION_FAILED = "access.notification_failed"

    # Attempts
    ATTEMPT_STARTED = "attempt.started"
    ATTEMPT_GRADED = "attempt.graded"

    # Exports
    EXPORT_COMPLETED = "export.completed"


class EventLog(Base):
    """
    Immutable audit event log.

    This table is append-only - no updates or deletes allowed.
    """

    __tablename__ = "event_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    event_type: Mapped[EventType] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
        index=True,
    )
    # Teacher who triggered the event; None for worker callbacks and participants
    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
        index=True,
    )
    payload: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    request_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_event_logs_entity", "entity_type", "entity_id"),
        Index("ix_event_logs_type_time", "event_type", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<EventLog {self.event_type} {self.entity_type}:{self.entity_id}>"
