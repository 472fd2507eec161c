"""
Kernel Data Models

SQLAlchemy models for question sets, access tokens, attempt results and the
audit log.
"""

from assessment_engine.kernel.models.base import Base, TimestampMixin, ensure_utc, generate_uuid, utcnow
from assessment_engine.kernel.models.question_set import (
    OPTION_LABELS,
    Question,
    QuestionSet,
    QuestionSetStatus,
)
from assessment_engine.kernel.models.participant import Participant
from assessment_engine.kernel.models.access import AccessToken, AttemptPhase, AttemptResult
from assessment_engine.kernel.models.event_log import EventLog, EventType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "ensure_utc",
    "generate_uuid",
    "utcnow",
    # Question sets
    "OPTION_LABELS",
    "Question",
    "QuestionSet",
    "QuestionSetStatus",
    # Roster
    "Participant",
    # Access
    "AccessToken",
    "AttemptPhase",
    "AttemptResult",
    # Event Log
    "EventLog",
    "EventType",
]
