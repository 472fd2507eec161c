"""
Event Store service for append-only audit logging.

Events are added to the caller's session; they commit or roll back together
with the mutation they describe.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.kernel.models.event_log import EventLog, EventType
from assessment_engine.logging_config import get_request_id


class EventStore:
    """
    Service for managing the immutable event log.

    Usage:
        event_store = EventStore(session)
        await event_store.log(
            event_type=EventType.GENERATION_DISPATCHED,
            entity_type="question_set",
            entity_id=question_set.id,
            actor_id=teacher_id,
            payload={"job_id": job_id},
        )
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def log(
        self,
        event_type: EventType,
        entity_type: str,
        entity_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> EventLog:
        """
        Add an event to the audit log.

        Args:
            event_type: The type of event
            entity_type: question_set, access_token, attempt_result, participant
            entity_id: The ID of the entity
            actor_id: Teacher who triggered the event (None for system events)
            payload: Additional event data

        Returns:
            The pending EventLog record
        """
        event = EventLog(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            payload=self._serialize_payload(payload or {}),
            request_id=get_request_id(),
        )
        self.session.add(event)
        # Caller owns the transaction
        return event

    async def count_events(
        self,
        entity_id: Optional[uuid.UUID] = None,
        event_type: Optional[EventType] = None,
    ) -> int:
        """Count events matching the given criteria."""
        query = select(func.count(EventLog.id))
        if entity_id:
            query = query.where(EventLog.entity_id == entity_id)
        if event_type:
            query = query.where(EventLog.event_type == event_type.value)

        result = await self.session.execute(query)
        return result.scalar() or 0

    def _serialize_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Convert payload values to JSON-serializable types."""
        return {key: self._serialize_value(value) for key, value in payload.items()}

    def _serialize_value(self, value: Any) -> Any:
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, dict):
            return self._serialize_payload(value)
        if isinstance(value, (list, tuple)):
            return [self._serialize_value(v) for v in value]
        return value
