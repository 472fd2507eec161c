"""
Participant roster - the teacher's list of quiz takers.
"""

import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.kernel.errors import Conflict
from assessment_engine.kernel.events.event_store import EventStore
from assessment_engine.kernel.models import EventType, Participant


class Roster:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def add(self, teacher_id: uuid.UUID, name: str, email: str) -> Participant:
        """Add a participant; emails are unique per teacher (case-insensitive)."""
        email = email.strip().lower()
        existing = await self.session.execute(
            select(Participant.id).where(
                Participant.teacher_id == teacher_id,
                Participant.email == email,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise Conflict("A participant with this email already exists", email=email)

        participant = Participant(teacher_id=teacher_id, name=name.strip(), email=email)
        self.session.add(participant)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise Conflict("A participant with this email already exists", email=email) from e

        await self.event_store.log(
            event_type=EventType.PARTICIPANT_ADDED,
            entity_type="participant",
            entity_id=participant.id,
            actor_id=teacher_id,
            payload={"email": email},
        )
        await self.session.commit()
        await self.session.refresh(participant)
        return participant

    async def list(self, teacher_id: uuid.UUID) -> List[Participant]:
        result = await self.session.execute(
            select(Participant)
            .where(Participant.teacher_id == teacher_id)
            .order_by(Participant.name)
        )
        return list(result.scalars().all())
