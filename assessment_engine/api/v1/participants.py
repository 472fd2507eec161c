"""
Participant roster endpoints.
"""

from typing import List

from fastapi import APIRouter, status

from assessment_engine.api.deps import CurrentTeacher, RosterService
from assessment_engine.schemas.participant import ParticipantCreate, ParticipantResponse

router = APIRouter()


@router.post("", response_model=ParticipantResponse, status_code=status.HTTP_201_CREATED)
async def add_participant(data: ParticipantCreate, teacher: CurrentTeacher, roster: RosterService):
    participant = await roster.add(teacher.teacher_id, data.name, data.email)
    return ParticipantResponse.model_validate(participant)


@router.get("", response_model=List[ParticipantResponse])
async def list_participants(teacher: CurrentTeacher, roster: RosterService):
    return [ParticipantResponse.model_validate(p) for p in await roster.list(teacher.teacher_id)]
