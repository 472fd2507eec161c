"""
Question set endpoints (teacher).
"""

import json
import uuid
from io import BytesIO
from typing import List

from fastapi import APIRouter, status
from fastapi.responses import StreamingResponse

from assessment_engine.api.deps import Clock, CurrentTeacher, DbSession, Orchestrator
from assessment_engine.engines.attempts.export import export_filename, question_set_json
from assessment_engine.kernel.events.event_store import EventStore
from assessment_engine.kernel.models import EventType
from assessment_engine.schemas.question_set import (
    QuestionResponse,
    QuestionSetCreate,
    QuestionSetDetailResponse,
    QuestionSetResponse,
)

router = APIRouter()


def _to_response(question_set, question_count: int) -> QuestionSetResponse:
    response = QuestionSetResponse.model_validate(question_set)
    response.question_count = question_count
    return response


@router.post("", response_model=QuestionSetResponse, status_code=status.HTTP_201_CREATED)
async def create_question_set(
    data: QuestionSetCreate,
    teacher: CurrentTeacher,
    orchestrator: Orchestrator,
):
    """Create a pending question set for an uploaded document."""
    question_set = await orchestrator.create_question_set(
        owner_id=teacher.teacher_id,
        name=data.name,
        source_document_ref=data.source_document_ref,
        description=data.description,
    )
    return _to_response(question_set, 0)


@router.get("", response_model=List[QuestionSetResponse])
async def list_question_sets(teacher: CurrentTeacher, orchestrator: Orchestrator):
    """List the teacher's question sets, newest first."""
    rows = await orchestrator.list_question_sets(teacher.teacher_id)
    return [_to_response(question_set, count) for question_set, count in rows]


@router.get("/{question_set_id}", response_model=QuestionSetDetailResponse)
async def get_question_set(
    question_set_id: uuid.UUID,
    teacher: CurrentTeacher,
    orchestrator: Orchestrator,
):
    """A set with its questions and correct labels."""
    question_set = await orchestrator.get_question_set(question_set_id, teacher.teacher_id, with_questions=True)
    questions = [QuestionResponse.model_validate(q) for q in question_set.questions]
    base = _to_response(question_set, len(questions))
    return QuestionSetDetailResponse(**base.model_dump(), questions=questions)


@router.get("/{question_set_id}/export")
async def export_question_set(
    question_set_id: uuid.UUID,
    teacher: CurrentTeacher,
    orchestrator: Orchestrator,
    db: DbSession,
    clock: Clock,
):
    """Download the set's questions and answer key as JSON."""
    question_set = await orchestrator.get_question_set(question_set_id, teacher.teacher_id, with_questions=True)
    document = question_set_json(question_set, clock())

    await EventStore(db).log(
        event_type=EventType.EXPORT_COMPLETED,
        entity_type="question_set",
        entity_id=question_set_id,
        actor_id=teacher.teacher_id,
        payload={"kind": "questions", "format": "json", "rows": len(document["questions"])},
    )

    filename = export_filename(question_set.name, "questions", "json")
    return StreamingResponse(
        BytesIO(json.dumps(document, indent=2).encode("utf-8")),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
