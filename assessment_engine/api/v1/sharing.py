"""
Sharing, results and results export endpoints for a completed question set.
"""

import json
import uuid
from datetime import timedelta
from io import BytesIO

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from assessment_engine.api.deps import Clock, CurrentTeacher, DbSession, Issuer, ResultsService
from assessment_engine.engines.attempts.export import ExportFormat, export_filename, results_csv, results_json
from assessment_engine.kernel.events.event_store import EventStore
from assessment_engine.kernel.models import EventType, ensure_utc
from assessment_engine.schemas.access import ShareItem, ShareRequest, ShareResponse
from assessment_engine.schemas.results import (
    InvitationItem,
    ResultItem,
    ResultStatsResponse,
    SetResultsResponse,
)

router = APIRouter()


@router.post("/{question_set_id}/share", response_model=ShareResponse)
async def share_question_set(
    question_set_id: uuid.UUID,
    data: ShareRequest,
    teacher: CurrentTeacher,
    issuer: Issuer,
):
    """
    Issue an access code to each participant and send invitations.

    Existing valid codes are reused. A failed invitation does not revoke the
    code; it is reported per participant.
    """
    ttl = timedelta(days=data.ttl_days) if data.ttl_days else None
    issued = await issuer.share(question_set_id, data.participant_ids, teacher.teacher_id, ttl=ttl)

    items = [
        ShareItem(
            participant_id=r.participant.id,
            participant_email=r.participant.email,
            code=r.token.code,
            link=issuer.attempt_link(r.token.code),
            expires_at=ensure_utc(r.token.expires_at),
            reused=r.reused,
            notification=r.notification_status,
            notification_detail=r.notification.detail if r.notification else None,
        )
        for r in issued
    ]
    return ShareResponse(
        question_set_id=question_set_id,
        items=items,
        issued=sum(1 for r in issued if not r.reused),
        reused=sum(1 for r in issued if r.reused),
        notifications_failed=sum(1 for item in items if item.notification == "failed"),
    )


@router.get("/{question_set_id}/results", response_model=SetResultsResponse)
async def get_results(
    question_set_id: uuid.UUID,
    teacher: CurrentTeacher,
    report: ResultsService,
):
    """Graded attempts, invitations and summary stats for a set."""
    data = await report.for_set(question_set_id, teacher.teacher_id)
    return SetResultsResponse(
        question_set_id=data.question_set.id,
        question_set_name=data.question_set.name,
        total_questions=data.question_set.total_questions,
        results=[
            ResultItem(
                id=result.id,
                participant_id=participant.id,
                participant_name=participant.name,
                participant_email=participant.email,
                correct_count=result.correct_count,
                wrong_count=result.wrong_count,
                unattempted_count=result.unattempted_count,
                total_questions=result.total_questions,
                final_score=result.final_score,
                percentage=result.percentage,
                grade=result.grade,
                passed=result.passed,
                time_spent_seconds=result.time_spent_seconds,
                created_at=ensure_utc(result.created_at),
            )
            for result, participant in data.results
        ],
        invitations=[
            InvitationItem(
                code=token.code,
                participant_id=participant.id,
                participant_name=participant.name,
                participant_email=participant.email,
                phase=token.phase.value,
                consumed=token.consumed,
                started_at=ensure_utc(token.started_at),
                used_at=ensure_utc(token.used_at),
                expires_at=ensure_utc(token.expires_at),
                created_at=ensure_utc(token.created_at),
            )
            for token, participant in data.invitations
        ],
        stats=ResultStatsResponse(
            total_invitations=data.stats.total_invitations,
            total_attempts=data.stats.total_attempts,
            average_percentage=data.stats.average_percentage,
            passed_count=data.stats.passed_count,
        ),
    )


@router.get("/{question_set_id}/results/export")
async def export_results(
    question_set_id: uuid.UUID,
    teacher: CurrentTeacher,
    report: ResultsService,
    db: DbSession,
    clock: Clock,
    export_format: ExportFormat = Query(ExportFormat.CSV, alias="format"),
):
    """Download the set's graded attempts as a CSV sheet or a JSON document."""
    data = await report.for_set(question_set_id, teacher.teacher_id)

    if export_format is ExportFormat.CSV:
        content = results_csv(data).encode("utf-8")
        media_type = "text/csv; charset=utf-8"
    else:
        content = json.dumps(results_json(data, clock()), indent=2).encode("utf-8")
        media_type = "application/json"

    await EventStore(db).log(
        event_type=EventType.EXPORT_COMPLETED,
        entity_type="question_set",
        entity_id=question_set_id,
        actor_id=teacher.teacher_id,
        payload={"kind": "results", "format": export_format.value, "rows": len(data.results)},
    )

    filename = export_filename(data.question_set.name, "results", export_format.value)
    return StreamingResponse(
        BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
