"""
Generation endpoints: start, poll, and the worker callback.

The webhook is called by the job worker, not a teacher. When a webhook secret
is configured the caller must present it in X-Webhook-Secret.
"""

import hmac
import uuid
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Request, status

from assessment_engine.api.deps import CurrentTeacher, Orchestrator
from assessment_engine.config import get_settings
from assessment_engine.kernel.errors import ValidationFailure
from assessment_engine.logging_config import get_logger
from assessment_engine.schemas.generation import (
    DispatchResponse,
    GenerateRequest,
    GenerationStatusResponse,
    WebhookAckResponse,
)

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/question-sets/{question_set_id}/generate",
    response_model=DispatchResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_generation(
    question_set_id: uuid.UUID,
    data: GenerateRequest,
    teacher: CurrentTeacher,
    orchestrator: Orchestrator,
):
    """Dispatch a generation job. 409 if the set is already generating or completed."""
    receipt = await orchestrator.dispatch(question_set_id, teacher.teacher_id, data.question_count)
    return DispatchResponse(
        question_set_id=receipt.question_set_id,
        job_id=receipt.job_id,
        status=receipt.status.value,
    )


@router.get("/question-sets/{question_set_id}/status", response_model=GenerationStatusResponse)
async def get_generation_status(
    question_set_id: uuid.UUID,
    teacher: CurrentTeacher,
    orchestrator: Orchestrator,
):
    """Stored status plus the worker's advisory live status while generating."""
    projection = await orchestrator.poll_status(question_set_id, teacher.teacher_id)
    return GenerationStatusResponse(
        question_set_id=projection.question_set_id,
        status=projection.status.value,
        job_id=projection.job_id,
        total_questions=projection.total_questions,
        questions_generated=projection.questions_generated,
        failure_reason=projection.failure_reason,
        updated_at=projection.updated_at,
        live_status=projection.live_status.value if projection.live_status else None,
        webhook_overdue=projection.webhook_overdue,
        dispatched_at=projection.dispatched_at,
        dispatch_unconfirmed=projection.dispatch_unconfirmed,
    )


@router.post("/generation/webhook", response_model=WebhookAckResponse)
async def generation_webhook(
    request: Request,
    orchestrator: Orchestrator,
    x_webhook_secret: Optional[str] = Header(None),
):
    """Apply a worker callback. Duplicate and late deliveries are acknowledged as no-ops."""
    secret = get_settings().webhook_secret
    if secret and not hmac.compare_digest((x_webhook_secret or "").encode(), secret.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")

    try:
        payload = await request.json()
    except ValueError as e:
        raise ValidationFailure("Webhook body is not valid JSON") from e

    ack = await orchestrator.on_webhook(payload)
    return WebhookAckResponse(
        applied=ack.applied,
        question_set_id=ack.question_set_id,
        status=ack.status.value,
        total_questions=ack.total_questions,
        discarded=ack.discarded,
        message=ack.message,
    )
