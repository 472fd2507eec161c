"""
Generation schemas: dispatch, status polling and webhook acknowledgement.

The webhook body itself is parsed by engines.generation.outcome, not here.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Start (or restart) generation for a set."""

    question_count: int = Field(10, ge=1, le=100)


class DispatchResponse(BaseModel):
    question_set_id: uuid.UUID
    job_id: str
    status: str
    message: str = "Generation started"


class GenerationStatusResponse(BaseModel):
    question_set_id: uuid.UUID
    status: str
    job_id: Optional[str] = None
    total_questions: int = 0
    questions_generated: int = 0
    failure_reason: Optional[str] = None
    updated_at: Optional[datetime] = None
    live_status: Optional[str] = None
    webhook_overdue: bool = False
    dispatched_at: Optional[datetime] = None
    dispatch_unconfirmed: bool = False


class WebhookAckResponse(BaseModel):
    received: bool = True
    applied: bool
    question_set_id: uuid.UUID
    status: str
    total_questions: int = 0
    discarded: int = 0
    message: str = ""
