"""
Question set schemas (teacher view).
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class QuestionSetCreate(BaseModel):
    """Create a pending question set from an uploaded document."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    source_document_ref: str = Field(..., min_length=1, max_length=1000)


class QuestionResponse(BaseModel):
    """A stored question including its correct label."""

    id: uuid.UUID
    position: int
    text: str
    options: Dict[str, str]
    correct_label: str

    class Config:
        from_attributes = True


class QuestionSetResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str]
    source_document_ref: str
    status: str
    total_questions: int
    requested_questions: Optional[int] = None
    job_id: Optional[str] = None
    failure_reason: Optional[str] = None
    question_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QuestionSetDetailResponse(QuestionSetResponse):
    questions: List[QuestionResponse] = []
