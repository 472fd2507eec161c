"""
Attempt schemas (participant view). Correct labels are never exposed before grading.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class AttemptQuestionResponse(BaseModel):
    id: uuid.UUID
    position: int
    text: str
    options: Dict[str, str]


class AttemptStartResponse(BaseModel):
    code: str
    question_set_id: uuid.UUID
    question_set_name: str
    participant_name: str
    total_questions: int
    time_limit_seconds: int
    started_at: datetime
    expires_at: datetime
    questions: List[AttemptQuestionResponse]


class AttemptSubmitRequest(BaseModel):
    """Answer map keyed by question id. Missing or blank answers count as unattempted."""

    answers: Dict[str, Optional[str]] = Field(default_factory=dict)
    time_spent_seconds: int = Field(0, ge=0)


class ScoreBreakdownResponse(BaseModel):
    correct: str
    wrong: str
    unattempted: str
    total: str


class AttemptResultResponse(BaseModel):
    result_id: uuid.UUID
    question_set_id: uuid.UUID
    total_questions: int
    correct_count: int
    wrong_count: int
    unattempted_count: int
    raw_score: float
    final_score: float
    percentage: int
    grade: str
    passed: bool
    time_spent_seconds: int
    negative_marking: float
    breakdown: ScoreBreakdownResponse
